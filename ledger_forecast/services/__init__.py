from .inventory_service import InventoryService
from .profile_service import ProfileService
from .product_service import ProductService
from .sales_service import SalesService
from .forecast_service import ForecastService
from .accuracy_service import AccuracyService
from .recipe_service import RecipeService
from .reporting_service import ReportingService, ProductionPlanEntry

__all__ = [
    'InventoryService',
    'ProfileService',
    'ProductService',
    'SalesService',
    'ForecastService',
    'AccuracyService',
    'RecipeService',
    'ReportingService',
    'ProductionPlanEntry'
]
