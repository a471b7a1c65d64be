import os
from pathlib import Path

# Must be set before ledger_forecast.config is first imported
os.environ.setdefault(
    'LEDGER_FORECAST_CONFIG',
    str(Path(__file__).parent / 'ledger_forecast' / 'tests' / 'settings.ini')
)
