# ledger_forecast/services/profile_service.py
from typing import Optional

from sqlalchemy.orm import Session

from ledger_forecast.models import Profile
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)


class ProfileService:
    """Owner profiles and the admin-mode permission flag."""

    def __init__(self, session: Session):
        self.session = session

    def get_profile(self, owner_id: str) -> Optional[Profile]:
        return self.session.get(Profile, owner_id)

    def get_or_create_profile(self, owner_id: str, business_name: str = '') -> Profile:
        profile = self.get_profile(owner_id)
        if profile is None:
            profile = Profile(owner_id=owner_id, business_name=business_name, admin_mode=False)
            self.session.add(profile)
            self.session.flush()
        return profile

    def set_admin_mode(self, owner_id: str, enabled: bool) -> Profile:
        """Turn admin mode on or off for an owner."""
        profile = self.get_or_create_profile(owner_id)
        profile.admin_mode = bool(enabled)
        self.session.flush()
        logger.info(f"Admin mode {'enabled' if enabled else 'disabled'} for owner {owner_id}")
        return profile

    def is_elevated(self, owner_id: str) -> bool:
        """Whether the owner may change sales from other days."""
        profile = self.get_profile(owner_id)
        return bool(profile and profile.admin_mode)
