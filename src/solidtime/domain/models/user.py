"""User model - the account behind the API token"""

from datetime import datetime
from typing import Optional

from solidtime.domain.models.base import SolidtimeEntity


class User(SolidtimeEntity):
    """Represents a Solidtime user"""

    name: str
    email: str
    profile_photo_url: Optional[str] = None
    timezone: str
    week_start: str  # e.g. "monday", "sunday"
    email_verified_at: Optional[datetime] = None
