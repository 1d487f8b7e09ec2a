"""SQLAlchemy models.

All models should be imported here for Alembic to detect them.
"""

from biolink.core.database import Base
from biolink.models.analytics_event import AnalyticsEvent
from biolink.models.profile import Profile, ProfileBlock
from biolink.models.short_link import ShortLink

__all__ = ["Base", "Profile", "ProfileBlock", "ShortLink", "AnalyticsEvent"]
