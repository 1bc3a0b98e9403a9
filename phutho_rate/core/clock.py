from datetime import datetime
from zoneinfo import ZoneInfo

from phutho_rate.core.config import settings


def get_now() -> datetime:
    """Current wall-clock time in the service timezone. Overridden in tests."""
    return datetime.now(ZoneInfo(settings.TIMEZONE))
