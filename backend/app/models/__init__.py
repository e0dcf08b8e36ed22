from .user import User
from .brief import Brief
from .usage_log import UsageAction, UsageLog

__all__ = [
    "User",
    "Brief",
    "UsageAction",
    "UsageLog",
]
