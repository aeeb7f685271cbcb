"""Members Service models package.

Model definitions are split across:
  - models/user.py: user accounts and referrals
  - models/wholesale.py: wholesale applications
"""

from services.members_service.models.enums import (  # noqa: F401
    ReferralStatus,
    UserRole,
    UserStatus,
    WholesaleApplicationStatus,
)
from services.members_service.models.user import Referral, User  # noqa: F401
from services.members_service.models.wholesale import (  # noqa: F401
    WholesaleApplication,
)

__all__ = [
    "Referral",
    "ReferralStatus",
    "User",
    "UserRole",
    "UserStatus",
    "WholesaleApplication",
    "WholesaleApplicationStatus",
]
