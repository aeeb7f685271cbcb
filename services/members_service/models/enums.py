"""Enum definitions for members service models."""

import enum

from libs.auth.models import Role

UserRole = Role


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class UserStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"
    PENDING = "Pending"


class ReferralStatus(str, enum.Enum):
    PENDING = "Pending"
    REGISTERED = "Registered"
    CONVERTED = "Converted"
    EXPIRED = "Expired"


class WholesaleApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
