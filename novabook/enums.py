from enum import Enum


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class AccessLevel(str, Enum):
    READ_ONLY = "READ_ONLY"
    READ_WRITE = "READ_WRITE"
    MANAGE = "MANAGE"


class MemberRole(str, Enum):
    """Membership tier; decides how many books a member may hold at once."""

    REGULAR = "REGULAR"
    PREMIUM = "PREMIUM"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
