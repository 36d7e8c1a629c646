from __future__ import annotations

from novabook.config import settings
from novabook.enums import AccessLevel, MemberRole
from novabook.validators import TextValidator, parse_enum


class Member:
    """A library member, optionally linked to the user account that applied for membership."""

    def __init__(self, name: str, role: MemberRole | str = MemberRole.REGULAR,
                 access_level: AccessLevel | str = AccessLevel.READ_WRITE, user_id: int | None = None,
                 active: bool = True, deleted: bool = False, id: int | None = None,
                 created_at: str | None = None, updated_at: str | None = None) -> None:
        TextValidator.validate_name(name)
        self.id = id
        self.name = name.strip()
        self.user_id = user_id
        self.role = parse_enum(MemberRole, role, "role")
        self.access_level = parse_enum(AccessLevel, access_level, "access level")
        self.active = bool(active)
        self.deleted = bool(deleted)
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def can_borrow(self) -> bool:
        return self.active and not self.deleted

    @property
    def loan_limit(self) -> int:
        """Maximum number of unreturned loans allowed for this member's tier."""
        if self.role == MemberRole.PREMIUM:
            return settings.premium_loan_limit
        return settings.regular_loan_limit

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} ({self.role.value})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "user_id": self.user_id,
            "role": self.role.value,
            "access_level": self.access_level.value,
            "active": self.active,
            "deleted": self.deleted,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Member":
        return Member(
            id=data.get("id"),
            name=data["name"],
            user_id=data.get("user_id"),
            role=data.get("role") or MemberRole.REGULAR,
            access_level=data.get("access_level") or AccessLevel.READ_WRITE,
            active=bool(data.get("active", True)),
            deleted=bool(data.get("deleted", False)),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
