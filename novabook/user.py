from __future__ import annotations

from novabook.enums import AccessLevel, UserRole
from novabook.errors import LibraryError
from novabook.validators import parse_enum


class User:
    """An account able to log in. ``password`` always holds a bcrypt hash."""

    def __init__(self, name: str, email: str, password: str, phone: str | None = "",
                 role: UserRole | str = UserRole.USER,
                 access_level: AccessLevel | str = AccessLevel.READ_WRITE,
                 active: bool = True, deleted: bool = False, id: int | None = None,
                 created_at: str | None = None, updated_at: str | None = None) -> None:
        if name is None or not name.strip():
            raise LibraryError("Name cannot be null or empty")
        if email is None or not email.strip():
            raise LibraryError("Email cannot be null or empty")
        if password is None or not password.strip():
            raise LibraryError("Password cannot be null or empty")
        phone = phone or ""
        if len(name) > 100:
            raise LibraryError("Name cannot exceed 100 characters")
        if len(email) > 255:
            raise LibraryError("Email cannot exceed 255 characters")
        if len(password) > 255:
            raise LibraryError("Password cannot exceed 255 characters")
        if len(phone) > 30:
            raise LibraryError("Phone cannot exceed 30 characters")

        self.id = id
        self.name = name.strip()
        self.email = email.strip().lower()
        self.password = password
        self.phone = phone.strip()
        self.role = parse_enum(UserRole, role, "role")
        self.access_level = parse_enum(AccessLevel, access_level, "access level")
        self.active = bool(active)
        self.deleted = bool(deleted)
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def can_log_in(self) -> bool:
        return self.active and not self.deleted

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} <{self.email}> ({self.role.value})"

    def to_dict(self) -> dict:
        """Serialise the user. The password hash is never included."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role.value,
            "access_level": self.access_level.value,
            "active": self.active,
            "deleted": self.deleted,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "User":
        return User(
            id=data.get("id"),
            name=data["name"],
            email=data["email"],
            password=data["password"],
            phone=data.get("phone") or "",
            role=data.get("role") or UserRole.USER,
            access_level=data.get("access_level") or AccessLevel.READ_WRITE,
            active=bool(data.get("active", True)),
            deleted=bool(data.get("deleted", False)),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
