import logging
from typing import List, Optional

from novabook.enums import AccessLevel, UserRole
from novabook.errors import LibraryError
from novabook.passwords import check_password, hash_password
from novabook.repositories import UserRepository
from novabook.user import User
from novabook.validators import UserValidator, is_valid_id, parse_enum, validate_id

logger = logging.getLogger(__name__)


class UserService:
    """User accounts: registration, authentication and account status.

    Plain-text passwords never reach the repository; they are hashed with
    bcrypt on the way in and only compared through ``check_password``.
    """

    def __init__(self, repo: UserRepository) -> None:
        self.repo = repo

    def register(self, name: str, email: str, password: str, phone: str) -> User:
        UserValidator.validate_user(name, email, password, phone)
        if self.user_exists(email):
            raise LibraryError(f"User already exists with email: {email}")

        user = self.repo.create(User(name=name, email=email, password=hash_password(password), phone=phone))
        logger.info(f"User registered: {user.email}")
        return user

    def admin_register(self, name: str, email: str, password: str, phone: str,
                       role: str, access_level: str) -> User:
        UserValidator.validate_user(name, email, password, phone)
        if self.user_exists(email):
            raise LibraryError(f"User already exists with email: {email}")

        user = User(
            name=name,
            email=email,
            password=hash_password(password),
            phone=phone,
            role=parse_enum(UserRole, role, "role"),
            access_level=parse_enum(AccessLevel, access_level, "access level"),
        )
        user = self.repo.create(user)
        logger.info(f"User registered by admin: {user.email} as {user.role.value}")
        return user

    def ensure_default_admin(self, email: str, password: str, name: str = "Administrator") -> Optional[User]:
        """Create an ADMIN account when the users table is still empty."""
        if self.repo.count() > 0:
            return None
        UserValidator.validate_email(email)
        UserValidator.validate_password(password)
        admin = User(
            name=name,
            email=email,
            password=hash_password(password),
            role=UserRole.ADMIN,
            access_level=AccessLevel.MANAGE,
        )
        admin = self.repo.create(admin)
        logger.info(f"Default administrator created: {admin.email}")
        return admin

    def update_user(self, user: User) -> User:
        if user is None or user.id is None:
            raise LibraryError("User and user ID cannot be null")
        UserValidator.validate_email(user.email)
        existing = self.repo.find_by_email(user.email)
        if existing and existing.id != user.id:
            raise LibraryError(f"User already exists with email: {user.email}")
        return self.repo.update(user)

    def find_user_by_id(self, user_id: int) -> Optional[User]:
        if not is_valid_id(user_id):
            return None
        return self.repo.find_by_id(user_id)

    def find_user_by_email(self, email: str) -> Optional[User]:
        if email is None or not email.strip():
            return None
        return self.repo.find_by_email(email)

    def get_all_users(self) -> List[User]:
        return self.repo.find_all()

    def get_all_active_users(self) -> List[User]:
        return self.repo.find_all_active()

    def user_exists(self, email: str) -> bool:
        if email is None or not email.strip():
            return False
        return self.repo.user_exists(email)

    def authenticate(self, email: str, password: str) -> User:
        if email is None or not email.strip() or password is None or not password.strip():
            raise LibraryError("Email and password cannot be null or empty")

        user = self.repo.find_active_by_email(email)
        if user is None:
            logger.warning(f"Login refused for {email}: unknown or inactive account")
            raise LibraryError("Authentication failed - user not found or inactive")
        if not check_password(password, user.password):
            logger.warning(f"Login refused for {email}: bad credentials")
            raise LibraryError("Authentication failed - invalid credentials")

        logger.info(f"User authenticated: {user.email}")
        return user

    def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        user = self._require(user_id)
        if not old_password or not check_password(old_password, user.password):
            raise LibraryError("Current password incorrect")
        UserValidator.validate_password(new_password)
        user.password = hash_password(new_password)
        self.repo.update(user)
        logger.info(f"Password changed for {user.email}")

    def activate_user(self, user_id: int) -> None:
        user = self._require(user_id)
        user.active = True
        self.repo.update(user)

    def deactivate_user(self, user_id: int) -> None:
        user = self._require(user_id)
        user.active = False
        self.repo.update(user)

    def delete_user(self, user_id: int) -> None:
        self._require(user_id)
        self.repo.soft_delete(user_id)
        logger.info(f"User deleted: {user_id}")

    def _require(self, user_id: int) -> User:
        validate_id(user_id, "User ID")
        user = self.repo.find_by_id(user_id)
        if user is None:
            raise LibraryError(f"User not found with ID: {user_id}")
        return user
