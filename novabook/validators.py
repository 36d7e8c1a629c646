import re
from enum import Enum
from typing import Optional, Type, TypeVar

from novabook.errors import LibraryError

E = TypeVar("E", bound=Enum)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PHONE_PATTERN = re.compile(r"^\d{10,15}$")

MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 120
MAX_TEXT_LENGTH = 100
MAX_ISBN_LENGTH = 20


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class ISBNValidator:
    """Format checks for ISBN-10 / ISBN-13 identifiers.

    Only the shape is checked (10 or 13 characters once separators are
    removed); check digits are not verified.
    """

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return re.sub(r"[\s\-]", "", raw).upper()

    @staticmethod
    def validate_isbn(isbn: Optional[str]) -> None:
        if _is_blank(isbn):
            raise LibraryError("ISBN cannot be null or empty")
        if len(isbn) > MAX_ISBN_LENGTH:
            raise LibraryError(f"ISBN cannot exceed {MAX_ISBN_LENGTH} characters")
        if len(ISBNValidator.normalize_isbn(isbn)) not in (10, 13):
            raise LibraryError("ISBN must be 10 or 13 digits")


class TextValidator:
    """Validations for free-text fields: names, titles and authors."""

    @staticmethod
    def validate_name(name: Optional[str]) -> None:
        if _is_blank(name):
            raise LibraryError("Name cannot be null or empty")
        if len(name) > MAX_NAME_LENGTH:
            raise LibraryError(f"Name cannot exceed {MAX_NAME_LENGTH} characters")
        if name.strip().isdigit():
            raise LibraryError("Name cannot contain only numbers")

    @staticmethod
    def validate_title(title: Optional[str]) -> None:
        if _is_blank(title):
            raise LibraryError("Title cannot be null or empty")
        if len(title) > MAX_TEXT_LENGTH:
            raise LibraryError(f"Title cannot exceed {MAX_TEXT_LENGTH} characters")

    @staticmethod
    def validate_author(author: Optional[str]) -> None:
        if _is_blank(author):
            raise LibraryError("Author cannot be null or empty")
        if len(author) > MAX_TEXT_LENGTH:
            raise LibraryError(f"Author cannot exceed {MAX_TEXT_LENGTH} characters")


class UserValidator:
    @staticmethod
    def validate_email(email: Optional[str]) -> None:
        if _is_blank(email):
            raise LibraryError("Email cannot be null or empty")
        if len(email) > MAX_EMAIL_LENGTH:
            raise LibraryError(f"Email cannot exceed {MAX_EMAIL_LENGTH} characters")
        if not EMAIL_PATTERN.match(email.strip()):
            raise LibraryError("Invalid email format")

    @staticmethod
    def validate_password(password: Optional[str]) -> None:
        if _is_blank(password):
            raise LibraryError("Password cannot be null or empty")
        if len(password) < 8:
            raise LibraryError("Password must be at least 8 characters long")
        if len(password) > 255:
            raise LibraryError("Password cannot exceed 255 characters")

    @staticmethod
    def validate_phone(phone: Optional[str]) -> None:
        if _is_blank(phone):
            raise LibraryError("Phone cannot be null or empty")
        if len(phone) > 30:
            raise LibraryError("Phone cannot exceed 30 characters")
        cleaned = re.sub(r"[\s\-()+]", "", phone)
        if not PHONE_PATTERN.match(cleaned):
            raise LibraryError("Invalid phone number format")

    @staticmethod
    def validate_user(name: str, email: str, password: str, phone: str) -> None:
        TextValidator.validate_name(name)
        UserValidator.validate_email(email)
        UserValidator.validate_password(password)
        UserValidator.validate_phone(phone)


def validate_book(isbn: str, title: str, author: str, stock: Optional[int]) -> None:
    ISBNValidator.validate_isbn(isbn)
    TextValidator.validate_title(title)
    TextValidator.validate_author(author)
    validate_stock(stock)


def validate_stock(stock: Optional[int]) -> None:
    if stock is None:
        raise LibraryError("Stock cannot be null")
    if stock < 0:
        raise LibraryError("Stock cannot be negative")


def validate_id(value: Optional[int], field_name: str) -> None:
    if value is None:
        raise LibraryError(f"{field_name} cannot be null")
    if value <= 0:
        raise LibraryError(f"{field_name} must be positive")


def is_valid_id(value: Optional[int]) -> bool:
    return value is not None and value > 0


def parse_enum(enum_cls: Type[E], value, label: str) -> E:
    """Look up an enum member by name, case-insensitively."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls[str(value).strip().upper()]
    except KeyError:
        raise LibraryError(f"Invalid {label}: {value}") from None
