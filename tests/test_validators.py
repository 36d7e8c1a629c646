import pytest

from novabook.enums import MemberRole
from novabook.errors import LibraryError
from novabook.validators import (
    ISBNValidator,
    TextValidator,
    UserValidator,
    is_valid_id,
    parse_enum,
    validate_id,
)


@pytest.mark.parametrize("isbn", ["0306406152", "978-0-306-40615-7", "0-8044-2957-X", " 9780306406157 "])
def test_valid_isbns(isbn):
    ISBNValidator.validate_isbn(isbn)


@pytest.mark.parametrize("isbn", ["", "   ", "123", "12345678901", "1" * 21])
def test_invalid_isbns(isbn):
    with pytest.raises(LibraryError):
        ISBNValidator.validate_isbn(isbn)


def test_normalize_isbn():
    assert ISBNValidator.normalize_isbn("0-8044-2957-x") == "080442957X"
    assert ISBNValidator.normalize_isbn(None) == ""


@pytest.mark.parametrize("email", ["a@b.co", "first.last+tag@mail.example.org"])
def test_valid_emails(email):
    UserValidator.validate_email(email)


@pytest.mark.parametrize("email", ["", "plain", "a@b", "a@b.c", "@example.com", "a" * 120 + "@x.com"])
def test_invalid_emails(email):
    with pytest.raises(LibraryError):
        UserValidator.validate_email(email)


@pytest.mark.parametrize("phone", ["0123456789", "+44 (20) 7946-0958", "123456789012345"])
def test_valid_phones(phone):
    UserValidator.validate_phone(phone)


@pytest.mark.parametrize("phone", ["", "123", "1234567890123456", "phone-number"])
def test_invalid_phones(phone):
    with pytest.raises(LibraryError):
        UserValidator.validate_phone(phone)


def test_name_rules():
    TextValidator.validate_name("Molly")
    with pytest.raises(LibraryError, match="only numbers"):
        TextValidator.validate_name("42")


def test_ids():
    validate_id(1, "Book ID")
    with pytest.raises(LibraryError, match="Book ID cannot be null"):
        validate_id(None, "Book ID")
    with pytest.raises(LibraryError, match="Book ID must be positive"):
        validate_id(-1, "Book ID")
    assert is_valid_id(3) is True
    assert is_valid_id(0) is False


def test_parse_enum():
    assert parse_enum(MemberRole, " premium ", "role") == MemberRole.PREMIUM
    assert parse_enum(MemberRole, MemberRole.REGULAR, "role") == MemberRole.REGULAR
    with pytest.raises(LibraryError, match="Invalid role: vip"):
        parse_enum(MemberRole, "vip", "role")
