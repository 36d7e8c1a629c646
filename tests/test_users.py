import pytest

from novabook.config import settings
from novabook.enums import AccessLevel, UserRole
from novabook.errors import LibraryError
from novabook.library import Library
from novabook.passwords import check_password, hash_password

PASSWORD = "correct-horse"


@pytest.fixture
def user(lib):
    return lib.users.register("Leopold Bloom", "Bloom@Example.com", PASSWORD, "+353 1 234 5678")


def test_register_hashes_password(lib, user):
    stored = lib.users.find_user_by_id(user.id)

    assert stored.email == "bloom@example.com"
    assert stored.password != PASSWORD
    assert stored.password.startswith("$2")
    assert stored.role == UserRole.USER
    assert "password" not in stored.to_dict()


def test_register_duplicate_email(lib, user):
    with pytest.raises(LibraryError, match="User already exists with email"):
        lib.users.register("Other", "bloom@example.com", PASSWORD, "0123456789")


@pytest.mark.parametrize(
    "email, password, phone, message",
    [
        ("not-an-email", PASSWORD, "0123456789", "Invalid email format"),
        ("a@b.com", "short", "0123456789", "Password must be at least 8 characters long"),
        ("a@b.com", PASSWORD, "12ab", "Invalid phone number format"),
        ("a@b.com", PASSWORD, "", "Phone cannot be null or empty"),
    ],
)
def test_register_validation(lib, email, password, phone, message):
    with pytest.raises(LibraryError, match=message):
        lib.users.register("Someone", email, password, phone)


def test_authenticate(lib, user):
    assert lib.users.authenticate("bloom@example.com", PASSWORD).id == user.id
    assert lib.users.authenticate("  BLOOM@example.com ", PASSWORD).id == user.id


def test_authenticate_wrong_password(lib, user):
    with pytest.raises(LibraryError, match="Authentication failed - invalid credentials"):
        lib.users.authenticate("bloom@example.com", "wrong-password")


def test_authenticate_unknown_or_inactive(lib, user):
    with pytest.raises(LibraryError, match="user not found or inactive"):
        lib.users.authenticate("nobody@example.com", PASSWORD)

    lib.users.deactivate_user(user.id)
    with pytest.raises(LibraryError, match="user not found or inactive"):
        lib.users.authenticate("bloom@example.com", PASSWORD)

    lib.users.activate_user(user.id)
    assert lib.users.authenticate("bloom@example.com", PASSWORD).id == user.id


def test_authenticate_blank_input(lib):
    with pytest.raises(LibraryError, match="Email and password cannot be null or empty"):
        lib.users.authenticate("", "")


def test_change_password(lib, user):
    with pytest.raises(LibraryError, match="Current password incorrect"):
        lib.users.change_password(user.id, "not-my-password", "brand-new-pass")

    lib.users.change_password(user.id, PASSWORD, "brand-new-pass")
    assert lib.users.authenticate("bloom@example.com", "brand-new-pass").id == user.id
    with pytest.raises(LibraryError):
        lib.users.authenticate("bloom@example.com", PASSWORD)


def test_admin_register(lib):
    admin = lib.users.admin_register("Admin", "admin@example.com", PASSWORD, "0123456789", "ADMIN", "MANAGE")

    assert admin.is_admin is True
    assert admin.access_level == AccessLevel.MANAGE
    assert check_password(PASSWORD, lib.users.find_user_by_id(admin.id).password)


def test_delete_user_is_soft_delete(lib, user):
    lib.users.delete_user(user.id)

    assert lib.users.find_user_by_id(user.id).deleted is True
    assert lib.users.get_all_users() == []
    with pytest.raises(LibraryError):
        lib.users.authenticate("bloom@example.com", PASSWORD)


def test_user_lookups(lib, user):
    assert lib.users.user_exists("BLOOM@example.com") is True
    assert lib.users.user_exists("") is False
    assert lib.users.find_user_by_email("bloom@example.com").id == user.id
    assert lib.users.find_user_by_id(0) is None
    assert [u.id for u in lib.users.get_all_active_users()] == [user.id]


def test_default_admin_created_on_empty_database(tmp_path, monkeypatch, clock):
    monkeypatch.setattr(settings, "admin_email", "root@example.com")
    monkeypatch.setattr(settings, "admin_password", "admin-password")

    lib = Library(db_file=str(tmp_path / "admin.db"), today=clock)
    admin = lib.users.find_user_by_email("root@example.com")
    assert admin is not None and admin.is_admin

    # A second start does not create another one
    Library(db_file=str(tmp_path / "admin.db"), today=clock)
    assert len(lib.users.get_all_users()) == 1


def test_check_password_with_malformed_hash():
    assert check_password("whatever-pass", "not-a-bcrypt-hash") is False
    assert check_password("whatever-pass", hash_password("whatever-pass")) is True


def test_update_user(lib, user):
    other = lib.users.register("Molly Bloom", "molly@example.com", PASSWORD, "0123456789")

    user.name = "Poldy Bloom"
    assert lib.users.update_user(user).name == "Poldy Bloom"

    other.email = "bloom@example.com"
    with pytest.raises(LibraryError, match="User already exists with email"):
        lib.users.update_user(other)
