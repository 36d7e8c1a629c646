import bcrypt

from novabook.errors import LibraryError


def hash_password(plain_password: str) -> str:
    if plain_password is None or not plain_password.strip():
        raise LibraryError("Password cannot be null or empty")
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def check_password(plain_password: str, hashed_password: str) -> bool:
    if plain_password is None or not plain_password.strip():
        raise LibraryError("Password cannot be null or empty")
    if hashed_password is None or not hashed_password.strip():
        raise LibraryError("Hash cannot be null or empty")
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # malformed hash stored in the database
        return False
