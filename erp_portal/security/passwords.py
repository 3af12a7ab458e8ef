from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError


password_hash = PasswordHash.recommended()


def hash_password(raw_password: str) -> str:
    return password_hash.hash(raw_password)


def verify_and_update_password(raw_password: str, hashed_password: str) -> tuple[bool, str | None]:
    """Verify a login password and return a fresh hash when the stored one is outdated."""
    try:
        return password_hash.verify_and_update(raw_password, hashed_password)
    except UnknownHashError:
        return False, None
