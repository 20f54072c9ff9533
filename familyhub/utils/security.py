"""Security utilities: password hashing, invite/share code and id generation."""

import secrets
from collections.abc import Container

import bcrypt

from familyhub.config import settings
from familyhub.errors import CodeSpaceExhausted


# --- Password Hashing ---

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Not a bcrypt hash
        return False


# --- Codes ---

def generate_code(
    existing: Container[str] = (),
    length: int | None = None,
    alphabet: str | None = None,
    max_attempts: int | None = None,
) -> str:
    """Generate a random code not present in `existing`.

    Raises CodeSpaceExhausted after `max_attempts` collisions.
    """
    length = length or settings.code_length
    alphabet = alphabet or settings.code_alphabet
    max_attempts = max_attempts or settings.code_max_attempts

    for _ in range(max_attempts):
        code = "".join(secrets.choice(alphabet) for _ in range(length))
        if code not in existing:
            return code
    raise CodeSpaceExhausted(f"No free code after {max_attempts} attempts")


def normalize_code(raw: str) -> str:
    """Uppercase and strip anything outside A-Z/0-9 (user-typed codes)."""
    return "".join(ch for ch in raw.strip().upper() if ch.isascii() and ch.isalnum())


# --- Ids ---

def new_id(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(6)}"
