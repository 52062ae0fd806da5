"""Password hashing."""

import bcrypt

# bcrypt only reads the first 72 bytes; newer releases reject longer input.
BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_secret(password), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    """False for a wrong password or a stored value that is not a bcrypt hash."""
    try:
        return bcrypt.checkpw(_secret(plain), hashed.encode())
    except ValueError:
        return False
