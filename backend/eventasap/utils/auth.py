from passlib.context import CryptContext
import os

# Cost factor for new hashes; tests set BCRYPT_ROUNDS=4
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS") or 12)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a login attempt. A stored value that is not a known hash never matches."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    """Lowercased, trimmed address used for storage and lookups."""
    return email.strip().lower()
