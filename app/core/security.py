from datetime import datetime, timedelta, timezone
from jose import jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt solo usa 72 bytes de input
BCRYPT_MAX_BYTES = 72

def hash_password(password: str) -> str:
    if password and len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError("Password too long for bcrypt (max 72 bytes).")
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    try:
        if password and len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            return False
        return pwd_context.verify(password, hashed)
    except ValueError:
        return False

def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode = {"sub": subject, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
