"""Password/code hashing plus the access and OTP-proof JWTs."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from ems.core.config import settings

# One salted one-way primitive for both account passwords and OTP codes.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def get_password_hash(secret: str) -> str:
    return pwd_context.hash(secret)


def verify_password(plain_secret: str, hashed_secret: str) -> bool:
    """Constant-time comparison of a plaintext secret against its stored hash."""
    try:
        return pwd_context.verify(plain_secret, hashed_secret)
    except ValueError:
        # Malformed or unknown hash format; treat as a non-match.
        return False


ACCESS_TOKEN = "access"
VERIFICATION_TOKEN = "otp_proof"


def _encode(claims: dict, expires_delta: timedelta) -> str:
    to_encode = {**claims, "exp": datetime.now(timezone.utc) + expires_delta}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _decode(token: str, token_type: str) -> dict | None:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("typ") != token_type:
        return None
    return payload


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    return _encode({"sub": subject, "typ": ACCESS_TOKEN}, expires_delta or timedelta(minutes=15))


def decode_access_token(token: str) -> str | None:
    """Return the token subject, or None if the token is invalid or expired."""
    payload = _decode(token, ACCESS_TOKEN)
    return payload.get("sub") if payload else None


def create_verification_token(email: str, purpose: str, token_id: str, expires_delta: timedelta) -> str:
    """Signed proof that `email` just passed an OTP check for `purpose`."""
    return _encode({"sub": email, "purpose": purpose, "jti": token_id, "typ": VERIFICATION_TOKEN}, expires_delta)


def decode_verification_token(token: str) -> dict | None:
    return _decode(token, VERIFICATION_TOKEN)
