from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Optional
from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError
from passlib.context import CryptContext
from app.core.config import settings
from app.core.exceptions import ConfigurationError, VerificationError, VerificationFailure

# HS256 needs a key of at least 256 bits
MIN_SECRET_KEY_BYTES = 32

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified token"""
    username: str
    role: str


class TokenVerifier:
    """
    Issues and verifies signed access tokens.

    Tokens are self-contained: subject, role, issued-at and expiry are embedded
    and signed with a symmetric key. Nothing is stored server side, so a token
    stays valid until its expiry.
    """

    def __init__(
        self,
        secret_key: str,
        expire_minutes: int = 60 * 24,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None
    ):
        if len(secret_key.encode("utf-8")) < MIN_SECRET_KEY_BYTES:
            raise ConfigurationError(
                f"Token secret key must be at least {MIN_SECRET_KEY_BYTES} bytes for {algorithm}"
            )

        self._secret_key = secret_key
        self._algorithm = algorithm
        self._lifetime = timedelta(minutes=expire_minutes)
        self._clock = clock or _utcnow

    def issue(self, username: str, role: str) -> str:
        """Create a signed token for an authenticated user"""
        now = self._clock()
        claims = {
            "sub": username,
            "role": getattr(role, "value", role),
            "iat": int(now.timestamp()),
            "exp": int((now + self._lifetime).timestamp()),
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Check signature and expiry and return the embedded identity.

        Raises VerificationError with reason MALFORMED, INVALID_SIGNATURE or
        EXPIRED. The signature is checked before the expiry.
        """
        try:
            jwt.get_unverified_claims(token)
        except (JWTError, AttributeError, TypeError):
            raise VerificationError(VerificationFailure.MALFORMED)

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False}
            )
        except JWTClaimsError:
            raise VerificationError(VerificationFailure.MALFORMED)
        except JWTError:
            raise VerificationError(VerificationFailure.INVALID_SIGNATURE)

        username = payload.get("sub")
        role = payload.get("role")
        expires_at = payload.get("exp")

        if not isinstance(username, str) or not username:
            raise VerificationError(VerificationFailure.MALFORMED)
        if not isinstance(role, str) or not role:
            raise VerificationError(VerificationFailure.MALFORMED)
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise VerificationError(VerificationFailure.MALFORMED)

        if self._clock().timestamp() > expires_at:
            raise VerificationError(VerificationFailure.EXPIRED)

        return TokenClaims(username=username, role=role)


@lru_cache()
def get_token_verifier() -> TokenVerifier:
    """Get the process-wide verifier built from settings"""
    return TokenVerifier(
        settings.SECRET_KEY,
        expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        algorithm=settings.ALGORITHM
    )
