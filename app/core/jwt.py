from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any
from jose import jwt, JWTError
from pydantic import BaseModel
import logging

from app.core.exceptions import InvalidTokenError
from config import settings

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
    """Identity carried inside a signed token"""
    subject: int
    email: str
    role: str
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    model_config = {"frozen": True}


class TokenAuthority:
    """Mints and verifies signed access and refresh tokens.

    The signing secret is passed in rather than read from the environment on
    each call, so tests and key rotation can supply their own.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_token_ttl: timedelta = timedelta(minutes=15),
        refresh_token_ttl: timedelta = timedelta(days=30),
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl

    @classmethod
    def from_settings(cls, config=settings) -> "TokenAuthority":
        return cls(
            secret=config.JWT_SECRET,
            algorithm=config.JWT_ALGORITHM,
            access_token_ttl=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_token_ttl=timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS),
        )

    def issue_access_token(self, claims: TokenClaims, issued_at: Optional[datetime] = None) -> str:
        return self._sign(claims, self.access_token_ttl, issued_at)

    def issue_refresh_token(self, claims: TokenClaims, issued_at: Optional[datetime] = None) -> str:
        return self._sign(claims, self.refresh_token_ttl, issued_at)

    def verify(self, token: str) -> TokenClaims:
        """Check signature and expiry and return the embedded claims.

        Raises InvalidTokenError for every failure; expired and tampered
        tokens are not distinguished.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require_exp": True, "require_sub": True},
            )
        except JWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise InvalidTokenError(str(e)) from e

        return self._claims_from_payload(payload)

    def verify_access(self, token: str) -> TokenClaims:
        """Verify a token and require that it was minted as an access token.

        Tokens carry no type claim, so the lifetime (exp - iat) tells the two
        kinds apart; anything living longer than the access TTL is refused.
        """
        claims = self.verify(token)
        if claims.issued_at is None:
            raise InvalidTokenError("Access token has no issue time")
        if claims.expires_at - claims.issued_at > self.access_token_ttl:
            raise InvalidTokenError("Token lifetime exceeds access token TTL")
        return claims

    def _sign(self, claims: TokenClaims, ttl: timedelta, issued_at: Optional[datetime]) -> str:
        now = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(claims.subject),
            "email": claims.email,
            "role": claims.role,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    @staticmethod
    def _claims_from_payload(payload: Dict[str, Any]) -> TokenClaims:
        try:
            return TokenClaims(
                subject=int(payload["sub"]),
                email=payload["email"],
                role=payload["role"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc) if "iat" in payload else None,
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError(f"Malformed token claims: {e}") from e


# Global token authority built from settings
token_authority = TokenAuthority.from_settings()
