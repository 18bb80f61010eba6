from datetime import datetime, timezone, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
import logging

from app.core.exceptions import ConflictError, UnauthorizedError, InvalidTokenError
from app.core.jwt import TokenAuthority, TokenClaims, token_authority as default_token_authority
from app.core.password import PasswordHasher, pwd_hasher as default_pwd_hasher
from app.models.user import User
from app.schemas.auth import AuthResult, RefreshResult, UserSummary
from app.services.credential_store import CredentialStore
from app.services.session_ledger import SessionLedger
from config import settings

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Incorrect email or password"
REFRESH_FAILED_MESSAGE = "Invalid or expired refresh token"
ACCESS_FAILED_MESSAGE = "Could not validate credentials"


class AuthService:
    """Composes the credential store, token authority and session ledger.

    This is the only layer that turns store and token errors into
    ConflictError / UnauthorizedError.
    """

    def __init__(
        self,
        token_authority: Optional[TokenAuthority] = None,
        password_hasher: Optional[PasswordHasher] = None,
        rotate_refresh_tokens: Optional[bool] = None,
    ):
        self.tokens = token_authority or default_token_authority
        self.hasher = password_hasher or default_pwd_hasher
        self.rotate_refresh_tokens = (
            settings.ROTATE_REFRESH_TOKENS if rotate_refresh_tokens is None else rotate_refresh_tokens
        )

    async def register(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        store = CredentialStore(db)

        # Fast path only; the unique constraint below is the real arbiter
        if await store.find_by_email(email):
            logger.info(f"Registration rejected, email already registered: {email}")
            raise ConflictError()

        password_hash = await self.hasher.hash_password_async(password)

        try:
            user = await store.create(email=email, password_hash=password_hash, name=name)
        except IntegrityError:
            await db.rollback()
            logger.info(f"Registration lost unique-email race: {email}")
            raise ConflictError()

        result = await self._open_session(db, user, ip_address, user_agent)
        logger.info(f"User registered: {user.email} (id={user.id})")
        return result

    async def login(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        store = CredentialStore(db)
        user = await store.find_by_email(email)

        # Always run one verification so a missing account costs the same
        password_ok = await self.hasher.verify_password_async(
            password, user.password_hash if user else None
        )

        if not user:
            raise self._login_failure(email, "user not found", ip_address)
        if not user.is_active:
            raise self._login_failure(email, "account inactive", ip_address)
        if not password_ok:
            raise self._login_failure(email, "invalid password", ip_address)

        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = await self.hasher.hash_password_async(password)

        result = await self._open_session(db, user, ip_address, user_agent)
        logger.info(f"User logged in: {user.email} (id={user.id})")
        return result

    async def refresh(self, db: AsyncSession, refresh_token: str) -> RefreshResult:
        try:
            claims = self.tokens.verify(refresh_token)
        except InvalidTokenError as e:
            raise self._refresh_failure(f"token verification failed: {e}")

        ledger = SessionLedger(db)
        if not await ledger.is_session_valid(claims.subject, refresh_token):
            raise self._refresh_failure(f"no active ledger entry for user {claims.subject}")

        user = await CredentialStore(db).find_by_id(claims.subject)
        if not user or not user.is_active:
            raise self._refresh_failure(f"user {claims.subject} missing or inactive")

        user_claims = self._claims_for(user)
        access_token = self.tokens.issue_access_token(user_claims)

        if not self.rotate_refresh_tokens:
            logger.info(f"Access token refreshed for user id={user.id}")
            return RefreshResult(access_token=access_token)

        # Only the request that actually flips the row may mint a replacement
        if not await ledger.revoke_session(user.id, refresh_token):
            await db.rollback()
            raise self._refresh_failure(f"refresh token for user {user.id} already rotated")
        # Tokens carry second-resolution timestamps; push iat past the presented
        # token so the replacement never serialises to the same string.
        not_before = claims.issued_at + timedelta(seconds=1) if claims.issued_at else None
        new_refresh_token = await self._record_refresh_token(
            db, user_claims, None, None, not_before=not_before
        )
        await db.commit()
        logger.info(f"Access and refresh tokens rotated for user id={user.id}")
        return RefreshResult(access_token=access_token, refresh_token=new_refresh_token)

    async def logout(self, db: AsyncSession, user_id: int) -> None:
        revoked = await SessionLedger(db).revoke_all_for_user(user_id)
        await db.commit()
        logger.info(f"User id={user_id} logged out, {revoked} session(s) revoked")

    async def authenticate(self, db: AsyncSession, access_token: str) -> User:
        """Resolve a bearer access token to an active user; refresh tokens are refused"""
        try:
            claims = self.tokens.verify_access(access_token)
        except InvalidTokenError as e:
            logger.warning(f"Access token rejected: {e}")
            raise UnauthorizedError(ACCESS_FAILED_MESSAGE)

        user = await CredentialStore(db).find_by_id(claims.subject)
        if not user or not user.is_active:
            logger.warning(f"Access token rejected: user {claims.subject} missing or inactive")
            raise UnauthorizedError(ACCESS_FAILED_MESSAGE)
        return user

    async def _open_session(
        self,
        db: AsyncSession,
        user: User,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> AuthResult:
        """Mint an access/refresh pair and commit the ledger row before returning it"""
        claims = self._claims_for(user)
        access_token = self.tokens.issue_access_token(claims)
        refresh_token = await self._record_refresh_token(db, claims, ip_address, user_agent)

        await db.commit()

        return AuthResult(
            access_token=access_token,
            refresh_token=refresh_token,
            user=UserSummary.model_validate(user),
        )

    async def _record_refresh_token(
        self,
        db: AsyncSession,
        claims: TokenClaims,
        ip_address: Optional[str],
        user_agent: Optional[str],
        not_before: Optional[datetime] = None,
    ) -> str:
        issued_at = datetime.now(timezone.utc)
        if not_before and not_before > issued_at:
            issued_at = not_before
        refresh_token = self.tokens.issue_refresh_token(claims, issued_at=issued_at)
        await SessionLedger(db).record_session(
            user_id=claims.subject,
            refresh_token=refresh_token,
            expires_at=issued_at + self.tokens.refresh_token_ttl,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return refresh_token

    @staticmethod
    def _claims_for(user: User) -> TokenClaims:
        return TokenClaims(subject=user.id, email=user.email, role=user.role)

    @staticmethod
    def _login_failure(email: str, reason: str, ip_address: Optional[str]) -> UnauthorizedError:
        logger.warning(f"Login failed for {email} from {ip_address or 'unknown'}: {reason}")
        return UnauthorizedError(LOGIN_FAILED_MESSAGE)

    @staticmethod
    def _refresh_failure(reason: str) -> UnauthorizedError:
        logger.warning(f"Token refresh rejected: {reason}")
        return UnauthorizedError(REFRESH_FAILED_MESSAGE)


# Global auth service instance
auth_service = AuthService()
