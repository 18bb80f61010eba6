from typing import Optional
from argon2 import PasswordHasher as Argon2PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHash
from starlette.concurrency import run_in_threadpool
from config import settings


class PasswordHasher:
    """Argon2 password hasher with OWASP-recommended parameters"""

    def __init__(
        self,
        time_cost: int = settings.ARGON2_TIME_COST,
        memory_cost: int = settings.ARGON2_MEMORY_COST,
        parallelism: int = settings.ARGON2_PARALLELISM,
        hash_len: int = settings.ARGON2_HASH_LENGTH,
        salt_len: int = settings.ARGON2_SALT_LENGTH,
    ):
        self.ph = Argon2PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_len,
            salt_len=salt_len,
        )
        # Verified against when the account does not exist, so that a miss
        # costs the same as a wrong password.
        self._dummy_hash = self.ph.hash("dummy-password-for-timing")

    def hash_password(self, password: str) -> str:
        return self.ph.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            self.ph.verify(password_hash, password)
            return True
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False

    def verify_dummy(self, password: str) -> bool:
        self.verify_password(password, self._dummy_hash)
        return False

    def needs_rehash(self, password_hash: str) -> bool:
        try:
            return self.ph.check_needs_rehash(password_hash)
        except (VerificationError, InvalidHash):
            return True

    # Hashing is deliberately slow; keep it off the event loop.
    async def hash_password_async(self, password: str) -> str:
        return await run_in_threadpool(self.hash_password, password)

    async def verify_password_async(self, password: str, password_hash: Optional[str]) -> bool:
        if password_hash is None:
            return await run_in_threadpool(self.verify_dummy, password)
        return await run_in_threadpool(self.verify_password, password, password_hash)


# Global password hasher instance
pwd_hasher = PasswordHasher()
