import logging
import secrets

from passlib.context import CryptContext

from app.cache.clients import CacheClient
from app.core.errors import AuthenticationError, ConflictError, PermissionDeniedError
from app.models import SignIn, SignUp, User
from app.store import DocumentStore

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
SESSION_PREFIX = "session:"


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify plain password against hashed one; unknown hash formats never match."""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


class SessionStore:
    """Opaque bearer tokens mapped to a user id, with a fixed TTL."""

    def __init__(self, client: CacheClient, ttl: int):
        self.client = client
        self.ttl = ttl

    def _key(self, token: str) -> str:
        return f"{SESSION_PREFIX}{token}"

    async def issue(self, user_id: str) -> str:
        token = secrets.token_urlsafe(24)
        await self.client.set(self._key(token), user_id, self.ttl)
        return token

    async def resolve(self, token: str) -> str | None:
        return await self.client.get(self._key(token))

    async def revoke(self, token: str) -> None:
        await self.client.delete(self._key(token))


class AuthService:
    def __init__(self, users: DocumentStore[User], sessions: SessionStore):
        self.users = users
        self.sessions = sessions

    async def sign_up(self, data: SignUp) -> User:
        if await self.users.find_one(username=data.username) or await self.users.find_one(
            email=data.email
        ):
            raise ConflictError("Username or Email already exists")

        user = User(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
        )
        user = await self.users.insert_one(user)
        logger.info(f"Registered user {user.id}")
        return user

    async def sign_in(self, data: SignIn) -> str:
        user = await self.users.find_one(username=data.username)
        if user is None or not verify_password(data.password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return await self.sessions.issue(user.id)

    async def refresh(self, token: str) -> str:
        """Rotate a live session token; the old token stops working."""
        user_id = await self.sessions.resolve(token)
        if user_id is None:
            raise AuthenticationError("Session expired or not found")
        # issue before revoking so a failed SET leaves the old session usable
        new_token = await self.sessions.issue(user_id)
        await self.sessions.revoke(token)
        return new_token

    async def authenticate(self, token: str) -> str:
        """Resolve a bearer token to the owner id used to scope tasks."""
        user_id = await self.sessions.resolve(token)
        if user_id is None:
            raise PermissionDeniedError("Invalid or expired session token")
        return user_id
