# app/services/auth.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import ACCESS_TOKEN_EXPIRE_MINUTES
from app.errors import DomainError
from app.models import User
from app.repositories import UserRepository
from app.schemas import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from app.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """Registration and login; issues bearer tokens for the HTTP layer."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)

    async def register(self, payload: RegisterRequest) -> AuthResponse:
        if await self.users.find_by_email(payload.email) is not None:
            raise DomainError.conflict("User with this email already exists")

        try:
            user = await self.users.create(
                email=payload.email,
                password_hash=hash_password(payload.password),
                first_name=payload.first_name,
                last_name=payload.last_name,
            )
            response = self._issue(user)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DomainError.conflict("User with this email already exists")

        logger.info("Registered user %s", response.user.id)
        return response

    async def login(self, payload: LoginRequest) -> AuthResponse:
        user = await self.users.find_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            raise DomainError.unauthorized("Invalid email or password")
        return self._issue(user)

    @staticmethod
    def _issue(user: User) -> AuthResponse:
        return AuthResponse(
            user=UserResponse(
                id=user.id,
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
            ),
            token=create_access_token(user.id, user.email),
            expires_in_seconds=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )
