"""User domain service: register, login, refresh.

register owns its transaction (unit_of_work); the signup bonus is posted
through the token ledger inside it, so a user never exists without the
matching ledger entry.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pp_common.database import unit_of_work
from src.pp_common.enums import TokenTransactionType
from src.pp_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    UsernameExistsError,
)
from src.pp_common.id_generator import generate_id
from src.pp_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.pp_gateway.auth.password import hash_password, verify_password
from src.pp_gateway.user.db_models import UserModel
from src.pp_ledger.application.ledgers import token_ledger
from src.pp_ledger.domain.models import LedgerEntryInput

logger = logging.getLogger(__name__)


class UserService:
    """Stateless service — instantiate once, reuse across requests."""

    def __init__(self, signup_bonus: int | None = None) -> None:
        self._signup_bonus = (
            settings.SIGNUP_BONUS_TOKENS if signup_bonus is None else signup_bonus
        )

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        db: AsyncSession,
    ) -> UserModel:
        async with unit_of_work(db):
            # DB UNIQUE constraints are the final guard
            result = await db.execute(
                select(UserModel).where(UserModel.username == username)
            )
            if result.scalar_one_or_none() is not None:
                raise UsernameExistsError()

            result = await db.execute(
                select(UserModel).where(UserModel.email == email)
            )
            if result.scalar_one_or_none() is not None:
                raise EmailExistsError()

            user = UserModel(
                id=generate_id(),
                username=username,
                email=email,
                password_hash=hash_password(password),
                is_active=True,
                is_admin=False,
            )
            db.add(user)
            await db.flush()

            if self._signup_bonus > 0:
                await token_ledger.credit(
                    db,
                    LedgerEntryInput(
                        user_id=user.id,
                        amount=self._signup_bonus,
                        tx_type=TokenTransactionType.SIGNUP_BONUS,
                        description="Signup bonus",
                    ),
                    join=True,
                )

        # Balance was written through raw SQL; reload the ORM view of it
        await db.refresh(user)
        logger.info("Registered user %s (%s)", user.id, username)
        return user

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Authenticate user and return (user, access_token, refresh_token).

        "User not found" and "Wrong password" both raise InvalidCredentialsError
        so usernames cannot be enumerated.
        """
        result = await db.execute(
            select(UserModel).where(UserModel.username == username)
        )
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(user.id),
            create_refresh_token(user.id),
        )

    async def refresh(self, refresh_token: str) -> str:
        """Validate refresh token and return a new access token.

        The refresh token itself is not rotated.
        """
        payload = decode_token(refresh_token, expected_type="refresh")
        user_id: str = str(payload["sub"])
        return create_access_token(user_id)
