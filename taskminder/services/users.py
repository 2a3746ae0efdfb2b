import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from taskminder.exceptions import DuplicateEmail, InvalidCredentials, ValidationError
from taskminder.models.user import User
from taskminder.schemas.user import UserCreate
from taskminder.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


def validate_signup(email: str | None, password: str | None) -> UserCreate:
    try:
        return UserCreate(email=email, password=password)
    except PydanticValidationError as e:
        field = e.errors()[0]["loc"][0]
        if field == "email":
            raise ValidationError("A valid email address is required")
        raise ValidationError("Password must be between 6 and 72 characters")


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).filter(User.email == email.strip().lower()))
    return result.scalars().first()


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).filter(User.user_id == user_id))
    return result.scalars().first()


async def create_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Register a new user. Only a bcrypt hash of the password is stored.

    Raises DuplicateEmail when the address is taken, whether that is seen by the
    lookup or only by the unique index (a concurrent signup).
    """
    data = validate_signup(email, password)

    if await find_by_email(db, data.email):
        raise DuplicateEmail("Email already registered")

    user = User(email=data.email, hashed_password=get_password_hash(data.password))
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateEmail("Email already registered")

    logger.info("Registered user %s", user.user_id)
    return user


async def authenticate(db: AsyncSession, email: str | None, password: str | None) -> User:
    user = await find_by_email(db, email) if email else None
    if not user or not verify_password(password, user.hashed_password):
        logger.info("Failed login attempt for %r", email)
        raise InvalidCredentials("Invalid email or password")
    return user
