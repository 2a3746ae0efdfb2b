import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from taskminder.exceptions import TokenExpired, TokenInvalid
from taskminder.models.user import User, UserSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expiry: datetime


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    session_id: str | None


class TokenIssuer:
    """
    Signs and checks the JWTs handed to clients in the ``jwt`` cookie.

    A token carries the user id (``sub``), the server-side session it was
    issued with (``sid``) and its expiry. The signature and expiry are checked
    here without touching the database; whether the session is still live is
    up to the caller.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(
        self,
        user: User,
        session_id: str | None = None,
        expires_delta: timedelta | None = None,
    ) -> IssuedToken:
        expiry = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode = {"sub": str(user.user_id), "exp": expiry}
        if session_id:
            to_encode["sid"] = session_id
        token = jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(token=token, expiry=expiry)

    def claims(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpired("Session expired, please log in again")
        except JWTError:
            raise TokenInvalid("Could not validate credentials")

        subject = payload.get("sub")
        if subject is None or not str(subject).isdigit():
            raise TokenInvalid("Could not validate credentials")
        return TokenClaims(user_id=int(subject), session_id=payload.get("sid"))

    def verify(self, token: str) -> int:
        return self.claims(token).user_id


# ── Server-side sessions ────────────────────────────────

async def open_session(db: AsyncSession, user_id: int, now: datetime, lifetime: timedelta) -> UserSession:
    session = UserSession(
        session_id=secrets.token_urlsafe(32),
        user_id=user_id,
        expires_at=now + lifetime,
    )
    db.add(session)
    await db.flush()
    return session


async def resolve_session(db: AsyncSession, session_id: str, now: datetime) -> int | None:
    """Return the user id behind a live session. An expired row is removed on sight."""
    result = await db.execute(select(UserSession).filter(UserSession.session_id == session_id))
    session = result.scalars().first()
    if session is None:
        return None
    if session.expires_at <= now:
        await db.delete(session)
        await db.commit()
        return None
    return session.user_id


async def close_session(db: AsyncSession, session_id: str) -> None:
    await db.execute(delete(UserSession).where(UserSession.session_id == session_id))
