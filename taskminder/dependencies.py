from datetime import datetime, timezone

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskminder.context import AppContext
from taskminder.database import get_db
from taskminder.exceptions import Unauthenticated
from taskminder.services import auth as auth_service

SESSION_KEY = "session_id"
JWT_COOKIE = "jwt"


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def _token_from_request(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.cookies.get(JWT_COOKIE)


async def get_current_user_id(
    request: Request,
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
) -> int:
    """
    Guard for protected routes. Access always rests on a live server-side
    session: either the one named in the signed session cookie, or the one a
    JWT (``jwt`` cookie or bearer header) was issued with. Logging out deletes
    the session, so a replayed token stops working with it.
    """
    now = datetime.now(timezone.utc)

    session_id = request.session.get(SESSION_KEY)
    if session_id:
        user_id = await auth_service.resolve_session(db, session_id, now)
        if user_id is not None:
            return user_id

    token = _token_from_request(request)
    if token:
        claims = context.tokens.claims(token)
        if claims.session_id:
            user_id = await auth_service.resolve_session(db, claims.session_id, now)
            if user_id == claims.user_id:
                return user_id
        raise Unauthenticated("Session has ended, please log in again")

    raise Unauthenticated("Please log in to continue")
