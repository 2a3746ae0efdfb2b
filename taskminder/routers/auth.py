import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from taskminder.context import AppContext
from taskminder.dependencies import JWT_COOKIE, SESSION_KEY, get_context, get_db
from taskminder.models.user import User as UserModel
from taskminder.services import auth as auth_service
from taskminder.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


async def _log_in(
    request: Request,
    db: AsyncSession,
    context: AppContext,
    user: UserModel,
) -> RedirectResponse:
    # Replace whatever session this browser had before
    previous = request.session.pop(SESSION_KEY, None)
    if previous:
        await auth_service.close_session(db, previous)

    now = datetime.now(timezone.utc)
    session = await auth_service.open_session(db, user.user_id, now, context.session_lifetime)
    await db.commit()
    request.session[SESSION_KEY] = session.session_id

    issued = context.tokens.issue(user, session_id=session.session_id)
    response = RedirectResponse("/tasks", status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        key=JWT_COOKIE,
        value=issued.token,
        httponly=True,
        secure=context.settings.COOKIE_SECURE,
        samesite="lax",
        max_age=int((issued.expiry - now).total_seconds()),
    )
    logger.info("User %s logged in", user.user_id)
    return response


@router.get("/")
async def root():
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/login")
async def login_form():
    return {"form": "login", "action": "/login", "fields": ["email", "password"]}


@router.get("/signup")
async def signup_form():
    return {"form": "signup", "action": "/signup", "fields": ["email", "password"]}


@router.post("/login")
async def login(
    request: Request,
    email: str | None = Form(None),
    password: str | None = Form(None),
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    user = await user_service.authenticate(db, email, password)
    return await _log_in(request, db, context, user)


@router.post("/signup")
async def signup(
    request: Request,
    email: str | None = Form(None),
    password: str | None = Form(None),
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    user = await user_service.create_user(db, email, password)
    await db.commit()
    return await _log_in(request, db, context, user)


@router.get("/logout")
async def logout(request: Request, db: AsyncSession = Depends(get_db)):
    session_id = request.session.pop(SESSION_KEY, None)
    if session_id:
        await auth_service.close_session(db, session_id)
        await db.commit()
    request.session.clear()

    response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(JWT_COOKIE)
    return response
