import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from auth.oauth import GoogleIdentityProvider, get_current_user
from auth.sessions import SessionManager
from config import SESSION_COOKIE_NAME, Settings
from dependencies import (
    get_identity_provider,
    get_land_repository,
    get_session_manager,
    get_settings,
    get_user_repository,
)
from errors import InternalError, UpstreamAuthError
from lands import LandRepository
from models import User
from users import UserRepository

logger = logging.getLogger(__name__)
router = APIRouter()


def _site_url(request: Request, settings: Settings, path: str) -> str:
    origin = settings.public_origin or str(request.base_url).rstrip("/")
    return f"{origin}{path}"


def _callback_url(request: Request, settings: Settings) -> str:
    if settings.public_origin:
        return _site_url(request, settings, f"{settings.api_prefix}/auth/callback")
    return str(request.url_for("auth_callback"))


def _error_redirect(request: Request, settings: Settings, category: str) -> RedirectResponse:
    return RedirectResponse(
        url=_site_url(request, settings, f"/?error={category}"),
        status_code=status.HTTP_302_FOUND,
    )


def set_session_cookie(response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.get("/google", summary="Initiate Google OAuth2 login")
async def login(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
    provider: GoogleIdentityProvider = Depends(get_identity_provider),
    settings: Settings = Depends(get_settings),
):
    """
    Redirects the user to Google's authentication page with a fresh CSRF state.
    """
    try:
        state = await sessions.issue_csrf_state()
        authorize_url = await provider.authorization_url(_callback_url(request, settings), state)
    except UpstreamAuthError as e:
        return _error_redirect(request, settings, e.category)
    except InternalError:
        logger.exception("Could not issue OAuth state")
        return _error_redirect(request, settings, "server_error")

    return RedirectResponse(url=authorize_url, status_code=status.HTTP_302_FOUND)


@router.get("/callback", name="auth_callback", summary="Google OAuth2 callback endpoint")
async def auth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    sessions: SessionManager = Depends(get_session_manager),
    users: UserRepository = Depends(get_user_repository),
    lands: LandRepository = Depends(get_land_repository),
    provider: GoogleIdentityProvider = Depends(get_identity_provider),
    settings: Settings = Depends(get_settings),
):
    """
    Handles the callback from Google: checks the CSRF state, exchanges the code,
    creates or refreshes the user (and their land on first login), then issues
    a session cookie and sends the browser to the user's land.
    """
    if error:
        logger.info(f"Google login was not completed: {error}")
        return _error_redirect(request, settings, "auth_denied")

    if not code or not state:
        return _error_redirect(request, settings, "invalid_request")

    try:
        if not await sessions.consume_csrf_state(state):
            logger.warning("OAuth callback presented an unknown or already used state")
            return _error_redirect(request, settings, "invalid_state")

        token = await provider.exchange_code(code, _callback_url(request, settings))
        profile = await provider.fetch_profile(token)

        user, created = await users.upsert_from_profile(profile)
        if created:
            await lands.get_or_create(user.id)
            logger.info(f"New user {user.id} signed up")

        session_token = await sessions.create_session(user.id)
    except UpstreamAuthError as e:
        return _error_redirect(request, settings, e.category)
    except InternalError:
        logger.exception("Store failure during OAuth callback")
        return _error_redirect(request, settings, "server_error")

    logger.info(f"User {user.id} logged in")
    response = RedirectResponse(
        url=_site_url(request, settings, f"/land/{user.id}"),
        status_code=status.HTTP_302_FOUND,
    )
    set_session_cookie(response, session_token, settings)
    return response


@router.get("/me", summary="Current user")
async def me(current_user: Optional[User] = Depends(get_current_user)):
    if current_user is None:
        return {"user": None}
    return {"user": current_user.to_payload()}


@router.post("/logout", summary="Log out and revoke the session")
async def logout(
    session: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    await sessions.destroy_session(session)

    response = JSONResponse(content={"success": True})
    response.delete_cookie(
        SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return response
