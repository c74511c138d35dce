import logging
from typing import Optional

import httpx
from authlib.integrations.base_client import OAuthError
from authlib.integrations.starlette_client import OAuth
from fastapi import Cookie, Depends
from starlette.config import Config

from auth.identity import IdentityResolver
from config import SESSION_COOKIE_NAME, Settings
from dependencies import get_identity_resolver
from errors import AuthRequired, UpstreamAuthError
from models import GoogleProfile, User

logger = logging.getLogger(__name__)


# --- OAuth2 Client Setup ---
class GoogleIdentityProvider:
    """Google OpenID Connect client.

    The CSRF ``state`` is generated and checked by ``SessionManager`` against
    the key-value store, so this client only builds the authorize URL, exchanges
    the code and fetches the userinfo document.
    """

    def __init__(self, settings: Settings):
        config_data = {
            "GOOGLE_CLIENT_ID": settings.google_client_id or "",
            "GOOGLE_CLIENT_SECRET": settings.google_client_secret or "",
        }
        self.oauth = OAuth(Config(environ=config_data))
        self.oauth.register(
            name="google",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            server_metadata_url=settings.google_metadata_url,
            client_kwargs={"scope": "openid email profile"},
        )

    @property
    def client(self):
        return self.oauth.google

    async def authorization_url(self, redirect_uri: str, state: str) -> str:
        try:
            rv = await self.client.create_authorization_url(redirect_uri, state=state)
        except (OAuthError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Could not build Google authorize URL: {e}")
            raise UpstreamAuthError("server_error") from e
        return rv["url"]

    async def exchange_code(self, code: str, redirect_uri: str) -> dict:
        try:
            return await self.client.fetch_access_token(redirect_uri=redirect_uri, code=code)
        except (OAuthError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Google token exchange failed: {type(e).__name__}")
            raise UpstreamAuthError("token_error") from e

    async def fetch_profile(self, token: dict) -> GoogleProfile:
        try:
            info = await self.client.userinfo(token=token)
        except (OAuthError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Google userinfo request failed: {type(e).__name__}")
            raise UpstreamAuthError("userinfo_error") from e

        if not info or not info.get("sub"):
            raise UpstreamAuthError("userinfo_error", "Incomplete user information received")

        return GoogleProfile(
            sub=info["sub"],
            email=info.get("email"),
            name=info.get("name") or "",
            picture=info.get("picture"),
        )


# --- Current user dependencies ---
async def get_current_user(
    session: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Optional[User]:
    """The signed-in user, or None for anonymous requests."""
    return await resolver.current_user(session)


async def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if current_user is None:
        raise AuthRequired()
    return current_user
