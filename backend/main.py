import logging
import re
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# --- Authentication Imports ---
from auth.oauth import GoogleIdentityProvider, get_current_user, require_user
from auth.routes import router as auth_router
from config import Settings
from dependencies import get_land_repository, get_user_repository
from errors import GiftreeError, InternalError, NotFound
from lands import LandRepository, build_tree
from models import PlantRequest, SettingsUpdateRequest, User
from store import KeyValueStore, MemoryStore
from users import UserRepository
from visibility import view_for

logger = logging.getLogger(__name__)

LAND_ID_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")
INTERNAL_ERROR_MESSAGE = "Internal server error"


def _error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# === Error handlers ===

async def giftree_error_handler(request: Request, exc: GiftreeError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error(f"Internal error on {request.method} {request.url.path}: {exc.message}", exc_info=exc)
        return _error_response(INTERNAL_ERROR_MESSAGE, exc.status_code)
    return _error_response(exc.message, exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response("Invalid request", status.HTTP_400_BAD_REQUEST)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _error_response(INTERNAL_ERROR_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR)


# === Land endpoints ===

def _check_land_id(land_id: str) -> None:
    if not LAND_ID_PATTERN.fullmatch(land_id):
        raise NotFound("Land not found")


async def get_land(
    land_id: str,
    current_user: Optional[User] = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
    lands: LandRepository = Depends(get_land_repository),
):
    """
    Returns a land with its trees. Messages and images are only included when
    the requester owns the land.
    """
    _check_land_id(land_id)

    owner = await users.get(land_id)
    if owner is None:
        raise NotFound("Land not found")

    land = await lands.get_or_create(land_id)
    return JSONResponse(status_code=200, content=view_for(land, owner, current_user).to_payload())


async def plant_tree(
    land_id: str,
    data: PlantRequest,
    current_user: User = Depends(require_user),
    lands: LandRepository = Depends(get_land_repository),
):
    """
    Plants a tree on someone else's land. Requires authentication.
    """
    _check_land_id(land_id)
    await lands.check_plantable(land_id, current_user.id)

    tree = build_tree(
        current_user,
        message=data.message,
        image_data=data.image_data,
        tree_type=data.tree_type,
    )
    planted = await lands.plant_tree(land_id, tree)
    return JSONResponse(status_code=200, content={"success": True, "tree": {"id": planted.id}})


async def update_settings(
    data: SettingsUpdateRequest,
    current_user: User = Depends(require_user),
    users: UserRepository = Depends(get_user_repository),
):
    """
    Updates the signed-in user's nickname, profile image and colors.
    """
    user = await users.update_profile(current_user, data)
    return JSONResponse(status_code=200, content={"success": True, "user": user.to_payload()})


# === Setup ===

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    identity_provider=None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    if not settings.google_client_id or not settings.google_client_secret:
        logger.warning("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set; Google login will fail.")

    app = FastAPI(
        title="Giftree",
        description="A guestbook where visitors plant trees on each user's land.",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.store = store if store is not None else MemoryStore()
    app.state.identity_provider = identity_provider or GoogleIdentityProvider(settings)

    # Browsers refuse credentialed CORS responses with a wildcard origin.
    wildcard = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.add_exception_handler(GiftreeError, giftree_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["Authentication"])
    app.add_api_route(f"{prefix}/land/{{land_id}}", get_land, methods=["GET"],
                      summary="View a land", tags=["Land"])
    app.add_api_route(f"{prefix}/land/{{land_id}}/plant", plant_tree, methods=["POST"],
                      summary="Plant a tree on a land", tags=["Land"])
    app.add_api_route(f"{prefix}/user/settings", update_settings, methods=["POST"],
                      summary="Update the current user's profile", tags=["User"])

    logger.info(f"Giftree API mounted at '{prefix or '/'}'")
    return app


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format='%(asctime)s - %(levelname)s - %(message)s')


_settings = Settings.from_env()
configure_logging(_settings)
app = create_app(_settings)
