"""FastAPI providers for the per-request collaborators.

Everything is built from ``app.state`` on each request, so handlers never
reach for module-level state.
"""

from fastapi import Depends, Request

from auth.identity import IdentityResolver
from auth.sessions import SessionManager
from config import Settings
from lands import LandRepository
from store import KeyValueStore
from users import UserRepository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> KeyValueStore:
    return request.app.state.store


def get_identity_provider(request: Request):
    return request.app.state.identity_provider


def get_session_manager(
    store: KeyValueStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> SessionManager:
    return SessionManager(
        store,
        session_ttl=settings.session_ttl_seconds,
        state_ttl=settings.oauth_state_ttl_seconds,
    )


def get_user_repository(store: KeyValueStore = Depends(get_store)) -> UserRepository:
    return UserRepository(store)


def get_land_repository(store: KeyValueStore = Depends(get_store)) -> LandRepository:
    return LandRepository(store)


def get_identity_resolver(
    sessions: SessionManager = Depends(get_session_manager),
    users: UserRepository = Depends(get_user_repository),
) -> IdentityResolver:
    return IdentityResolver(sessions, users)
