"""Shared fixtures for the Giftree backend tests."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest
from fastapi.testclient import TestClient

from auth.sessions import SessionManager
from config import Settings
from errors import UpstreamAuthError
from main import create_app
from models import GoogleProfile, User
from store import MemoryStore
from users import UserRepository


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeIdentityProvider:
    """Stands in for Google: no network, scripted profile and failures."""

    def __init__(self, profile: GoogleProfile | None = None) -> None:
        self.profile = profile or GoogleProfile(
            sub="alice",
            email="alice@example.com",
            name="Alice",
            picture="https://images.example.com/alice.png",
        )
        self.fail_with: str | None = None
        self.exchanged: list[tuple[str, str]] = []

    async def authorization_url(self, redirect_uri: str, state: str) -> str:
        return f"https://accounts.example.com/authorize?state={state}"

    async def exchange_code(self, code: str, redirect_uri: str) -> dict:
        if self.fail_with == "token_error":
            raise UpstreamAuthError("token_error")
        self.exchanged.append((code, redirect_uri))
        return {"access_token": f"access-{code}", "token_type": "Bearer"}

    async def fetch_profile(self, token: dict) -> GoogleProfile:
        if self.fail_with == "userinfo_error":
            raise UpstreamAuthError("userinfo_error")
        return self.profile


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def settings() -> Settings:
    # The test client talks plain http, which would drop secure cookies.
    return Settings(cookie_secure=False)


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def client(settings: Settings, store: MemoryStore, provider: FakeIdentityProvider) -> TestClient:
    app = create_app(settings=settings, store=store, identity_provider=provider)
    return TestClient(app)


@pytest.fixture
def make_user(store: MemoryStore) -> Callable[..., User]:
    def _make_user(user_id: str, name: str | None = None, **fields) -> User:
        user = User(
            id=user_id,
            email=f"{user_id}@example.com",
            name=name or user_id.title(),
            **fields,
        )
        return asyncio.run(UserRepository(store).save(user))

    return _make_user


@pytest.fixture
def login(client: TestClient, store: MemoryStore) -> Callable[[str], str]:
    """Open a session for ``user_id`` and attach its cookie to the client."""

    def _login(user_id: str) -> str:
        token = asyncio.run(SessionManager(store).create_session(user_id))
        client.cookies.set("session", token)
        return token

    return _login
