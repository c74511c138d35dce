import secrets
from typing import Optional

from config import OAUTH_STATE_TTL_SECONDS, SESSION_TTL_SECONDS
from models import Session
from store import KeyValueStore, load_record

SESSION_PREFIX = "session:"
STATE_PREFIX = "oauth_state:"
STATE_PENDING = "pending"


def generate_token() -> str:
    """256 random bits, hex encoded."""
    return secrets.token_hex(32)


class SessionManager:
    """Issues and revokes opaque session tokens and OAuth CSRF state tokens.

    Both live in the key-value store with a TTL, so expiry is handled by the
    store. Sessions are fixed-lifetime: resolving one never extends it.
    """

    def __init__(
        self,
        store: KeyValueStore,
        session_ttl: int = SESSION_TTL_SECONDS,
        state_ttl: int = OAUTH_STATE_TTL_SECONDS,
    ):
        self.store = store
        self.session_ttl = session_ttl
        self.state_ttl = state_ttl

    async def issue_csrf_state(self) -> str:
        state = generate_token()
        await self.store.put(STATE_PREFIX + state, STATE_PENDING, ttl=self.state_ttl)
        return state

    async def consume_csrf_state(self, state: Optional[str]) -> bool:
        """Return True exactly once for a state issued by ``issue_csrf_state``.

        The read and the delete are two store calls, so two callbacks racing
        with the same state can both see it before either deletes it.
        """
        if not state:
            return False
        key = STATE_PREFIX + state
        if await self.store.get(key) is None:
            return False
        await self.store.delete(key)
        return True

    async def create_session(self, user_id: str) -> str:
        token = generate_token()
        session = Session(token=token, user_id=user_id)
        await self.store.put(SESSION_PREFIX + token, session.to_json(), ttl=self.session_ttl)
        return token

    async def destroy_session(self, token: Optional[str]) -> None:
        if token:
            await self.store.delete(SESSION_PREFIX + token)

    async def resolve_session(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        key = SESSION_PREFIX + token
        return load_record(Session, key, await self.store.get(key))
