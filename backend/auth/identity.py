import logging
from typing import Optional

from auth.sessions import SessionManager
from models import User
from users import UserRepository

logger = logging.getLogger(__name__)


class IdentityResolver:
    def __init__(self, sessions: SessionManager, users: UserRepository):
        self.sessions = sessions
        self.users = users

    async def current_user(self, session_token: Optional[str]) -> Optional[User]:
        """Map a session cookie to its user, or None for anonymous requests.

        A live session whose user record is missing resolves to None; the user
        is not re-created here.
        """
        session = await self.sessions.resolve_session(session_token)
        if session is None:
            return None

        user = await self.users.get(session.user_id)
        if user is None:
            logger.warning(f"Session for user {session.user_id} points to a missing user record")
        return user
