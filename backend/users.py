import logging
from typing import Optional, Tuple

from errors import ValidationError
from models import GoogleProfile, SettingsUpdateRequest, User
from store import KeyValueStore, load_record

logger = logging.getLogger(__name__)

USER_PREFIX = "user:"
MAX_NICKNAME_LENGTH = 20
MAX_PROFILE_IMAGE_CHARS = 200 * 1024


def user_key(user_id: str) -> str:
    return USER_PREFIX + user_id


class UserRepository:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self, user_id: str) -> Optional[User]:
        key = user_key(user_id)
        return load_record(User, key, await self.store.get(key))

    async def save(self, user: User) -> User:
        await self.store.put(user_key(user.id), user.to_json())
        return user

    async def upsert_from_profile(self, profile: GoogleProfile) -> Tuple[User, bool]:
        """Create the user on first login, otherwise refresh it from Google.

        Returns the stored user and whether it was just created. A returning
        user's profile image is only taken from Google while they have none.
        """
        user = await self.get(profile.sub)
        created = user is None
        if user is None:
            user = User(
                id=profile.sub,
                email=profile.email,
                name=profile.name,
                nickname=profile.name,
                profile_image=profile.picture,
            )
        elif not user.profile_image:
            user.profile_image = profile.picture

        await self.save(user)
        return user, created

    async def update_profile(self, user: User, patch: SettingsUpdateRequest) -> User:
        provided = patch.model_fields_set

        if "nickname" in provided:
            if patch.nickname is None or len(patch.nickname) > MAX_NICKNAME_LENGTH:
                raise ValidationError("Invalid nickname")
        if "profile_image" in provided and patch.profile_image:
            if len(patch.profile_image) > MAX_PROFILE_IMAGE_CHARS:
                raise ValidationError("Profile image too large (max 200KB)")

        if "nickname" in provided:
            user.nickname = patch.nickname
        if "profile_image" in provided:
            user.profile_image = patch.profile_image or None
        if patch.settings is not None:
            changes = patch.settings.model_dump(exclude_none=True)
            user.settings = user.settings.model_copy(update=changes)

        await self.save(user)
        logger.info(f"User {user.id} updated profile fields: {sorted(provided)}")
        return user
