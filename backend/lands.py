"""Land storage and the tree planting protocol.

A land is one store record holding its whole tree list, so planting is a
read-modify-write of that record. The store has no conditional put, which
means two plants racing on the same land both read the same list and the
later write drops the earlier tree. That last-writer-wins behavior is kept
as is: nothing here retries, since retrying an append could plant twice.
"""

import logging
import uuid
from typing import Optional

from errors import NotFound, ValidationError
from models import Land, Tree, TreeType, User
from store import KeyValueStore, load_record

logger = logging.getLogger(__name__)

LAND_PREFIX = "land:"
# Base64 is ~33% larger than the bytes it encodes: ~667KB of text is ~500KB of image.
MAX_IMAGE_DATA_CHARS = 667 * 1024


def land_key(owner_id: str) -> str:
    return LAND_PREFIX + owner_id


def generate_tree_id() -> str:
    return f"tree_{uuid.uuid4().hex}"


def build_tree(
    planter: User,
    message: Optional[str] = None,
    image_data: Optional[str] = None,
    tree_type: Optional[str] = None,
) -> Tree:
    """Validate a visitor's submission and turn it into a tree ready to plant."""
    if not message and not image_data:
        raise ValidationError("Message or image required")

    if tree_type:
        try:
            kind = TreeType(tree_type)
        except ValueError:
            raise ValidationError("Invalid tree type")
    else:
        kind = TreeType.PINE

    if image_data and len(image_data) > MAX_IMAGE_DATA_CHARS:
        raise ValidationError("Image too large (max 500KB)")

    return Tree(
        id=generate_tree_id(),
        type=kind,
        planter_id=planter.id,
        planter_name=planter.display_name,
        message=message or "",
        image_url=image_data or None,
    )


class LandRepository:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self, owner_id: str) -> Optional[Land]:
        key = land_key(owner_id)
        return load_record(Land, key, await self.store.get(key))

    async def save(self, land: Land) -> Land:
        await self.store.put(land_key(land.owner_id), land.to_json())
        return land

    async def get_or_create(self, owner_id: str) -> Land:
        """Return the owner's land, persisting an empty one if there is none yet.

        This does not check that ``owner_id`` belongs to a real user.
        """
        land = await self.get(owner_id)
        if land is None:
            land = await self.save(Land(owner_id=owner_id))
            logger.info(f"Created empty land for {owner_id}")
        return land

    async def check_plantable(self, owner_id: str, planter_id: str) -> Land:
        """Reject a plant before its content is looked at: own land first, then a missing one."""
        if planter_id == owner_id:
            raise ValidationError("Cannot plant on your own land")

        land = await self.get(owner_id)
        if land is None:
            raise NotFound("Land not found")
        return land

    async def plant_tree(self, owner_id: str, tree: Tree) -> Tree:
        land = await self.check_plantable(owner_id, tree.planter_id)
        land.trees.append(tree)
        await self.save(land)
        logger.info(f"User {tree.planter_id} planted {tree.type.value} tree {tree.id} on land {owner_id}")
        return tree
