from dataclasses import dataclass
from typing import List, Optional, Union

from models import Land, OwnerProfile, PublicTree, Tree, User


@dataclass
class LandView:
    owner: OwnerProfile
    trees: List[Union[Tree, PublicTree]]
    is_owner: bool

    def to_payload(self) -> dict:
        return {
            "owner": self.owner.to_payload(),
            "trees": [tree.to_payload() for tree in self.trees],
            "isOwner": self.is_owner,
        }


def owner_profile(owner: User) -> OwnerProfile:
    # Email is never part of a land view, not even the owner's own.
    return OwnerProfile(
        id=owner.id,
        nickname=owner.display_name,
        profile_image=owner.profile_image,
        settings=owner.settings,
    )


def public_tree(tree: Tree) -> PublicTree:
    return PublicTree(
        id=tree.id,
        type=tree.type,
        planter_name=tree.planter_name,
        planted_at=tree.planted_at,
    )


def view_for(land: Land, owner: User, requester: Optional[User]) -> LandView:
    """Build the land as ``requester`` is allowed to see it.

    Only the owner gets messages and images back; every other viewer,
    anonymous or not, gets ``PublicTree`` projections.
    """
    is_owner = requester is not None and requester.id == land.owner_id
    if is_owner:
        trees = list(land.trees)
    else:
        trees = [public_tree(tree) for tree in land.trees]
    return LandView(owner=owner_profile(owner), trees=trees, is_owner=is_owner)
