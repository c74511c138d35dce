from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_SKY_COLOR = "#87CEEB"
DEFAULT_LAND_COLOR = "#8B4513"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base for records stored and served as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TreeType(str, Enum):
    CHERRY = "cherry"
    PINE = "pine"
    MAPLE = "maple"
    CHRISTMAS = "christmas"


class UserSettings(CamelModel):
    sky_color: str = DEFAULT_SKY_COLOR
    land_color: str = DEFAULT_LAND_COLOR


class User(CamelModel):
    id: str  # Google sub (subject)
    email: Optional[str] = None
    name: str = ""
    nickname: Optional[str] = None
    profile_image: Optional[str] = None
    settings: UserSettings = Field(default_factory=UserSettings)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def display_name(self) -> str:
        return self.nickname or self.name

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}')>"


class Session(CamelModel):
    token: str
    user_id: str
    created_at: datetime = Field(default_factory=utc_now)


class Tree(CamelModel):
    id: str
    type: TreeType = TreeType.PINE
    planter_id: str
    planter_name: str
    message: str = ""
    image_url: Optional[str] = None
    planted_at: datetime = Field(default_factory=utc_now)


class PublicTree(CamelModel):
    """What a visitor who does not own the land may see of a tree."""

    id: str
    type: TreeType
    planter_name: str
    planted_at: datetime


class Land(CamelModel):
    owner_id: str
    trees: List[Tree] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)


class OwnerProfile(CamelModel):
    id: str
    nickname: str
    profile_image: Optional[str] = None
    settings: UserSettings


class GoogleProfile(BaseModel):
    """The subset of the OpenID userinfo response we keep."""

    sub: str
    email: Optional[str] = None
    name: str = ""
    picture: Optional[str] = None


# --- Request bodies ---

class PlantRequest(CamelModel):
    message: Optional[str] = None
    image_data: Optional[str] = None
    tree_type: Optional[str] = None


class UserSettingsPatch(CamelModel):
    sky_color: Optional[str] = None
    land_color: Optional[str] = None


class SettingsUpdateRequest(CamelModel):
    nickname: Optional[str] = None
    profile_image: Optional[str] = None
    settings: Optional[UserSettingsPatch] = None
