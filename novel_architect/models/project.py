"""Data models for the persisted novel project."""

import time
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    return int(time.time() * 1000)


class WireModel(BaseModel):
    """Base for records exchanged with the generator and the snapshot store.

    Attributes are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Idea(WireModel):
    title: str = ""
    hook: str = ""
    goldfinger: str = ""  # the protagonist's unique advantage
    main_conflict: str = ""
    target_audience: str = ""


class Chapter(WireModel):
    number: int = 0
    title: str = ""
    summary: str = ""
    pacing: Literal["快", "中", "慢"] = "中"
    key_event: str = ""


class Character(WireModel):
    name: str = ""
    role: str = ""
    archetype: str = ""
    personality: str = ""
    backstory: str = ""
    cheat_ability: Optional[str] = Field(default=None, alias="cheat_ability")


class ProjectSnapshot(WireModel):
    idea: Optional[Idea] = None
    outline: list[Chapter] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)
    content: str = ""
    last_modified: int = Field(default_factory=now_ms)

    @classmethod
    def default(cls) -> "ProjectSnapshot":
        return cls()


class Genre(str, Enum):
    XIANXIA = "仙侠/修真"
    URBAN = "都市/系统"
    SCIFI = "科幻/诸天无限"
    FANTASY = "奇幻/西幻"
    HISTORY = "历史/架空"
    GAME = "游戏/虚拟网游"


class Tone(str, Enum):
    FACE_SLAPPING = "打脸/爽文"
    COMEDY = "轻松/搞笑"
    DARK = "黑暗/杀伐果断"
    TRADITIONAL = "慢热/传统"
    INTRIGUE = "权谋/智斗"
    TRAGEDY = "虐主/致郁"
