import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
import yaml

from .storage import STORAGE_KEY


def _api_key_from_env() -> str:
    return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or ""


class GeminiConfig(BaseModel):
    api_key: str = Field(default_factory=_api_key_from_env)
    flash_model: str = Field(default="gemini-3-flash-preview")
    pro_model: str = Field(default="gemini-3-pro-preview")
    system_instruction: str = Field(
        default="你是一位资深的起点中文网网文编辑和风向分析师，精通网文套路。"
    )


class StorageConfig(BaseModel):
    root: Path = Field(default=Path("data/projects"))
    key: str = Field(default=STORAGE_KEY, min_length=1)
    autosave_interval: float = Field(default=5.0, gt=0)


class EditorConfig(BaseModel):
    line_height: int = Field(default=28, gt=0)
    scroll_margin: int = Field(default=100, ge=0)
    min_analysis_chars: int = Field(default=50, ge=0)
    outline_chapters: int = Field(default=5, gt=0)


class TaskConfig(BaseModel):
    discard_stale_results: bool = Field(default=True)
    keep_result_while_running: bool = Field(default=True)


class Config(BaseModel):
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    tasks: TaskConfig = Field(default_factory=TaskConfig)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path):
        data = self.model_dump(mode="json")
        # api_key is only ever read from the environment
        data["gemini"].pop("api_key", None)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True)
