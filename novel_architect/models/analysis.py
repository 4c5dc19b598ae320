"""Data models for generator output that is not persisted with the project."""

from typing import Any, Optional

from pydantic import ConfigDict, Field, model_validator

from .project import WireModel


class Suggestion(WireModel):
    """A proposed literal replacement for a fragment of the draft."""

    model_config = ConfigDict(frozen=True)

    original: str
    primary_suggestion: str
    alternatives: tuple[str, ...] = ()
    reason: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_generator_key(cls, data: Any) -> Any:
        # The analysis prompt asks for the preferred rewrite under "suggestion".
        if isinstance(data, dict) and "suggestion" in data:
            data = dict(data)
            suggested = data.pop("suggestion")
            if "primarySuggestion" not in data and "primary_suggestion" not in data:
                data["primarySuggestion"] = suggested
        return data

    @property
    def candidates(self) -> tuple[str, ...]:
        return (self.primary_suggestion, *self.alternatives)


class AnalysisResult(WireModel):
    score: int = Field(ge=0, le=100)  # higher means more machine-like
    verdict: str = ""
    human_traits: list[str] = Field(default_factory=list)
    ai_traits: list[str] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)


class RankingBook(WireModel):
    rank: int
    title: str
    author: str = ""
    genre: str = ""
    heat: str = ""
    summary: str = ""
    highlights: str = ""
    cover_url: Optional[str] = None


class RankingCategory(WireModel):
    name: str
    books: list[RankingBook] = Field(default_factory=list)


class RankingSource(WireModel):
    title: str
    uri: str


class RankingResult(WireModel):
    categories: list[RankingCategory] = Field(default_factory=list)
    trend_analysis: str = "暂无趋势分析"
    sources: list[RankingSource] = Field(default_factory=list)
