from .project import (
    WireModel,
    Idea,
    Chapter,
    Character,
    ProjectSnapshot,
    Genre,
    Tone,
    now_ms,
)
from .analysis import (
    Suggestion,
    AnalysisResult,
    RankingBook,
    RankingCategory,
    RankingSource,
    RankingResult,
)

__all__ = [
    "WireModel",
    "Idea",
    "Chapter",
    "Character",
    "ProjectSnapshot",
    "Genre",
    "Tone",
    "now_ms",
    "Suggestion",
    "AnalysisResult",
    "RankingBook",
    "RankingCategory",
    "RankingSource",
    "RankingResult",
]
