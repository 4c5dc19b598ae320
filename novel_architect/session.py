"""
Project session: the owner of the draft and everything generated for it.

The session holds the project state, routes generator results into it,
revises the draft with analysis suggestions and arms the autosave after every
change. All public operations return state or a notice string. Failures are
recorded on the relevant task and never raised to the caller.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from .autosave import DebouncedAutosave
from .config import Config
from .errors import PreconditionError, SuggestionNotFound
from .generator import AssistMode, StoryGenerator, WritingContext
from .models import AnalysisResult, Chapter, Character, Idea, ProjectSnapshot
from .revision import (
    Focus,
    SuggestionSet,
    apply_replacement,
    focus,
    ignore,
    reset_suggestion_view,
    select_replacement,
)
from .storage import ProjectStorage
from .tasks import Task, TaskKind, TaskRegistry

POLISH_HEADER = "\n\n--- 润色版本 ---\n"
POLISH_FOOTER = "\n----------------------\n"


@dataclass
class ProjectState:
    idea: Optional[Idea] = None
    outline: list[Chapter] = field(default_factory=list)
    characters: list[Character] = field(default_factory=list)
    content: str = ""

    @classmethod
    def from_snapshot(cls, snapshot: ProjectSnapshot) -> "ProjectState":
        return cls(
            idea=snapshot.idea,
            outline=list(snapshot.outline),
            characters=list(snapshot.characters),
            content=snapshot.content,
        )

    def to_snapshot(self) -> ProjectSnapshot:
        return ProjectSnapshot(
            idea=self.idea,
            outline=list(self.outline),
            characters=list(self.characters),
            content=self.content,
        )


class ProjectSession:
    """
    State changes arm the autosave timer on the event loop. Without an
    explicit ``loop`` they must be called while a loop is running, or they
    raise RuntimeError.
    """

    def __init__(
        self,
        generator: StoryGenerator,
        storage: ProjectStorage,
        config: Optional[Config] = None,
        state: Optional[ProjectState] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.config = config or Config()
        self.generator = generator
        self.storage = storage
        self.state = state or ProjectState()
        self.tasks = TaskRegistry(
            discard_stale_results=self.config.tasks.discard_stale_results,
            keep_result_while_running=self.config.tasks.keep_result_while_running,
        )
        self.suggestions = SuggestionSet()
        self.selections: dict[int, str] = {}
        self.last_saved: Optional[int] = None
        self.autosave = DebouncedAutosave(
            self.save_snapshot,
            interval=self.config.storage.autosave_interval,
            loop=loop,
        )

    @classmethod
    def load(
        cls,
        generator: StoryGenerator,
        storage: ProjectStorage,
        config: Optional[Config] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> "ProjectSession":
        snapshot = storage.load()
        session = cls(
            generator,
            storage,
            config=config,
            state=ProjectState.from_snapshot(snapshot),
            loop=loop,
        )
        if snapshot.content or snapshot.idea or snapshot.outline or snapshot.characters:
            session.last_saved = snapshot.last_modified
        return session

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------
    def _changed(self) -> None:
        self.autosave.schedule()

    def set_content(self, text: str) -> None:
        """Direct user edit of the draft."""
        self.state.content = text
        self._changed()

    def set_idea(self, idea: Optional[Idea]) -> None:
        self.state.idea = idea
        self._changed()

    def set_outline(self, outline: list[Chapter]) -> None:
        self.state.outline = list(outline)
        self._changed()

    def add_character(self, character: Character) -> None:
        self.state.characters = [*self.state.characters, character]
        self._changed()

    def _append_assist(self, mode: AssistMode, text: str) -> None:
        content = self.state.content
        if mode is AssistMode.POLISH:
            content += f"{POLISH_HEADER}{text}{POLISH_FOOTER}"
        else:
            content += ("" if content.endswith(" ") else " ") + text
        self.set_content(content)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def snapshot(self) -> ProjectSnapshot:
        return self.state.to_snapshot()

    def save_snapshot(self) -> Optional[ProjectSnapshot]:
        written = self.storage.persist(self.snapshot())
        if written is not None:
            self.last_saved = written.last_modified
        return written

    def save(self) -> Optional[ProjectSnapshot]:
        """Explicit save, bypassing the debounce timer.

        Returns the written snapshot, or None when the write failed.
        """
        self.autosave.cancel()
        return self.save_snapshot()

    def clear(self) -> None:
        self.autosave.cancel()
        self.storage.clear()
        self.state = ProjectState()
        self.suggestions = SuggestionSet()
        self.selections = {}
        self.last_saved = None

    def close(self) -> None:
        self.autosave.flush()

    # ------------------------------------------------------------------
    # Generation tasks
    # ------------------------------------------------------------------
    def task(self, kind: TaskKind) -> Task:
        return self.tasks.get(kind)

    def _require_idea(self) -> Idea:
        if self.state.idea is None:
            raise PreconditionError("请先生成小说创意。")
        return self.state.idea

    def _require_analysable_text(self) -> str:
        minimum = self.config.editor.min_analysis_chars
        if len(self.state.content) < minimum:
            raise PreconditionError(f"请至少输入{minimum}字进行检测。")
        return self.state.content

    async def generate_idea(self, genre: str, tone: str) -> Task:
        return await self.tasks.invoke(
            TaskKind.IDEA,
            lambda: self.generator.generate_idea(genre, tone),
            on_success=self.set_idea,
        )

    async def generate_outline(self, count: Optional[int] = None) -> Task:
        try:
            idea = self._require_idea()
        except PreconditionError as e:
            return self.tasks.reject(TaskKind.OUTLINE, str(e))
        count = count or self.config.editor.outline_chapters
        return await self.tasks.invoke(
            TaskKind.OUTLINE,
            lambda: self.generator.generate_outline(idea, count),
            on_success=self.set_outline,
        )

    async def generate_character(
        self, role: str, genre: str, use_outline: bool = True
    ) -> Task:
        outline = list(self.state.outline) if use_outline and self.state.outline else None
        return await self.tasks.invoke(
            TaskKind.CHARACTER,
            lambda: self.generator.generate_character(role, genre, outline),
            on_success=self.add_character,
        )

    def writing_context(self) -> WritingContext:
        return WritingContext(
            idea=self.state.idea,
            characters=tuple(self.state.characters),
            outline=tuple(self.state.outline),
        )

    async def assist(self, mode: AssistMode) -> Task:
        mode = AssistMode(mode)
        document = self.state.content
        context = self.writing_context()
        return await self.tasks.invoke(
            TaskKind.EDITOR_ASSIST,
            lambda: self.generator.assist_writing(document, mode, context),
            on_success=lambda text: self._append_assist(mode, text),
        )

    async def analyze(self) -> Task:
        try:
            document = self._require_analysable_text()
        except PreconditionError as e:
            return self.tasks.reject(TaskKind.ANALYSIS, str(e))
        self.suggestions = reset_suggestion_view(self.suggestions)
        self.selections = {}
        return await self.tasks.invoke(
            TaskKind.ANALYSIS,
            lambda: self.generator.analyze(document),
            on_success=self._show_analysis,
        )

    def _show_analysis(self, result: AnalysisResult) -> None:
        self.suggestions = SuggestionSet.from_analysis(result)
        self.selections = {}
        logger.info(f"Analysis score {result.score}, {len(result.suggestions)} suggestion(s)")

    async def fetch_rankings(self) -> Task:
        return await self.tasks.invoke(TaskKind.RANKING, self.generator.fetch_rankings)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------
    def selected_replacement(self, index: int) -> str:
        suggestion = self.suggestions.items[index]
        return self.selections.get(index, suggestion.primary_suggestion)

    def choose_replacement(self, index: int, candidate: str) -> str:
        chosen = select_replacement(self.suggestions.items[index], candidate)
        self.selections[index] = chosen
        return chosen

    def jump_to(self, index: int) -> tuple[Optional[Focus], Optional[str]]:
        """Locate a suggestion's fragment in the draft.

        Returns the focus position, or None and a notice when the fragment
        is gone.
        """
        suggestion = self.suggestions.items[index]
        found = focus(
            self.state.content,
            suggestion.original,
            line_height=self.config.editor.line_height,
            margin=self.config.editor.scroll_margin,
        )
        if found is None:
            return None, str(SuggestionNotFound(suggestion.original))
        return found, None

    def apply_suggestion(self, index: int) -> Optional[str]:
        """Replace the suggestion's fragment with the chosen candidate.

        Returns None on success, or a notice when the fragment is gone.
        """
        suggestion = self.suggestions.items[index]
        replaced = apply_replacement(
            self.state.content, suggestion.original, self.selected_replacement(index)
        )
        if not replaced.found:
            notice = str(SuggestionNotFound(suggestion.original))
            logger.info(f"Suggestion {index} not applied: {notice}")
            return notice
        self.set_content(replaced.text)
        return None

    def ignore_suggestion(self, index: int) -> None:
        self.suggestions = ignore(self.suggestions, index)
