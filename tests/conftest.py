"""Shared fixtures: a manual clock loop and a scripted generator."""

import heapq
import itertools
from typing import Optional, Sequence

import pytest

from novel_architect.config import Config, StorageConfig
from novel_architect.generator import AssistMode, StoryGenerator, WritingContext
from novel_architect.models import (
    AnalysisResult,
    Chapter,
    Character,
    Idea,
    RankingResult,
    Suggestion,
)
from novel_architect.session import ProjectSession
from novel_architect.storage import JsonFileStore, ProjectStorage


SAMPLE_DRAFT = (
    "天还没有亮，整个村庄都笼罩在一片寂静之中。李明站在院子里，深深地吸了一口清晨的空气。\n"
    "他慢慺地走向森林。首先，他检查了行囊；其次，他回头看了一眼家门。\n"
    "母亲没有再说什么，只是默默地将一个包袱递到他手中。"
)


class FakeHandle:
    def __init__(self, when: float, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualLoop:
    """Just enough of an event loop for timer tests, driven by ``advance``."""

    def __init__(self):
        self.now = 0.0
        self._timers = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self.now + delay, callback, args)
        heapq.heappush(self._timers, (handle.when, next(self._seq), handle))
        return handle

    def advance(self, seconds: float):
        target = self.now + seconds
        while self._timers and self._timers[0][0] <= target:
            when, _, handle = heapq.heappop(self._timers)
            if handle.cancelled():
                continue
            self.now = when
            handle.callback(*handle.args)
        self.now = target

    def advance_to(self, moment: float):
        self.advance(moment - self.now)


SAMPLE_IDEA = Idea(
    title="开局签到荒古圣体",
    hook="每天签到就能变强",
    goldfinger="签到系统",
    main_conflict="复仇与登顶",
    target_audience="喜欢快节奏升级流的读者",
)

SAMPLE_OUTLINE = [
    Chapter(number=1, title="废柴少年", summary="李明被逐出宗门", pacing="快", key_event="被退婚"),
    Chapter(number=2, title="系统觉醒", summary="签到系统激活", pacing="中", key_event="获得圣体"),
]

SAMPLE_CHARACTER = Character(
    name="李明",
    role="主角",
    archetype="废柴逆袭",
    personality="坚毅腹黑",
    backstory="宗门弃徒",
    cheat_ability="签到系统",
)

SAMPLE_ANALYSIS = AnalysisResult(
    score=72,
    verdict="略显生硬",
    human_traits=["细节具体"],
    ai_traits=["滥用连接词"],
    suggestions=[
        Suggestion(
            original="慢慺地",
            primary_suggestion="飞快地",
            alternatives=["大步", "一溜烟地"],
            reason="节奏更快",
        ),
        Suggestion(
            original="首先，他检查了行囊；其次，",
            primary_suggestion="他摸了摸行囊，",
            alternatives=[],
            reason="去掉逻辑连接词",
        ),
        Suggestion(
            original="这句话不在原文里",
            primary_suggestion="无",
            alternatives=[],
            reason="过期建议",
        ),
    ],
)


class ScriptedGenerator(StoryGenerator):
    """Returns canned results and records every call."""

    def __init__(self):
        self.calls = []
        self.idea = SAMPLE_IDEA
        self.outline = SAMPLE_OUTLINE
        self.character = SAMPLE_CHARACTER
        self.assist_text = "他握紧了拳头。"
        self.analysis = SAMPLE_ANALYSIS
        self.rankings = RankingResult(trend_analysis="系统流依旧火热")
        self.error: Optional[Exception] = None

    def _record(self, name, *args):
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error

    async def generate_idea(self, genre: str, tone: str) -> Idea:
        self._record("generate_idea", genre, tone)
        return self.idea

    async def generate_outline(self, idea: Idea, count: int = 5) -> list[Chapter]:
        self._record("generate_outline", idea, count)
        return list(self.outline)

    async def generate_character(
        self, role: str, genre: str, outline: Optional[Sequence[Chapter]] = None
    ) -> Character:
        self._record("generate_character", role, genre, outline)
        return self.character

    async def assist_writing(
        self, document: str, mode: AssistMode, context: WritingContext
    ) -> str:
        self._record("assist_writing", document, mode, context)
        return self.assist_text

    async def analyze(self, document: str) -> AnalysisResult:
        self._record("analyze", document)
        return self.analysis

    async def fetch_rankings(self) -> RankingResult:
        self._record("fetch_rankings")
        return self.rankings

    def called(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


@pytest.fixture
def manual_loop():
    return ManualLoop()


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def storage(tmp_path):
    return ProjectStorage(JsonFileStore(tmp_path / "projects"))


@pytest.fixture
def config(tmp_path):
    return Config(storage=StorageConfig(root=tmp_path / "projects"))


@pytest.fixture
def session(generator, storage, config, manual_loop):
    return ProjectSession(generator, storage, config=config, loop=manual_loop)


@pytest.fixture
def sample_draft():
    return SAMPLE_DRAFT


@pytest.fixture
def sample_idea():
    return SAMPLE_IDEA


@pytest.fixture
def sample_analysis():
    return SAMPLE_ANALYSIS
