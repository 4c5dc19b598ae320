"""Generator collaborator: the remote service that writes ideas, outlines and prose."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from .config import GeminiConfig
from .errors import RemoteFailure
from .models import (
    AnalysisResult,
    Chapter,
    Character,
    Idea,
    RankingResult,
    RankingSource,
)
from .utils.json_utils import parse_json_response


class AssistMode(str, Enum):
    CONTINUE = "continue"
    POLISH = "polish"
    DESCRIBE = "describe"


@dataclass(frozen=True)
class WritingContext:
    """Read-only project context handed to the writing assistant."""

    idea: Optional[Idea] = None
    characters: tuple[Character, ...] = ()
    outline: tuple[Chapter, ...] = ()

    def describe(self) -> str:
        parts = []
        if self.idea:
            parts.append(
                f"小说名：《{self.idea.title}》。核心爽点：{self.idea.hook}。金手指：{self.idea.goldfinger}。"
            )
        if self.characters:
            people = "、".join(f"{c.name}({c.role}, {c.personality})" for c in self.characters)
            parts.append(f"主要角色：{people}。")
        if self.outline:
            recent = " -> ".join(c.summary for c in self.outline[:3])
            parts.append(f"近期大纲参考：{recent}。")
        return "\n".join(parts)


class StoryGenerator(ABC):
    """Interface of the generative service. All calls may be slow or fail."""

    @abstractmethod
    async def generate_idea(self, genre: str, tone: str) -> Idea:
        ...

    @abstractmethod
    async def generate_outline(self, idea: Idea, count: int = 5) -> list[Chapter]:
        ...

    @abstractmethod
    async def generate_character(
        self,
        role: str,
        genre: str,
        outline: Optional[Sequence[Chapter]] = None,
    ) -> Character:
        ...

    @abstractmethod
    async def assist_writing(
        self, document: str, mode: AssistMode, context: WritingContext
    ) -> str:
        ...

    @abstractmethod
    async def analyze(self, document: str) -> AnalysisResult:
        ...

    @abstractmethod
    async def fetch_rankings(self) -> RankingResult:
        ...


_STYLE = "你是一个专业的网文写手助手。请模仿起点中文网的白金大神风格：节奏快、有代入感、情绪调动强。"

_ASSIST_TASKS = {
    AssistMode.CONTINUE: (
        "请续写以下剧情（约200-300字）。紧接上文，尽量使用已有角色，保持爽文节奏。"
    ),
    AssistMode.POLISH: (
        "请润色以下文本。去除AI味，增加口语化和画面感，强化情绪冲突，修复语病。"
    ),
    AssistMode.DESCRIBE: (
        "基于上下文写一段生动的描写（场景、打斗招式或人物外貌），画面感强，控制在100字以内。"
    ),
}


class GeminiGenerator(StoryGenerator):
    """StoryGenerator backed by the google-genai async client."""

    def __init__(self, config: GeminiConfig, client: Any = None):
        self.config = config
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from google import genai

            if not self.config.api_key:
                raise RemoteFailure("Gemini API key is not configured")
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    async def _generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        json_output: bool = False,
        system: Optional[str] = None,
        tools: Optional[list] = None,
    ):
        from google.genai import types

        model = model or self.config.flash_model
        start = time.time()
        response = await self.client.aio.models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system,
                response_mime_type="application/json" if json_output else None,
                tools=tools,
            ),
        )
        logger.debug(f"{model} answered in {time.time() - start:.2f}s")
        return response

    async def _generate_json(self, prompt: str, **kwargs) -> Any:
        response = await self._generate(prompt, json_output=True, **kwargs)
        if not response.text:
            raise RemoteFailure("No response from AI")
        return parse_json_response(response.text)

    async def generate_idea(self, genre: str, tone: str) -> Idea:
        if not genre or not tone:
            raise ValueError("请填写完整的分类和基调")
        prompt = (
            f"请在 \"{genre}\" 分类下，以 \"{tone}\" 的基调，生成一个具有爆款潜质的网文创意。\n"
            "必须有强力的金手指和清晰的爽点，书名要吸睛。\n"
            "输出JSON，字段：title, hook, goldfinger, mainConflict, targetAudience。内容必须是中文。"
        )
        data = await self._generate_json(prompt, system=self.config.system_instruction)
        return _validate(Idea, data)

    async def generate_outline(self, idea: Idea, count: int = 5) -> list[Chapter]:
        prompt = (
            f"为以下网文创意生成前 {count} 章的大纲：\n"
            f"书名：{idea.title}\n金手指：{idea.goldfinger}\n看点：{idea.hook}\n"
            "前三章必须符合“黄金三章”：主角登场陷入困境，金手指激活，第三章小高潮打脸。\n"
            "输出JSON数组，每项字段：number, title, summary, pacing（快/中/慢）, keyEvent。内容必须是中文。"
        )
        data = await self._generate_json(prompt, model=self.config.pro_model)
        return _validate(list[Chapter], data)

    async def generate_character(
        self,
        role: str,
        genre: str,
        outline: Optional[Sequence[Chapter]] = None,
    ) -> Character:
        prompt = f"为一部 {genre} 小说创建一个 {role} 角色。\n"
        if outline:
            plot = "\n".join(f"第{c.number}章 {c.title}: {c.summary}" for c in outline)
            prompt += f"【现有大纲剧情参考】\n{plot}\n请让角色与大纲剧情严丝合缝。\n"
        prompt += (
            "输出JSON，字段：name, role, archetype, personality, backstory, cheat_ability（可选）。"
            "内容必须是中文。"
        )
        data = await self._generate_json(prompt)
        return _validate(Character, data)

    async def assist_writing(
        self, document: str, mode: AssistMode, context: WritingContext
    ) -> str:
        mode = AssistMode(mode)
        world = context.describe() or "无特定设定，通用网文风格。"
        text = document[-300:] if mode is AssistMode.DESCRIBE else document
        prompt = f"{_STYLE}\n\n【当前设定】\n{world}\n\n【任务】\n{_ASSIST_TASKS[mode]}\n\n【文本】\n{text}"
        response = await self._generate(prompt)
        return response.text or ""

    async def analyze(self, document: str) -> AnalysisResult:
        prompt = (
            "你是朱雀AI检测助手。判断下面的网文片段是否有浓重的AI味，区分人工特征和AI特征。\n"
            "输出JSON：score（0-100，越高越像AI）, verdict, humanTraits, aiTraits, "
            "suggestions（数组，每项 original 为原文中逐字摘录的片段, suggestion, alternatives, reason）。"
            "请至少提供2-3条具体到句子的修改建议。\n\n"
            f"输入文本：\n{document}"
        )
        data = await self._generate_json(prompt)
        return _validate(AnalysisResult, data)

    async def fetch_rankings(self) -> RankingResult:
        from google.genai import types

        prompt = (
            "请利用 Google Search 搜索起点中文网最新的月票榜、畅销榜、阅读指数榜、推荐票榜、收藏榜和完本榜，"
            "每个榜单提取前6本书（rank, title, author, genre, heat, summary, highlights, coverUrl），"
            "并写一段当前流行趋势分析 trendAnalysis。只输出JSON：{categories: [{name, books}], trendAnalysis}。"
        )
        # Search grounding does not combine with a JSON mime type.
        response = await self._generate(
            prompt, tools=[types.Tool(google_search=types.GoogleSearch())]
        )
        try:
            data = parse_json_response(response.text or "{}")
        except RemoteFailure:
            raise RemoteFailure("Failed to parse ranking data.") from None
        if not isinstance(data, dict):
            raise RemoteFailure("Failed to parse ranking data.")
        data.pop("sources", None)
        result = _validate(RankingResult, data)
        result.sources = _grounding_sources(response)
        return result


def _validate(model: Any, data: Any):
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as e:
        raise RemoteFailure(f"Unexpected response shape: {e.error_count()} invalid field(s)") from e


def _grounding_sources(response) -> list[RankingSource]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    sources = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if web is not None and getattr(web, "uri", None) and getattr(web, "title", None):
            sources.append(RankingSource(title=web.title, uri=web.uri))
    return sources
