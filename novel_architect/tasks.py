"""Independent state machines for the long-running generation operations."""

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional

from loguru import logger


class TaskKind(str, Enum):
    IDEA = "idea"
    OUTLINE = "outline"
    CHARACTER = "character"
    EDITOR_ASSIST = "editor_assist"
    ANALYSIS = "analysis"
    RANKING = "ranking"


class TaskStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Task:
    kind: TaskKind
    status: TaskStatus = TaskStatus.IDLE
    error: Optional[str] = None
    result: Any = None
    request_id: int = 0

    @property
    def is_running(self) -> bool:
        return self.status is TaskStatus.RUNNING


class TaskRegistry:
    """
    One task slot per kind, with no locking across kinds.

    Invoking a kind that is already running is allowed and starts another
    remote call; nothing is ever cancelled. Each invocation gets a request id
    that increases per kind. With ``discard_stale_results`` a completion whose
    id is no longer the latest for its kind is dropped, so the most recently
    invoked call decides the visible result. Without it, whichever call
    resolves last wins, regardless of invocation order.
    """

    def __init__(
        self,
        discard_stale_results: bool = True,
        keep_result_while_running: bool = True,
    ):
        self.discard_stale_results = discard_stale_results
        self.keep_result_while_running = keep_result_while_running
        self._tasks: dict[TaskKind, Task] = {kind: Task(kind) for kind in TaskKind}

    def get(self, kind: TaskKind) -> Task:
        return self._tasks[kind]

    def snapshot(self) -> Mapping[TaskKind, Task]:
        return MappingProxyType(dict(self._tasks))

    @property
    def running(self) -> list[TaskKind]:
        return [kind for kind, task in self._tasks.items() if task.is_running]

    def reject(self, kind: TaskKind, message: str) -> Task:
        """Record a precondition failure without starting the task."""
        logger.warning(f"{kind.value} rejected: {message}")
        task = replace(self._tasks[kind], error=message)
        self._tasks[kind] = task
        return task

    async def invoke(
        self,
        kind: TaskKind,
        call: Callable[[], Awaitable[Any]],
        on_success: Optional[Callable[[Any], None]] = None,
    ) -> Task:
        current = self._tasks[kind]
        request_id = current.request_id + 1
        self._tasks[kind] = replace(
            current,
            status=TaskStatus.RUNNING,
            error=None,
            result=current.result if self.keep_result_while_running else None,
            request_id=request_id,
        )
        logger.debug(f"{kind.value} #{request_id} started")

        try:
            result = await call()
        except Exception as e:
            if self._is_stale(kind, request_id):
                logger.debug(f"{kind.value} #{request_id} failed after being superseded: {e}")
                return self._tasks[kind]
            message = str(e) or type(e).__name__
            logger.error(f"{kind.value} #{request_id} failed: {message}")
            self._tasks[kind] = replace(
                self._tasks[kind], status=TaskStatus.FAILED, error=message
            )
            return self._tasks[kind]

        if self._is_stale(kind, request_id):
            logger.debug(f"{kind.value} #{request_id} superseded, result discarded")
            return self._tasks[kind]

        self._tasks[kind] = replace(
            self._tasks[kind],
            status=TaskStatus.SUCCEEDED,
            error=None,
            result=result,
        )
        logger.info(f"{kind.value} #{request_id} succeeded")
        if on_success is not None:
            on_success(result)
        return self._tasks[kind]

    def _is_stale(self, kind: TaskKind, request_id: int) -> bool:
        return self.discard_stale_results and self._tasks[kind].request_id != request_id
