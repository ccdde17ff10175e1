"""Bridge between a (slow) structure analyzer and the UI event loop.

Parsing is not done here. Hosts plug in any callable that turns a source
identity into root :class:`StructureNode` objects; the runner executes it off
the UI thread, stamps the result with a per-source revision and hands it back
on the loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from typing import TYPE_CHECKING, Callable, Iterable, Protocol, Sequence, runtime_checkable

from .structure.model import StructureModel, StructureNode

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .application import ApplicationController

LOGGER = logging.getLogger(__name__)

Analyzer = Callable[[str], Sequence[StructureNode]]
Deliver = Callable[[StructureModel], None]
ErrorSink = Callable[[str, str], None]
FailureSink = Callable[[str, int, str], None]


@runtime_checkable
class StructureProvider(Protocol):
    """Anything able to produce structure for a source.

    Returning a model means it is available right away; returning ``None``
    means it will be delivered later through ``StructureReady``.
    """

    def request_structure(self, source_id: str) -> StructureModel | None: ...


class StructureAnalysisRunner:
    """Runs ``analyzer`` in an executor and delivers models on the loop thread.

    Revisions are assigned when a request is made, not when it completes, so a
    slow early request always loses against a faster later one. A failed
    analysis is handed to ``on_failure`` with its revision, so the panel can
    replace an outdated outline with a diagnostic.
    """

    def __init__(
        self,
        analyzer: Analyzer,
        *,
        deliver: Deliver,
        loop: asyncio.AbstractEventLoop | None = None,
        executor: Executor | None = None,
        on_error: ErrorSink | None = None,
        on_failure: FailureSink | None = None,
    ) -> None:
        if analyzer is None:
            raise ValueError("analyzer is required")
        self._analyzer = analyzer
        self._deliver = deliver
        self._loop = loop
        self._executor = executor
        self._on_error = on_error
        self._on_failure = on_failure
        self._revisions: dict[str, int] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @classmethod
    def for_application(
        cls,
        application_controller: ApplicationController,
        analyzer: Analyzer,
        **kwargs,
    ) -> StructureAnalysisRunner:
        """Deliver through ``StructureReady``; failures become ``StructureUnavailable`` plus an error report."""

        kwargs.setdefault("on_error", application_controller.report_error)
        kwargs.setdefault("on_failure", application_controller.structure_unavailable)
        return cls(analyzer, deliver=application_controller.deliver_structure, **kwargs)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def last_revision(self, source_id: str) -> int:
        return self._revisions.get(source_id, 0)

    def request_structure(self, source_id: str) -> StructureModel | None:
        if self._closed:
            LOGGER.debug("Analysis runner closed; ignoring request for %s", source_id)
            return None
        revision = self._revisions.get(source_id, 0) + 1
        self._revisions[source_id] = revision
        loop = self._loop or asyncio.get_event_loop()
        task = loop.create_task(self._run(source_id, revision))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return None

    async def join(self) -> None:
        """Wait until every request issued so far has been delivered or dropped."""

        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding analyses; nothing is delivered afterwards."""

        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _run(self, source_id: str, revision: int) -> None:
        loop = asyncio.get_running_loop()
        try:
            nodes = await loop.run_in_executor(self._executor, self._analyzer, source_id)
            model = StructureModel(source_id=source_id, nodes=_as_nodes(nodes), revision=revision)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._fail(source_id, revision, exc)
            return
        if self._closed:
            return
        LOGGER.debug("Delivering structure for %s (revision %s)", source_id, revision)
        try:
            self._deliver(model)
        except Exception:
            LOGGER.exception("Delivering structure for %s (revision %s) failed", source_id, revision)

    def _fail(self, source_id: str, revision: int, exc: Exception) -> None:
        LOGGER.warning("Structure analysis failed for %s (revision %s): %s", source_id, revision, exc)
        LOGGER.debug("Structure analysis traceback", exc_info=exc)
        if self._closed:
            return
        message = f"analysis failed: {exc}"
        if self._on_failure is not None:
            self._on_failure(source_id, revision, message)
        if self._on_error is not None:
            self._on_error(source_id, message)


def _as_nodes(nodes: Iterable[StructureNode] | None) -> tuple[StructureNode, ...]:
    if nodes is None:
        raise TypeError("analyzer returned no structure")
    result = tuple(nodes)
    for item in result:
        if not isinstance(item, StructureNode):
            raise TypeError(f"analyzer returned {type(item).__name__}, expected StructureNode")
    return result


__all__ = ["Analyzer", "FailureSink", "StructureAnalysisRunner", "StructureProvider"]
