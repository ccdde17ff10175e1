"""Tests for :class:`StructureAnalysisRunner`."""

from __future__ import annotations

import asyncio
import itertools
import threading

import pytest

from structview.analysis import StructureAnalysisRunner, StructureProvider
from structview.application import ApplicationController
from structview.controllers.structure_output_controller import StructureOutputController
from structview.structure.formatting import PLACEHOLDER_MARKER
from structview.structure.model import NodeKind, StructureModel
from tests.helpers import node


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def test_runner_requires_analyzer():
    with pytest.raises(ValueError):
        StructureAnalysisRunner(None, deliver=lambda model: None)  # type: ignore[arg-type]


def test_runner_is_a_structure_provider():
    runner = StructureAnalysisRunner(lambda source_id: [], deliver=lambda model: None)

    assert isinstance(runner, StructureProvider)


@pytest.mark.asyncio
async def test_runner_delivers_models_with_increasing_revisions():
    delivered: list[StructureModel] = []
    foo = node("Foo", NodeKind.TYPE, 0, 0)
    runner = StructureAnalysisRunner(lambda source_id: [foo], deliver=delivered.append)

    assert runner.request_structure("A") is None
    await runner.join()
    runner.request_structure("A")
    runner.request_structure("B")
    await runner.join()

    assert sorted((model.source_id, model.revision) for model in delivered) == [("A", 1), ("A", 2), ("B", 1)]
    assert delivered[0] == StructureModel(source_id="A", nodes=(foo,), revision=1)
    assert runner.last_revision("A") == 2
    assert runner.pending_count == 0


@pytest.mark.asyncio
async def test_runner_reports_analysis_failures():
    errors: list[tuple[str, str]] = []
    delivered: list[StructureModel] = []

    def _broken(source_id: str):
        raise OSError("file vanished")

    runner = StructureAnalysisRunner(_broken, deliver=delivered.append, on_error=lambda s, m: errors.append((s, m)))
    runner.request_structure("A")
    await runner.join()

    assert delivered == []
    assert errors == [("A", "analysis failed: file vanished")]


@pytest.mark.asyncio
@pytest.mark.parametrize("result", [None, 42, ["not a node"]])
async def test_unusable_analyzer_result_is_reported(result):
    errors: list[tuple[str, str]] = []
    failures: list[tuple[str, int, str]] = []
    delivered: list[StructureModel] = []
    runner = StructureAnalysisRunner(
        lambda source_id: result,
        deliver=delivered.append,
        on_error=lambda s, m: errors.append((s, m)),
        on_failure=lambda s, r, m: failures.append((s, r, m)),
    )

    runner.request_structure("A")
    await runner.join()

    assert delivered == []
    assert len(errors) == 1
    assert errors[0][0] == "A"
    assert errors[0][1].startswith("analysis failed:")
    assert [(source, revision) for source, revision, _ in failures] == [("A", 1)]


@pytest.mark.asyncio
async def test_failed_analysis_replaces_outdated_outline(qapp):
    results = iter([[node("Foo", NodeKind.TYPE, 0, 0)], None])

    app = ApplicationController()
    runner = StructureAnalysisRunner.for_application(app, lambda source_id: next(results))
    controller = StructureOutputController(provider=runner)
    controller.attach(app)
    try:
        app.open_file("A")
        await runner.join()
        assert controller.view.displayed_text == "Foo"

        app.edit_file("A")
        await runner.join()

        text = controller.view.displayed_text
        assert text.startswith(PLACEHOLDER_MARKER)
        assert "analysis failed" in text
        assert controller.view.revision == 2
        assert not controller.has_model
        assert len(app.error_reports) == 1
    finally:
        controller.detach()
        await runner.aclose()


@pytest.mark.asyncio
async def test_aclose_cancels_pending_requests():
    gate = threading.Event()
    delivered: list[StructureModel] = []

    def _slow(source_id: str):
        gate.wait(timeout=5)
        return []

    runner = StructureAnalysisRunner(_slow, deliver=delivered.append)
    try:
        runner.request_structure("A")
        await asyncio.sleep(0)
        await runner.aclose()
    finally:
        gate.set()

    assert runner.closed
    assert runner.request_structure("A") is None
    assert runner.pending_count == 0
    await asyncio.sleep(0.05)
    assert delivered == []


@pytest.mark.asyncio
async def test_slow_stale_analysis_never_overwrites_newer_structure(qapp):
    gate = threading.Event()
    entered = threading.Event()
    calls = itertools.count()

    def _analyzer(source_id: str):
        if next(calls) == 0:
            entered.set()
            gate.wait(timeout=5)
            return [node("Old", NodeKind.TYPE, 0, 0)]
        return [node("New", NodeKind.TYPE, 0, 7)]

    app = ApplicationController()
    runner = StructureAnalysisRunner.for_application(app, _analyzer)
    controller = StructureOutputController(provider=runner)
    controller.attach(app)
    try:
        app.open_file("A")
        await _wait_for(entered.is_set)
        app.edit_file("A")
        await _wait_for(lambda: controller.view.revision == 2)
        gate.set()
        await runner.join()

        assert controller.view.displayed_text == "New"
        assert controller.view.revision == 2
        assert app.error_reports == ()
    finally:
        gate.set()
        controller.detach()
        await runner.aclose()


@pytest.mark.asyncio
async def test_result_arriving_after_detach_is_dropped(qapp):
    gate = threading.Event()

    def _analyzer(source_id: str):
        gate.wait(timeout=5)
        return [node("Late", NodeKind.TYPE, 0, 0)]

    app = ApplicationController()
    runner = StructureAnalysisRunner.for_application(app, _analyzer)
    controller = StructureOutputController(provider=runner)
    controller.attach(app)
    view = controller.view
    try:
        app.open_file("A")
        controller.detach()
        gate.set()
        await runner.join()

        assert view.revision is None
        assert app.error_reports == ()
    finally:
        gate.set()
        await runner.aclose()
