"""Shared pytest fixtures."""

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest  # noqa: E402

from structview.structure.model import NodeKind, StructureModel  # noqa: E402
from tests.helpers import node  # noqa: E402


@pytest.fixture
def foo_bar_model() -> StructureModel:
    """Revision 1 of source ``A``: type ``Foo`` with member ``Bar``."""

    return StructureModel(
        source_id="A",
        revision=1,
        nodes=(node("Foo", NodeKind.TYPE, 0, 10, node("Bar", NodeKind.MEMBER, 1, 42)),),
    )


@pytest.fixture
def malformed_model() -> StructureModel:
    return StructureModel(
        source_id="A",
        revision=3,
        nodes=(node("Foo", NodeKind.TYPE, 0, 0, node("Baz", NodeKind.MEMBER, 2, 5)),),
    )
