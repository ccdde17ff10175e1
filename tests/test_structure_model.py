"""Tests for :mod:`structview.structure.model`."""

from __future__ import annotations

import dataclasses

import pytest

from structview.structure.model import (
    NodeKind,
    SourcePosition,
    StructureModel,
    StructureNode,
    iter_nodes,
    node_count,
)
from tests.helpers import node


def _sample() -> StructureModel:
    return StructureModel(
        source_id="src/app.cs",
        revision=4,
        nodes=(
            node(
                "App",
                NodeKind.NAMESPACE,
                0,
                0,
                node("Program", NodeKind.TYPE, 1, 20, node("Main", NodeKind.MEMBER, 2, 40)),
                node("Helper", NodeKind.TYPE, 1, 80),
            ),
            node("Extra", NodeKind.TYPE, 0, 120),
        ),
    )


def test_models_are_immutable():
    model = _sample()

    with pytest.raises(dataclasses.FrozenInstanceError):
        model.revision = 5  # type: ignore[misc]
    with pytest.raises(dataclasses.FrozenInstanceError):
        model.nodes[0].label = "Other"  # type: ignore[misc]


def test_iter_nodes_walks_depth_first_in_document_order():
    labels = [(child.label, parent.label if parent else None) for child, parent in iter_nodes(_sample())]

    assert labels == [
        ("App", None),
        ("Program", "App"),
        ("Main", "Program"),
        ("Helper", "App"),
        ("Extra", None),
    ]
    assert node_count(_sample()) == 5


def test_empty_model_reports_empty():
    assert StructureModel(source_id="x").is_empty
    assert not _sample().is_empty


def test_node_kind_coerce_falls_back_to_other():
    assert NodeKind.coerce("Type") is NodeKind.TYPE
    assert NodeKind.coerce(NodeKind.MEMBER) is NodeKind.MEMBER
    assert NodeKind.coerce("macro") is NodeKind.OTHER


def test_from_dict_builds_nested_nodes():
    payload = {
        "source_id": "A",
        "revision": 7,
        "nodes": [
            {
                "label": "Foo",
                "kind": "type",
                "depth": 0,
                "position": {"offset": 3, "line": 1, "column": 4},
                "children": [{"label": "Bar", "kind": "member", "depth": 1, "position": 42}],
            },
            "ignored",
        ],
    }

    model = StructureModel.from_dict(payload)

    assert model.revision == 7
    assert len(model.nodes) == 1
    foo = model.nodes[0]
    assert foo.position == SourcePosition(offset=3, line=1, column=4)
    assert foo.children[0] == StructureNode(
        label="Bar", kind=NodeKind.MEMBER, depth=1, position=SourcePosition(offset=42)
    )


def test_from_dict_keeps_declared_depth():
    payload = {"source_id": "A", "nodes": [{"label": "Foo", "depth": 0, "children": [{"label": "Bar", "depth": 3}]}]}

    model = StructureModel.from_dict(payload)

    assert model.nodes[0].children[0].depth == 3


def test_to_dict_matches_from_dict_input():
    model = _sample()

    assert StructureModel.from_dict(model.to_dict()) == model
