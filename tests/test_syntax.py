"""Tests for AstNode construction from tree-sitter nodes and JSON."""

import pytest

from cfgview.syntax import AstNode, Position


class FakeNode:
    """Minimal stand-in for tree_sitter.Node."""

    def __init__(self, type, start, end, children=(), is_named=True):
        self.type = type
        self.start_byte = start
        self.end_byte = end
        self.start_point = (0, start)
        self.end_point = (0, end)
        self.is_named = is_named
        self.children = list(children)

    @property
    def child_count(self):
        return len(self.children)


class TestFromTreeSitter:
    def test_converts_subtree(self):
        root = FakeNode("module", 0, 9, [
            FakeNode("expression_statement", 0, 4, [FakeNode("identifier", 0, 3), FakeNode(";", 3, 4, is_named=False)]),
            FakeNode("pass_statement", 5, 9),
        ])
        node = AstNode.from_tree_sitter(root)

        assert node.kind == "module"
        assert [c.kind for c in node.children] == ["expression_statement", "pass_statement"]
        stmt = node.children[0]
        assert [c.kind for c in stmt.children] == ["identifier", ";"]
        assert stmt.children[1].is_named is False
        assert [c.kind for c in stmt.named_children] == ["identifier"]
        assert node.children[1].start == 5
        assert node.children[1].end_position == Position(0, 9)

    def test_deep_tree(self):
        leaf = FakeNode("identifier", 0, 1)
        current = leaf
        for _ in range(3000):
            current = FakeNode("parenthesized_expression", 0, 1, [current])
        node = AstNode.from_tree_sitter(current)

        depth = 0
        while node.children:
            node = node.children[0]
            depth += 1
        assert depth == 3000
        assert node.kind == "identifier"


class TestFromDict:
    def test_camel_case(self):
        node = AstNode.from_dict({
            "kind": "program",
            "start": 0,
            "end": 4,
            "startPosition": {"row": 0, "column": 0},
            "endPosition": {"row": 1, "column": 2},
            "isNamed": True,
            "children": [
                {"kind": "(", "start": 0, "end": 1, "isNamed": False},
            ],
        })
        assert node.kind == "program"
        assert node.end_position == Position(1, 2)
        assert node.children[0].is_named is False
        assert node.named_children == []

    def test_snake_case_and_type(self):
        node = AstNode.from_dict({
            "type": "block",
            "start": "3",
            "end": 7,
            "start_position": [0, 3],
            "is_named": False,
        })
        assert node.kind == "block"
        assert node.start == 3
        assert node.start_position == Position(0, 3)
        assert node.end_position == Position(0, 0)
        assert node.is_named is False

    def test_missing_kind(self):
        with pytest.raises(ValueError, match="without a kind"):
            AstNode.from_dict({"start": 0, "end": 1})

    def test_to_dict_round_trip(self):
        data = {
            "kind": "program",
            "start": 0,
            "end": 3,
            "startPosition": {"row": 0, "column": 0},
            "endPosition": {"row": 0, "column": 3},
            "isNamed": True,
            "children": [],
        }
        assert AstNode.from_dict(data).to_dict() == data

    def test_unknown_keys_ignored(self):
        node = AstNode.from_dict({"kind": "identifier", "text": "abc", "field": "name"})
        assert node.to_dict()["kind"] == "identifier"
        assert "text" not in node.to_dict()


class TestImmutability:
    def test_frozen(self):
        node = AstNode.from_dict({"kind": "identifier"})
        with pytest.raises(AttributeError):
            node.kind = "other"
