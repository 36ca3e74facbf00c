"""Shared fixtures: hand-built syntax trees anchored to real source text."""

import pytest

from cfgview.syntax import AstNode, Position


class TreeFactory:
    """Build AstNodes whose byte ranges point at snippets of ``source``.

    Offsets and columns are UTF-8 byte based, like tree-sitter's.
    """

    def __init__(self, source: str):
        self.source = source
        self.encoded = source.encode("utf-8")

    def _position(self, offset: int) -> Position:
        line_start = self.encoded.rfind(b"\n", 0, offset) + 1
        return Position(self.encoded.count(b"\n", 0, offset), offset - line_start)

    def node(self, kind: str, snippet: str, *children: AstNode, named: bool = True, after: int = 0) -> AstNode:
        start = self.encoded.index(snippet.encode("utf-8"), after)
        end = start + len(snippet.encode("utf-8"))
        return AstNode(
            kind=kind,
            start=start,
            end=end,
            start_position=self._position(start),
            end_position=self._position(end),
            is_named=named,
            children=tuple(children),
        )

    def token(self, text: str, after: int = 0) -> AstNode:
        return self.node(text, text, named=False, after=after)

    def offset(self, snippet: str, after: int = 0) -> int:
        return self.encoded.index(snippet.encode("utf-8"), after)


@pytest.fixture
def make_tree():
    return TreeFactory


@pytest.fixture
def fixed_measure():
    """Deterministic text measure: 7 units per character, font ignored."""
    return lambda text, font: len(text) * 7.0
