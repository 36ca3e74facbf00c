"""
Syntax tree input for CFG construction.

The builder never talks to a parser directly. It consumes ``AstNode`` trees,
which can be produced from:
- tree-sitter parse trees (``AstNode.from_tree_sitter``)
- the camelCase JSON shape emitted by out-of-process parsers (``AstNode.from_dict``)
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Position:
    """Zero-based (row, column) source position."""

    row: int
    column: int

    def to_dict(self) -> dict:
        return {"row": self.row, "column": self.column}


@dataclass(frozen=True, slots=True)
class AstNode:
    """
    Read-only syntax tree node.

    ``kind`` is the grammar's node type string ("if_statement", "block", ...).
    ``start``/``end`` are byte offsets into the UTF-8 encoded source.
    ``is_named`` separates semantic nodes from punctuation and keywords.
    """

    kind: str
    start: int
    end: int
    start_position: Position
    end_position: Position
    is_named: bool = True
    children: tuple["AstNode", ...] = field(default_factory=tuple)

    @property
    def named_children(self) -> list["AstNode"]:
        return [child for child in self.children if child.is_named]

    @classmethod
    def from_tree_sitter(cls, node: Any) -> "AstNode":
        """Convert a ``tree_sitter.Node`` (and its subtree) into an AstNode.

        Walks the tree with an explicit stack so deeply nested sources do not
        hit the interpreter recursion limit.
        """
        built: list[AstNode] = []
        stack: list[tuple[Any, bool]] = [(node, False)]
        while stack:
            current, expanded = stack.pop()
            if not expanded:
                stack.append((current, True))
                stack.extend((child, False) for child in reversed(current.children))
                continue

            count = current.child_count
            children: tuple[AstNode, ...] = ()
            if count:
                children = tuple(built[-count:])
                del built[-count:]
            built.append(
                cls(
                    kind=current.type,
                    start=current.start_byte,
                    end=current.end_byte,
                    start_position=Position(current.start_point[0], current.start_point[1]),
                    end_position=Position(current.end_point[0], current.end_point[1]),
                    is_named=current.is_named,
                    children=children,
                )
            )
        return built[0]

    @classmethod
    def from_dict(cls, data: dict) -> "AstNode":
        """Build an AstNode from its JSON form.

        Accepts both the camelCase wire shape (``startPosition``, ``isNamed``)
        and snake_case / tree-sitter style keys (``start_position``,
        ``is_named``, ``type``).

        Raises:
            ValueError: If a node has no kind.
        """
        kind = data.get("kind", data.get("type"))
        if not kind:
            raise ValueError(f"Syntax node without a kind: {sorted(data)}")

        start_pos = data.get("startPosition", data.get("start_position")) or {}
        end_pos = data.get("endPosition", data.get("end_position")) or {}
        is_named = data.get("isNamed", data.get("is_named", True))

        return cls(
            kind=kind,
            start=int(data.get("start", 0)),
            end=int(data.get("end", 0)),
            start_position=_position_from(start_pos),
            end_position=_position_from(end_pos),
            is_named=bool(is_named),
            children=tuple(cls.from_dict(child) for child in data.get("children") or ()),
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "start": self.start,
            "end": self.end,
            "startPosition": self.start_position.to_dict(),
            "endPosition": self.end_position.to_dict(),
            "isNamed": self.is_named,
            "children": [child.to_dict() for child in self.children],
        }


def _position_from(value: Any) -> Position:
    # Positions arrive either as {"row", "column"} objects or (row, column) pairs
    if isinstance(value, dict):
        return Position(int(value.get("row", 0)), int(value.get("column", 0)))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return Position(int(value[0]), int(value[1]))
    return Position(0, 0)
