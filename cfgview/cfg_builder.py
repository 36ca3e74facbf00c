"""
Control Flow Graph (CFG) construction from language-agnostic syntax trees.

Works on any tree-sitter grammar: node kinds are classified through the
tables in ``node_kinds`` and every producer returns a ``FlowFragment``
(entry block + open exits) that the caller wires to whatever follows.

Block kinds:
- "entry" / "exit": function boundaries and the synthetic graph entry
- "statement": plain statements
- "branch": if / conditional expressions
- "loop": loop headers
- "match": match / switch headers
- "return": return, break, continue, throw and raise
"""

import logging
from dataclasses import dataclass, field
from typing import Generator

from .node_kinds import (
    BRANCH,
    DEFAULT_KINDS,
    FUNCTION,
    LOOP,
    MATCH,
    TERMINATOR,
    KindTable,
)
from .syntax import AstNode, Position

logger = logging.getLogger(__name__)

BLOCK_KINDS = ("entry", "exit", "statement", "branch", "loop", "return", "match")

DEFAULT_SUMMARY_MAX = 48
ARM_PART_MAX = 20
ARM_LABEL_MAX = 24
MATCH_SUMMARY_MAX = 32
FUNCTION_NAME_MAX = 24

ROOT_PATH = "root"


@dataclass(slots=True)
class CfgBlock:
    """
    A single node of the control flow graph.

    ``ast_path`` is the dash-joined child-index path of the originating syntax
    node (e.g. "root-0-3"). It is reproducible for a given tree and is used to
    map between the graph and the tree view; it is not guaranteed unique.
    """

    id: str
    label: str
    kind: str
    start: int
    end: int
    start_position: Position
    end_position: Position
    ast_path: str
    statements: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "statements": list(self.statements),
            "start": self.start,
            "end": self.end,
            "startPosition": self.start_position.to_dict(),
            "endPosition": self.end_position.to_dict(),
            "kind": self.kind,
            "astPath": self.ast_path,
        }


@dataclass(frozen=True, slots=True)
class CfgEdge:
    """
    Directed edge between blocks.

    Labels:
    - "true" / "false": branch outcomes
    - "body": loop header enters its body
    - "next": body end returns to the loop header
    - match arm summaries for match/switch edges
    - None: sequential flow
    """

    from_id: str
    to_id: str
    label: str | None = None

    @property
    def key(self) -> str:
        """Back-edge lookup key, "<from>-><to>"."""
        return f"{self.from_id}->{self.to_id}"

    def to_dict(self) -> dict:
        d = {"from": self.from_id, "to": self.to_id}
        if self.label:
            d["label"] = self.label
        return d


@dataclass(slots=True)
class Cfg:
    """Control flow graph: blocks in construction order plus deduplicated edges."""

    blocks: list[CfgBlock] = field(default_factory=list)
    edges: list[CfgEdge] = field(default_factory=list)

    def get_block(self, block_id: str) -> CfgBlock | None:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    def to_dict(self) -> dict:
        return {
            "blocks": [b.to_dict() for b in self.blocks],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass(slots=True)
class FlowFragment:
    """Result of building one syntax node: where flow enters, and which blocks
    still fall through to whatever follows."""

    entry: str
    exits: list[str]


def truncate(text: str, max_len: int) -> str:
    """First line of ``text``, trimmed, cut to ``max_len`` with a ".." marker."""
    line = text.split("\n", 1)[0].strip()
    if len(line) > max_len:
        return line[: max_len - 2] + ".."
    return line


def _unique(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


# Requests a producer yields to the driver: build a child node, or chain the
# named children of a node
VISIT = "visit"
SEQUENCE = "sequence"

Request = tuple[str, AstNode, str]
Producer = Generator[Request, FlowFragment | None, FlowFragment | None]


class CfgBuilder:
    """
    Build a CFG from a syntax tree.

    Each builder owns its block-id counter, so separate builders (or separate
    threads with their own builder) never share ids. ``build`` resets the
    counter, so rebuilding the same tree yields identical ids.

    Producers (``_visit_*``) are generators. Instead of recursing into a child
    they yield a ``(VISIT | SEQUENCE, node, path)`` request and receive the
    child's ``FlowFragment`` back; ``_run`` drives them with an explicit stack,
    so nesting depth is bounded by memory rather than the recursion limit.
    """

    def __init__(
        self,
        source_text: str,
        kinds: KindTable = DEFAULT_KINDS,
        summary_max: int = DEFAULT_SUMMARY_MAX,
    ):
        self.source = source_text.encode("utf-8")
        self.kinds = kinds
        self.summary_max = summary_max
        self.blocks: list[CfgBlock] = []
        self.edges: list[CfgEdge] = []
        self.next_block_id = 0
        self.structural: dict[int, bool] = {}

    def new_block(
        self,
        label: str,
        kind: str,
        node: AstNode,
        ast_path: str,
        statements: list[str] | None = None,
    ) -> CfgBlock:
        """Create a new block covering ``node`` and add it to the graph."""
        block = CfgBlock(
            id=f"cfg_{self.next_block_id}",
            label=label,
            kind=kind,
            start=node.start,
            end=node.end,
            start_position=node.start_position,
            end_position=node.end_position,
            ast_path=ast_path,
            statements=list(statements) if statements is not None else [],
        )
        self.blocks.append(block)
        self.next_block_id += 1
        return block

    def add_edge(self, from_id: str, to_id: str, label: str | None = None):
        self.edges.append(CfgEdge(from_id=from_id, to_id=to_id, label=label))

    def get_node_text(self, node: AstNode) -> str:
        """Get source text for a node (byte offsets into the UTF-8 source)."""
        return self.source[node.start : node.end].decode("utf-8", errors="replace")

    def summary(self, node: AstNode, max_len: int | None = None) -> str:
        return truncate(self.get_node_text(node), max_len or self.summary_max)

    def build(self, root: AstNode) -> Cfg:
        """Build the CFG for a whole tree."""
        self.blocks = []
        self.edges = []
        self.next_block_id = 0
        self.structural = self.kinds.structural_flags(root)

        if self.kinds.category_of(root.kind) is not None or not root.named_children:
            # The root is a single construct (or a bare leaf): build it as-is
            self._run(self._visit_node(root, ROOT_PATH))
        else:
            fragment = self._run(self._visit_sequence(root, ROOT_PATH))
            if fragment is not None and not any(b.kind == "entry" for b in self.blocks):
                entry = self.new_block("entry", "entry", root, ROOT_PATH, ["entry"])
                self.blocks.pop()
                self.blocks.insert(0, entry)
                self.add_edge(entry.id, fragment.entry)
                logger.debug(f"Promoted synthetic entry {entry.id} -> {fragment.entry}")

        cfg = Cfg(blocks=self.blocks, edges=self._dedupe_edges(self.edges))
        self.structural = {}
        logger.debug(f"Built CFG with {len(cfg.blocks)} blocks, {len(cfg.edges)} edges")
        return cfg

    @staticmethod
    def _dedupe_edges(edges: list[CfgEdge]) -> list[CfgEdge]:
        seen: set[tuple[str, str, str]] = set()
        unique = []
        for edge in edges:
            key = (edge.from_id, edge.to_id, edge.label or "")
            if key in seen:
                continue
            seen.add(key)
            unique.append(edge)
        return unique

    # -------------------------------------------------------------------------
    # Driver
    # -------------------------------------------------------------------------

    def _run(self, producer: Producer) -> FlowFragment | None:
        """Run a producer to completion, serving its requests depth-first."""
        stack = [producer]
        result: FlowFragment | None = None
        while stack:
            try:
                action, node, path = stack[-1].send(result)
            except StopIteration as done:
                stack.pop()
                result = done.value
                continue
            if action == SEQUENCE:
                stack.append(self._visit_sequence(node, path))
            else:
                stack.append(self._visit_node(node, path))
            result = None
        return result

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _visit_node(self, node: AstNode, path: str) -> Producer:
        """Build one syntax node. Produces None if it yields no blocks."""
        category = self.kinds.category_of(node.kind)
        if category == BRANCH:
            return (yield from self._visit_if(node, path))
        if category == LOOP:
            return (yield from self._visit_loop(node, path))
        if category == MATCH:
            return (yield from self._visit_match(node, path))
        if category == TERMINATOR:
            return self._visit_terminator(node, path)
        if category == FUNCTION:
            return (yield from self._visit_function(node, path))
        if self.kinds.is_container(node, self.structural):
            return (yield from self._visit_sequence(node, path))
        if node.is_named and not self.kinds.is_comment(node):
            label = self.summary(node)
            block = self.new_block(label, "statement", node, path, [label])
            return FlowFragment(block.id, [block.id])
        return None

    def _visit_sequence(self, node: AstNode, path: str) -> Producer:
        """Chain the named children of ``node`` in source order.

        The exits of each produced fragment are wired to the entry of the next
        one. Children that produce nothing (punctuation, comments) are skipped.
        """
        entry: str | None = None
        last_exits: list[str] = []
        for index, child in enumerate(node.children):
            if not child.is_named:
                continue
            fragment = yield VISIT, child, f"{path}-{index}"
            if fragment is None:
                continue
            if entry is None:
                entry = fragment.entry
            else:
                for exit_id in last_exits:
                    self.add_edge(exit_id, fragment.entry)
            last_exits = fragment.exits

        if entry is None:
            return None
        return FlowFragment(entry, last_exits)

    # -------------------------------------------------------------------------
    # Child lookup
    # -------------------------------------------------------------------------

    def _find_child_by_type(self, node: AstNode, types: frozenset[str]) -> AstNode | None:
        """Find first child matching any of the given types."""
        for child in node.children:
            if child.kind in types:
                return child
        return None

    def _find_condition(self, node: AstNode) -> AstNode | None:
        condition = self._find_child_by_type(node, self.kinds.condition_types)
        if condition is not None:
            return condition
        # Fallback: the second named child is usually the condition
        named = node.named_children
        if len(named) >= 2:
            return named[1]
        return None

    def _find_arms(self, node: AstNode) -> list[AstNode]:
        """Collect match/switch arms in source order, looking through wrapper nodes."""
        arms = []
        stack = list(reversed(node.children))
        while stack:
            child = stack.pop()
            if child.kind in self.kinds.arm_types:
                arms.append(child)
            if child.kind in self.kinds.arm_container_types:
                stack.extend(reversed(child.children))
        return arms

    def _find_function_name(self, node: AstNode) -> AstNode | None:
        name = self._find_child_by_type(node, self.kinds.name_types)
        if name is None:
            name = self._find_child_by_type(node, self.kinds.fallback_name_types)
        return name

    # -------------------------------------------------------------------------
    # Producers
    # -------------------------------------------------------------------------

    def _visit_if(self, node: AstNode, path: str) -> Producer:
        """Handle if/else and conditional expressions.

        Else clauses may wrap another if, which yields else-if chains. A missing
        body or a missing else clause leaves the branch block itself as an exit.
        """
        condition = self._find_condition(node)
        condition_text = self.summary(condition) if condition is not None else "condition"
        label = f"if {condition_text}"
        branch = self.new_block(label, "branch", node, path, [label])

        body = self._find_child_by_type(node, self.kinds.body_types)
        true_fragment = None
        if body is not None:
            true_fragment = yield SEQUENCE, body, path
        if true_fragment is not None:
            self.add_edge(branch.id, true_fragment.entry, "true")

        alternative = self._find_child_by_type(node, self.kinds.else_types)
        false_fragment = None
        if alternative is not None:
            false_fragment = yield SEQUENCE, alternative, path
            if false_fragment is not None:
                self.add_edge(branch.id, false_fragment.entry, "false")

        exits = []
        if true_fragment is not None:
            exits.extend(true_fragment.exits)
        else:
            exits.append(branch.id)
        if false_fragment is not None:
            exits.extend(false_fragment.exits)
        elif alternative is None:
            exits.append(branch.id)

        return FlowFragment(branch.id, _unique(exits))

    def _visit_loop(self, node: AstNode, path: str) -> Producer:
        """Handle for/while/loop constructs.

        Body exits loop back to the header ("next"). Only the header exits the
        loop: code after the loop is reached from the header, never directly
        from the body.
        """
        condition = self._find_condition(node)
        condition_text = self.summary(condition) if condition is not None else ""
        if node.kind.startswith("for"):
            keyword = "for"
        elif node.kind == "loop_expression":
            keyword = "loop"
        else:
            keyword = "while"
        label = f"{keyword} {condition_text}" if condition_text else keyword
        header = self.new_block(label, "loop", node, path, [label])

        body = self._find_child_by_type(node, self.kinds.body_types)
        body_fragment = None
        if body is not None:
            body_fragment = yield SEQUENCE, body, path
        if body_fragment is not None:
            self.add_edge(header.id, body_fragment.entry, "body")
            for exit_id in body_fragment.exits:
                self.add_edge(exit_id, header.id, "next")

        return FlowFragment(header.id, [header.id])

    def _visit_match(self, node: AstNode, path: str) -> Producer:
        """Handle match/switch: every arm is an independent chain off the header."""
        header = self.new_block(
            "match", "match", node, path, [self.summary(node, MATCH_SUMMARY_MAX)]
        )

        exits: list[str] = []
        for index, arm in enumerate(self._find_arms(node)):
            parts = " ".join(self.summary(c, ARM_PART_MAX) for c in arm.named_children)
            arm_label = truncate(parts or f"arm {index}", ARM_LABEL_MAX)
            arm_fragment = yield SEQUENCE, arm, f"{path}-arm{index}"
            if arm_fragment is not None:
                self.add_edge(header.id, arm_fragment.entry, arm_label)
                exits.extend(arm_fragment.exits)

        if not exits:
            exits.append(header.id)
        return FlowFragment(header.id, _unique(exits))

    def _visit_terminator(self, node: AstNode, path: str) -> FlowFragment:
        """Handle return/break/continue/throw/raise. Terminates local flow."""
        label = self.summary(node)
        block = self.new_block(label, "return", node, path, [label])
        return FlowFragment(block.id, [])

    def _visit_function(self, node: AstNode, path: str) -> Producer:
        """Handle function, method and closure definitions.

        An "end" exit block is added only when the body produced blocks;
        otherwise the entry block doubles as the exit.
        """
        name = self._find_function_name(node)
        label = f"fn {self.summary(name, FUNCTION_NAME_MAX)}" if name is not None else "fn"
        entry = self.new_block(label, "entry", node, path, [label])

        body = self._find_child_by_type(node, self.kinds.body_types)
        body_fragment = None
        if body is not None:
            body_fragment = yield SEQUENCE, body, path
        if body_fragment is None:
            return FlowFragment(entry.id, [entry.id])

        self.add_edge(entry.id, body_fragment.entry)
        exit_block = self.new_block("end", "exit", node, path, ["end"])
        for exit_id in body_fragment.exits:
            self.add_edge(exit_id, exit_block.id)
        return FlowFragment(entry.id, [exit_block.id])


def build_cfg(
    root: AstNode,
    source_text: str,
    kinds: KindTable = DEFAULT_KINDS,
    summary_max: int = DEFAULT_SUMMARY_MAX,
) -> Cfg:
    """Build a control flow graph from a syntax tree and its source text.

    Args:
        root: Root of the syntax tree (not modified).
        source_text: Full source the tree was parsed from; node byte offsets
            index into its UTF-8 encoding.
        kinds: Node-kind classification tables.
        summary_max: Maximum length of block labels.

    Returns:
        Cfg with blocks in construction order and deduplicated edges.
    """
    builder = CfgBuilder(source_text, kinds=kinds, summary_max=summary_max)
    return builder.build(root)
