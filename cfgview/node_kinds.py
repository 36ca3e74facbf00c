"""
Node-kind tables for language-agnostic CFG construction.

Single source of truth for which grammar node types count as branches, loops,
matches, terminators, functions and containers. Different tree-sitter
grammars name the same construct differently, so every category is a set of
kind strings rather than a type hierarchy. Grammars not covered here can be
supported by extending a table (``KindTable.extended``) without touching the
builder.
"""

from dataclasses import dataclass, field, fields

from .syntax import AstNode

BRANCH = "branch"
LOOP = "loop"
MATCH = "match"
TERMINATOR = "terminator"
FUNCTION = "function"

# Dispatch order matters: a kind listed in two categories resolves to the first
STRUCTURAL_CATEGORIES = (BRANCH, LOOP, MATCH, TERMINATOR, FUNCTION)

IF_TYPES = frozenset({
    "if_statement",
    "if_expression",
    "if_let_expression",  # Rust (older grammars)
    "conditional_expression",
    "ternary_expression",
})

LOOP_TYPES = frozenset({
    "for_statement",
    "for_expression",  # Rust
    "for_in_statement",  # JavaScript/TypeScript
    "while_statement",
    "while_expression",  # Rust
    "loop_expression",  # Rust's infinite loop
    "do_statement",
    "for_range_statement",
})

MATCH_TYPES = frozenset({
    "match_expression",  # Rust
    "match_statement",  # Python 3.10+
    "switch_statement",
    "switch_expression",
    "expression_switch_statement",  # Go
    "type_switch_statement",  # Go
})

TERMINATOR_TYPES = frozenset({
    "return_statement",
    "return_expression",
    "break_statement",
    "break_expression",
    "continue_statement",
    "continue_expression",
    "throw_statement",
    "raise_statement",
})

FUNCTION_TYPES = frozenset({
    "function_declaration",
    "function_definition",
    "function_item",  # Rust
    "method_definition",
    "method_declaration",  # Go/Java
    "arrow_function",
    "lambda",
    "lambda_expression",
    "closure_expression",  # Rust
    "value_definition",  # OCaml
})

CONTAINER_TYPES = frozenset({
    "program",
    "source_file",
    "source",
    "module",
    "block",
    "statement_block",
    "compound_statement",
    "declaration_list",
    "field_declaration_list",
}) | FUNCTION_TYPES

# Child kinds searched when summarising an if/loop condition
CONDITION_TYPES = frozenset({
    "condition",
    "parenthesized_expression",
    "binary_expression",
    "comparison_operator",  # Python
})

BODY_TYPES = frozenset({
    "block",
    "statement_block",
    "compound_statement",
    "consequence",
    "body",
})

ELSE_TYPES = frozenset({"else_clause", "else", "alternative"})

ARM_TYPES = frozenset({
    "match_arm",  # Rust
    "switch_case",
    "switch_default",
    "case_clause",  # Python match
    "default_clause",
    "match_case",
    "expression_case",  # Go
    "type_case",  # Go
    "default_case",  # Go
})

# Arms may sit one level down inside a wrapper node
ARM_CONTAINER_TYPES = frozenset({
    "match_block",
    "switch_body",
    "switch_block",
    "block",  # Python: match_statement -> block -> case_clause
})

NAME_TYPES = frozenset({"identifier", "name"})
FALLBACK_NAME_TYPES = frozenset({"property_identifier", "field_identifier"})

COMMENT_TYPES = frozenset({"comment", "line_comment", "block_comment"})


@dataclass(frozen=True, slots=True)
class KindTable:
    """Classification tables consulted by the CFG builder."""

    if_types: frozenset[str] = IF_TYPES
    loop_types: frozenset[str] = LOOP_TYPES
    match_types: frozenset[str] = MATCH_TYPES
    terminator_types: frozenset[str] = TERMINATOR_TYPES
    function_types: frozenset[str] = FUNCTION_TYPES
    container_types: frozenset[str] = CONTAINER_TYPES
    condition_types: frozenset[str] = CONDITION_TYPES
    body_types: frozenset[str] = BODY_TYPES
    else_types: frozenset[str] = ELSE_TYPES
    arm_types: frozenset[str] = ARM_TYPES
    arm_container_types: frozenset[str] = ARM_CONTAINER_TYPES
    name_types: frozenset[str] = NAME_TYPES
    fallback_name_types: frozenset[str] = FALLBACK_NAME_TYPES
    comment_types: frozenset[str] = COMMENT_TYPES
    _categories: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            "_categories",
            (
                (BRANCH, self.if_types),
                (LOOP, self.loop_types),
                (MATCH, self.match_types),
                (TERMINATOR, self.terminator_types),
                (FUNCTION, self.function_types),
            ),
        )

    def extended(self, **extra: set[str] | frozenset[str]) -> "KindTable":
        """Return a copy with extra kinds merged into the named tables.

        Example:
            table = DEFAULT_KINDS.extended(loop_types={"repeat_statement"})
        """
        known = {f.name for f in fields(self) if f.init}
        unknown = set(extra) - known
        if unknown:
            raise ValueError(f"Unknown kind tables: {', '.join(sorted(unknown))}")

        merged = {
            name: getattr(self, name) | frozenset(extra.get(name, ()))
            for name in known
        }
        # New function kinds are containers too
        merged["container_types"] = merged["container_types"] | merged["function_types"]
        return KindTable(**merged)

    def category_of(self, kind: str) -> str | None:
        """Structural category of a node kind, or None for plain kinds."""
        for category, kinds in self._categories:
            if kind in kinds:
                return category
        return None

    def is_comment(self, node: AstNode) -> bool:
        return node.kind in self.comment_types

    def is_container(self, node: AstNode, structural: dict[int, bool] | None = None) -> bool:
        """Whether the builder should chain this node's children.

        True for statement-list kinds, and for any named node with a
        structural descendant (an expression statement wrapping a ternary, a
        declaration holding a closure, a class body holding methods).

        ``structural`` is the table from ``structural_flags``; without it the
        subtree is scanned.
        """
        if node.kind in self.container_types:
            return True
        if not node.is_named:
            return False
        if structural is not None:
            return structural[id(node)]
        return self.has_structural_descendant(node)

    def structural_flags(self, root: AstNode) -> dict[int, bool]:
        """Map ``id(node)`` to whether the node has a structural descendant,
        for every node under ``root``. One post-order pass."""
        flags: dict[int, bool] = {}
        stack: list[tuple[AstNode, bool]] = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if id(node) in flags:
                continue
            if not expanded:
                stack.append((node, True))
                stack.extend((child, False) for child in node.children)
                continue
            flags[id(node)] = any(
                flags[id(child)] or self.category_of(child.kind) is not None
                for child in node.children
            )
        return flags

    def has_structural_descendant(self, node: AstNode) -> bool:
        stack = list(node.children)
        while stack:
            child = stack.pop()
            if self.category_of(child.kind) is not None:
                return True
            stack.extend(child.children)
        return False

    def to_dict(self) -> dict:
        return {
            f.name: sorted(getattr(self, f.name))
            for f in fields(self)
            if f.init
        }


DEFAULT_KINDS = KindTable()
