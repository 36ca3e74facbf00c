"""
tree-sitter front end: source text in, ``AstNode`` tree out.

Grammar packages are optional; each language is checked separately so a
missing grammar only disables that language.
"""

import importlib
import logging

from .syntax import AstNode

logger = logging.getLogger(__name__)

TREE_SITTER_AVAILABLE = False
try:
    from tree_sitter import Language, Parser  # noqa: F401

    TREE_SITTER_AVAILABLE = True
except ImportError:
    pass

# language -> (grammar module, language function)
GRAMMARS: dict[str, tuple[str, str]] = {
    "python": ("tree_sitter_python", "language"),
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
    "go": ("tree_sitter_go", "language"),
    "rust": ("tree_sitter_rust", "language"),
    "java": ("tree_sitter_java", "language"),
    "c": ("tree_sitter_c", "language"),
    "cpp": ("tree_sitter_cpp", "language"),
    "ruby": ("tree_sitter_ruby", "language"),
}


def is_language_available(language: str) -> bool:
    """Whether tree-sitter and the grammar for ``language`` are installed."""
    if not TREE_SITTER_AVAILABLE or language not in GRAMMARS:
        return False
    module_name, _ = GRAMMARS[language]
    try:
        importlib.import_module(module_name)
    except ImportError:
        return False
    return True


def get_parser(language: str):
    """Create a tree-sitter parser for the given language.

    Raises:
        ValueError: If the language is not supported.
        ImportError: If tree-sitter or the grammar package is not installed.
    """
    if language not in GRAMMARS:
        raise ValueError(f"Unsupported language: {language}")
    if not TREE_SITTER_AVAILABLE:
        raise ImportError("tree-sitter not available - install with: pip install tree-sitter")

    module_name, function_name = GRAMMARS[language]
    try:
        grammar = importlib.import_module(module_name)
    except ImportError as e:
        package = module_name.replace("_", "-")
        raise ImportError(
            f"{module_name} not available - install with: pip install {package}"
        ) from e

    parser = Parser()
    parser.language = Language(getattr(grammar, function_name)())
    return parser


def parse_source(source: str, language: str) -> AstNode:
    """Parse source text into an AstNode tree."""
    parser = get_parser(language)
    tree = parser.parse(source.encode("utf-8"))
    if tree.root_node.has_error:
        # tree-sitter recovers from syntax errors; the CFG is built from what parsed
        logger.warning(f"Syntax errors while parsing {language} source")
    return AstNode.from_tree_sitter(tree.root_node)
