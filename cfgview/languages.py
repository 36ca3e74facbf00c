"""
Language detection and file extension configuration.

Single source of truth for the languages cfgview can parse.
"""

from pathlib import Path

# Extension to language mapping
EXTENSION_TO_LANGUAGE: dict[str, str] = {
    # Python
    ".py": "python",
    ".pyi": "python",
    # TypeScript/JavaScript
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    # Systems languages
    ".go": "go",
    ".rs": "rust",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".hh": "cpp",
    # Other languages
    ".java": "java",
    ".rb": "ruby",
}

SUPPORTED_LANGUAGES: tuple[str, ...] = tuple(sorted(set(EXTENSION_TO_LANGUAGE.values())))

# Default language when detection fails
DEFAULT_LANGUAGE = "python"


def detect_language(file_path: str | Path) -> str | None:
    """Detect language from file extension.

    Args:
        file_path: Path to the source file (string or Path object)

    Returns:
        Language name if recognized, None otherwise
    """
    ext = Path(file_path).suffix.lower()
    return EXTENSION_TO_LANGUAGE.get(ext)


def detect_language_with_default(file_path: str | Path) -> str:
    """Detect language from file extension, returning default if unknown."""
    return detect_language(file_path) or DEFAULT_LANGUAGE
