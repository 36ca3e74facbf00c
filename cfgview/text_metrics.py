"""
Text measurement for block sizing.

The layout engine takes a pluggable ``measure_text(text, font) -> width``
callable. A renderer with real font metrics should pass its own; this module
provides the fallback used when none is given: a monospace estimate from the
font's pixel size and per-character cell widths.
"""

import re

BLOCK_FONT = '12px "SF Mono", "Cascadia Code", "Fira Code", Consolas, monospace'
BLOCK_FONT_SMALL = '10px "SF Mono", "Cascadia Code", "Fira Code", Consolas, monospace'

DEFAULT_FONT_SIZE = 12.0

# Advance width of one monospace cell relative to the font size
MONOSPACE_ADVANCE = 0.6

_FONT_SIZE_RE = re.compile(r"(\d+(?:\.\d+)?)px")


def font_size(font: str) -> float:
    """Pixel size from a CSS font shorthand ("12px monospace" -> 12.0)."""
    match = _FONT_SIZE_RE.search(font or "")
    if not match:
        return DEFAULT_FONT_SIZE
    return float(match.group(1))


def char_cells(char: str) -> int:
    """Number of monospace cells a character occupies.

    CJK ideographs, kana, Hangul and emoji render double-width; combining
    marks and zero-width characters take no cell.
    """
    code = ord(char)
    if code < 128:
        return 1 if code >= 32 or char == "\t" else 0
    if (0x0300 <= code <= 0x036F or      # Combining diacritics
            0x200B <= code <= 0x200F or  # Zero-width spaces and marks
            code == 0xFEFF):
        return 0
    if (0x4E00 <= code <= 0x9FFF or      # CJK Unified Ideographs
            0x3400 <= code <= 0x4DBF or  # CJK Extension A
            0x20000 <= code <= 0x2B81F or  # CJK Extensions B-D
            0xF900 <= code <= 0xFAFF or  # CJK Compatibility
            0x3000 <= code <= 0x30FF or  # CJK Punctuation, Hiragana, Katakana
            0xAC00 <= code <= 0xD7AF or  # Korean Hangul
            0xFF00 <= code <= 0xFF60 or  # Fullwidth forms
            0x1F300 <= code <= 0x1F9FF):  # Emoji
        return 2
    return 1


def measure_text(text: str, font: str = BLOCK_FONT) -> float:
    """Estimate the rendered width of ``text`` in pixels."""
    if not text:
        return 0.0
    cells = sum(char_cells(char) for char in text)
    return cells * font_size(font) * MONOSPACE_ADVANCE
