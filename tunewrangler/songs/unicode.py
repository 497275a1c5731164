"""
Unicode normalization for music filenames

Downloaded filenames are full of legacy glyphs: full-width brackets from
Japanese upload channels, heavy multiplication signs used as collaboration
joiners, stylized small-caps artist names and smart quotes. The downstream
rules assume plain ASCII brackets, dashes and quotes, so every filename passes
through normalize() before it is tokenized.

The folding happens in a fixed order:
    1. Legacy glyphs and stylized artist names (must run before the generic
       fold, which would otherwise drop or mangle them)
    2. Literal phrase fixes (must run before whitespace is collapsed, several
       of them match on doubled spaces)
    3. Generic ASCII folding through an explicit map plus unidecode
    4. Removal of filesystem-unsafe characters and whitespace cleanup
"""

import re
from typing import List, Tuple

from unidecode import unidecode


# Legacy bracket and joiner glyphs, mapped before anything else
GLYPH_REPLACEMENTS: Tuple[Tuple[str, str], ...] = (
    ("【", "["),   # 【
    ("】", "] "),  # 】
    ("❨", "["),   # ❨
    ("❩", "]"),   # ❩
    ("❰", "["),   # ❰
    ("❱", "]"),   # ❱
    ("✖", "x"),   # ✖
    ("✘", "x"),   # ✘
)

# Artist names uploaded in stylized Unicode lookalike letters
ARTIST_NAME_REPLACEMENTS: Tuple[Tuple[str, str], ...] = (
    ("ʟᴜᴄᴀ ʟᴜsʜ", "LUCA LUSH"),
)

# Literal phrase fixes; plain strings replace the first occurrence,
# compiled patterns replace all occurrences
PHRASE_REPLACEMENTS = (
    ("Re-Sauce", "Remix"),
    ("Re-Crank", "Remix"),
    ("Mixmag - Premiere-", "Mixmag - "),
    ("1985  -  Music", "1985 Music"),
    ("+PRIME+", "PRIME"),
    ("Premiere  ", ""),
    (re.compile(r"free download", re.IGNORECASE), ""),
    (re.compile(r"featuring", re.IGNORECASE), "feat."),
)

# Characters whose unidecode rendering differs from what the collection uses
ASCII_MAP = {
    # Letters that do not decompose under NFD
    "Æ": "AE", "æ": "ae", "Ø": "O", "ø": "o", "ß": "ss", "Þ": "TH", "þ": "th",
    "Ð": "D", "ð": "d", "Đ": "D", "đ": "d", "Ł": "L", "ł": "l", "Ħ": "H", "ħ": "h",
    "ı": "i", "Œ": "OE", "œ": "oe",

    # Punctuation
    "‘": "'", "’": "'", "‚": ",", "“": '"', "”": '"',
    "„": '"', "«": '"', "»": '"', "‹": "<", "›": ">",
    "–": "-", "—": "-", "…": "...", "•": "*",

    # Mathematical symbols
    "×": "x", "÷": "/", "±": "+/-", "≈": "~", "≠": "!=", "≤": "<=", "≥": ">=",
    "∞": "infinity", "∑": "sum", "∏": "product", "∆": "delta", "∇": "nabla",

    # Currency
    "€": "EUR", "£": "GBP", "¥": "JPY", "¢": "cent", "¤": "currency",

    # Fractions
    "½": "1/2", "⅓": "1/3", "⅔": "2/3", "¼": "1/4", "¾": "3/4",
    "⅛": "1/8", "⅜": "3/8", "⅝": "5/8", "⅞": "7/8",

    # Music symbols
    "♪": "note", "♫": "notes", "♬": "notes", "♭": "b", "♯": "#", "♮": "natural",

    # Arrows
    "←": "<-", "→": "->", "↑": "^", "↓": "v", "↔": "<->", "↕": "^v",

    # Box drawing
    "│": "|", "─": "-", "┌": "+", "┐": "+", "└": "+", "┘": "+",
    "├": "+", "┤": "+", "┬": "+", "┴": "+", "┼": "+",

    # Greek letters that unidecode renders differently
    "Θ": "TH", "θ": "th", "Χ": "CH", "χ": "ch", "Ψ": "PS", "ψ": "ps",
    "Ω": "O", "ω": "o", "Η": "H", "η": "h", "Υ": "Y", "υ": "y", "Ξ": "X", "ξ": "x",

    # Cyrillic letters that unidecode renders differently
    "Ё": "YO", "ё": "yo", "Х": "KH", "х": "kh", "Щ": "SCH", "щ": "sch",
    "Ъ": "", "ъ": "", "Ь": "", "ь": "", "Ы": "Y", "ы": "y", "Й": "Y", "й": "y",
}

UNSAFE_FILENAME_CHARS = re.compile(r'[<>:/\\|?*]')
WHITESPACE = re.compile(r"\s+")


def _replace_table(text: str, table) -> str:
    for old, new in table:
        if isinstance(old, re.Pattern):
            text = old.sub(new, text)
        else:
            text = text.replace(old, new, 1)
    return text


def replace_legacy_glyphs(text: str) -> str:
    """Apply the glyph, stylized artist name and phrase tables"""
    for old, new in GLYPH_REPLACEMENTS:
        text = text.replace(old, new)
    for old, new in ARTIST_NAME_REPLACEMENTS:
        text = text.replace(old, new)
    return _replace_table(text, PHRASE_REPLACEMENTS)


def normalize_unicode(text: str) -> str:
    """
    Fold text to its closest ASCII equivalent while preserving case

    Args:
        text: Any string

    Returns:
        ASCII text with whitespace runs collapsed and the ends trimmed.
        Characters without an ASCII rendering are dropped.

    Example:
        normalize_unicode("Café")       -> "Cafe"
        normalize_unicode("Björk")      -> "Bjork"
        normalize_unicode("Sigur Rós")  -> "Sigur Ros"
    """
    if not text:
        return text

    result = "".join(ASCII_MAP.get(char, char) for char in text)
    if not result.isascii():
        result = unidecode(result, errors='ignore')

    return WHITESPACE.sub(" ", result).strip()


def normalize(filename: str) -> str:
    """
    Normalize a whole filename before tokenization

    Args:
        filename: Base filename including its extension

    Returns:
        ASCII filename with legacy glyphs, phrase fixes and unsafe characters
        handled. Double quotes are kept; the Insomniac "Track of the Day"
        handling relies on them.
    """
    if not filename:
        return filename

    result = replace_legacy_glyphs(filename)
    result = normalize_unicode(result)
    result = UNSAFE_FILENAME_CHARS.sub("", result)
    return WHITESPACE.sub(" ", result).strip()


def has_unicode_characters(text: str) -> bool:
    """Return True if the text contains any non-ASCII character"""
    return not text.isascii()


def get_unicode_characters(text: str) -> List[str]:
    """
    List the unique non-ASCII characters of a string in first-seen order

    Useful for reporting which characters a filename needed normalization for.
    """
    seen = []
    for char in text:
        if ord(char) > 127 and char not in seen:
            seen.append(char)
    return seen


def normalize_fields(song):
    """
    Fold the parsed artist, album and title of a song to ASCII

    Tag-sourced songs (Beatport, iTunes) never pass their fields through the
    filename normalizer, so processors call this after extraction.

    Args:
        song: Song whose fields are normalized in place

    Returns:
        The same song, with changed set when any field was modified
    """
    original = (song.artist, song.album, song.title)

    song.artist = normalize_unicode(song.artist)
    song.album = normalize_unicode(song.album)
    song.title = normalize_unicode(song.title)

    if (song.artist, song.album, song.title) != original:
        song.changed = True

    return song
