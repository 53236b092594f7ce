"""
Name Collation

Display lists tie-break on names using a Japanese-friendly collation:
width variants are unified (NFKC), case is ignored, hiragana and
katakana compare equal, and characters group by script in the order
symbols < digits < Latin < kana < kanji < everything else.
The original name is the final tie-breaker so sorting is total.
"""

import unicodedata

_KATAKANA_START = 0x30A1
_KATAKANA_END = 0x30F6
_KANA_OFFSET = 0x60


def _fold_kana(ch: str) -> str:
    code = ord(ch)
    if _KATAKANA_START <= code <= _KATAKANA_END:
        return chr(code - _KANA_OFFSET)
    return ch


def _script_rank(ch: str) -> int:
    if ch.isdigit():
        return 1
    code = ord(ch)
    if 0x3041 <= code <= 0x309F or 0x30A0 <= code <= 0x30FF:
        return 3
    if 0x4E00 <= code <= 0x9FFF or 0x3400 <= code <= 0x4DBF:
        return 4
    if ch.isalpha():
        return 2 if code < 0x0250 else 5
    return 0


def collation_key(name: str) -> tuple:
    """Sort key approximating a Japanese locale string comparison."""
    folded = "".join(
        _fold_kana(ch) for ch in unicodedata.normalize("NFKC", name).casefold()
    )
    return (tuple((_script_rank(ch), ch) for ch in folded), name)
