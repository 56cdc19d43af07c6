"""Line batching and script detection utilities."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from .structures import Segmentor

HANGUL_PATTERN = re.compile(r"[\u1100-\u11FF\u3131-\u318E\uAC00-\uD7AF]")
KANA_PATTERN = re.compile(r"[\u3040-\u30FF\u31F0-\u31FF\uFF66-\uFF9F]")
HAN_PATTERN = re.compile(r"[\u3400-\u4DBF\u4E00-\u9FFF]")
LATIN_PATTERN = re.compile(r"[A-Za-z]")


def has_hangul(text: str) -> bool:
    """True if ``text`` contains Korean script."""

    return HANGUL_PATTERN.search(text) is not None


def has_kana(text: str) -> bool:
    """True if ``text`` contains hiragana or katakana."""

    return KANA_PATTERN.search(text) is not None


def has_han(text: str) -> bool:
    """True if ``text`` contains CJK ideographs."""

    return HAN_PATTERN.search(text) is not None


def has_latin(text: str) -> bool:
    """True if ``text`` contains ASCII letters."""

    return LATIN_PATTERN.search(text) is not None


def segment_lines(
    lines: Sequence[str],
    max_length: int,
    max_lines: Optional[int] = None,
) -> List[List[str]]:
    """Greedily pack lines into segments within a character budget.

    A line is never split. A line longer than ``max_length`` ends up alone
    in its own segment.
    """

    segments: List[List[str]] = []
    current: List[str] = []
    running_total = 0

    for line in lines:
        size = len(line)
        fits = running_total + size <= max_length
        if max_lines is not None and len(current) >= max_lines:
            fits = False

        if current and not fits:
            segments.append(current)
            current = []
            running_total = 0

        current.append(line)
        running_total += size

    if current:
        segments.append(current)

    return segments


def create_length_segmentor(max_length: int, max_lines: Optional[int] = None) -> Segmentor:
    """Return a segmentor bound to a character budget."""

    budget = max(1, max_length)

    def segmentor(lines: Sequence[str]) -> List[List[str]]:
        return segment_lines(lines, budget, max_lines)

    return segmentor
