"""Glossary application strategies wrapped around translate calls."""

from __future__ import annotations

from typing import Awaitable, Callable, List, Sequence

from .structures import Glossary

SegmentTranslate = Callable[[List[str]], Awaitable[List[str]]]
HintedSegmentTranslate = Callable[[List[str], str], Awaitable[List[str]]]


def apply_glossary(text: str, glossary: Glossary) -> str:
    """Replace glossary terms in ``text``, longest source terms first."""

    for term in sorted(glossary, key=len, reverse=True):
        text = text.replace(term, glossary[term])
    return text


def glossary_hint(glossary: Glossary) -> str:
    """Render the glossary as ``source->target`` lines for a prompt."""

    return "\n".join(f"{source}->{target}" for source, target in glossary.items())


def create_glossary_wrapper(glossary: Glossary):
    """Pre-substitute glossary terms on each line before translating."""

    async def wrapper(seg: Sequence[str], translate: SegmentTranslate) -> List[str]:
        replaced = [apply_glossary(line, glossary) for line in seg]
        return await translate(replaced)

    return wrapper


def create_hint_wrapper(glossary: Glossary):
    """Hand the glossary to the backend as a structured hint."""

    hint = glossary_hint(glossary)

    async def wrapper(seg: Sequence[str], translate: HintedSegmentTranslate) -> List[str]:
        return await translate(list(seg), hint)

    return wrapper
