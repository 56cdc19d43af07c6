"""Versioned chat prompts for the Sakura light-novel translation models."""

from __future__ import annotations

from typing import Dict, List, Tuple

Message = Dict[str, str]

# Model generations that read the glossary as a hint list.
HINT_VERSIONS = frozenset({"1.0", "0.10"})

BASE_SYSTEM_PROMPT = (
    "You are a light novel translation model that can fluently and smoothly "
    "translate Japanese into English in the style of Japanese light novels, and "
    "correctly use personal pronouns in context without arbitrarily adding "
    "pronouns that are not in the original text."
)

GLOSSARY_SYSTEM_PROMPT = (
    "You are a light novel translation model that can fluently and smoothly use "
    "the given glossary to translate Japanese into English in the style of "
    "Japanese light novels, and correctly use personal pronouns in context, "
    "paying attention not to confuse the subject and object of causative and "
    "passive forms, do not arbitrarily add pronouns that are not in the original "
    "text, and do not arbitrarily add or reduce line breaks."
)

PLAIN_REQUEST = "Translate the following Japanese text into English: "
GLOSSARY_PREAMBLE = "Based on the following glossary (can be empty):\n"

_FULL_WIDTH_DIGITS = str.maketrans("０１２３４５６７８９", "0123456789")


def normalize_digits(text: str) -> str:
    """Convert full-width digits to their half-width forms."""

    return text.translate(_FULL_WIDTH_DIGITS)


def build_messages(
    version: str,
    text: str,
    hint: str,
    prev_text: str,
) -> Tuple[List[Message], str]:
    """Return the chat messages and the prepared source text for a model generation.

    ``1.0`` and ``0.10`` models receive the rendered glossary ``hint`` in the
    user turn. Older generations cannot read hints; their text arrives with
    the glossary already substituted and ``hint`` is ignored.
    """

    text = normalize_digits(text)
    messages: List[Message] = []

    if version == "1.0":
        messages.append({"role": "system", "content": BASE_SYSTEM_PROMPT})
        if prev_text:
            messages.append({"role": "assistant", "content": prev_text})
        if not hint:
            user = PLAIN_REQUEST + text
        else:
            user = (
                f"{GLOSSARY_PREAMBLE}{hint}\n"
                "Translate the following Japanese text into English according to "
                f"the corresponding relationships and notes: {text}"
            )
        messages.append({"role": "user", "content": user})
    elif version == "0.10":
        messages.append({"role": "system", "content": GLOSSARY_SYSTEM_PROMPT})
        if prev_text:
            messages.append({"role": "assistant", "content": prev_text})
        user = (
            f"{GLOSSARY_PREAMBLE}{hint}\n\n"
            "Translate the following Japanese text into English according to the "
            f"corresponding relationships and notes in the above glossary: {text}"
        )
        messages.append({"role": "user", "content": user})
    else:
        messages.append({"role": "system", "content": BASE_SYSTEM_PROMPT})
        if prev_text:
            messages.append({"role": "assistant", "content": prev_text})
        messages.append({"role": "user", "content": PLAIN_REQUEST + text})

    return messages, text
