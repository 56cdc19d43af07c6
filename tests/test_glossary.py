import pytest

from novella.glossary import (
    apply_glossary,
    create_glossary_wrapper,
    create_hint_wrapper,
    glossary_hint,
)


def test_longest_term_replaced_first():
    assert apply_glossary("abc", {"ab": "X", "abc": "Y"}) == "Y"


def test_empty_glossary_is_noop():
    assert apply_glossary("アリスとボブ", {}) == "アリスとボブ"


def test_all_occurrences_replaced():
    assert apply_glossary("アリスとアリス", {"アリス": "Alice"}) == "AliceとAlice"


def test_hint_format():
    assert glossary_hint({"アリス": "Alice", "ボブ": "Bob"}) == "アリス->Alice\nボブ->Bob"


@pytest.mark.asyncio
async def test_substitution_wrapper_preserves_lines_and_calls_once():
    calls = []

    async def inner(seg):
        calls.append(seg)
        return seg

    wrapper = create_glossary_wrapper({"アリス": "Alice"})
    result = await wrapper(["アリスです", "", "ボブ"], inner)

    assert result == ["Aliceです", "", "ボブ"]
    assert calls == [["Aliceです", "", "ボブ"]]


@pytest.mark.asyncio
async def test_hint_wrapper_passes_glossary_untouched():
    calls = []

    async def inner(seg, hint):
        calls.append((seg, hint))
        return seg

    wrapper = create_hint_wrapper({"アリス": "Alice"})
    result = await wrapper(["アリスです"], inner)

    assert result == ["アリスです"]
    assert calls == [(["アリスです"], "アリス->Alice")]
