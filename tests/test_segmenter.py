from novella.segmenter import (
    create_length_segmentor,
    has_han,
    has_hangul,
    has_kana,
    has_latin,
    segment_lines,
)


def test_segments_concatenate_back_to_input():
    lines = ["a" * 120, "b" * 300, "c" * 90, "d" * 600, "e" * 10, "", "f" * 499]
    segments = segment_lines(lines, 500)

    assert [line for seg in segments for line in seg] == lines


def test_segment_length_respects_budget_except_single_oversized_line():
    lines = ["a" * 120, "b" * 300, "c" * 90, "d" * 600, "e" * 10, "f" * 499]
    segments = segment_lines(lines, 500)

    for seg in segments:
        total = sum(len(line) for line in seg)
        assert total <= 500 or len(seg) == 1
    assert ["d" * 600] in segments


def test_greedy_packing():
    segments = segment_lines(["aa", "bb", "cc", "dd"], 4)

    assert segments == [["aa", "bb"], ["cc", "dd"]]


def test_max_lines_caps_segment_size():
    segmentor = create_length_segmentor(100, max_lines=2)

    assert segmentor(["a", "b", "c"]) == [["a", "b"], ["c"]]


def test_empty_input_yields_no_segments():
    assert create_length_segmentor(500)([]) == []


def test_segmentation_is_deterministic():
    lines = ["x" * n for n in (10, 200, 300, 5, 700, 1)]
    segmentor = create_length_segmentor(500)

    assert segmentor(lines) == segmentor(lines)


def test_script_detection():
    assert has_hangul("안녕하세요")
    assert has_kana("こんにちは")
    assert has_kana("カタカナ")
    assert has_han("漢字")
    assert has_latin("hello")
    assert not has_hangul("こんにちは")
    assert not has_kana("漢字")
    assert not has_latin("１２３")
