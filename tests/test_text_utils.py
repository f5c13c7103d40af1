from quizmark.utils.text_utils import (
    alnum_count,
    clean_extracted_text,
    format_number,
    is_meaningful,
    is_solution_sentinel,
    is_unknown_sentinel,
    sanitize,
    slugify,
    solution_sentinel,
    to_win_ansi,
    unknown_sentinel,
    wrap_lines,
)


def test_meaningful_gate_boundary():
    assert not is_meaningful("a" * 29)
    assert is_meaningful("a" * 30)


def test_meaningful_counts_only_ascii_alnum():
    noisy = "-- !! .. ?? " * 20 + "x1" * 14
    assert alnum_count(noisy) == 28
    assert not is_meaningful(noisy)
    assert is_meaningful(noisy + "yz")


def test_meaningful_handles_empty():
    assert not is_meaningful("")
    assert not is_meaningful(None)


def test_sanitize_drops_non_ascii_and_collapses_spaces():
    assert sanitize("  héllo   wörld  again ") == "hllo wrld again"
    assert sanitize("line one\nline two") == "line one\nline two"


def test_clean_extracted_text():
    assert clean_extracted_text("  a   b\nc \x00 ") == "a b\nc"
    assert clean_extracted_text(None) == ""


def test_slugify():
    assert slugify("  Hello   World! ") == "hello_world"
    assert slugify("Unit-Test 3") == "unit-test_3"
    assert slugify(None) == ""


def test_sentinels_with_and_without_section():
    assert solution_sentinel("Math Quiz 1", "Sec A") == "solution_paper_math_quiz_1_sec_a"
    assert unknown_sentinel("Math Quiz 1") == "unknown_math_quiz_1"
    assert solution_sentinel(None, None) == "solution_paper"


def test_sentinel_detection_is_case_insensitive_and_prefix_exact():
    assert is_solution_sentinel("SOLUTION_PAPER_math")
    assert is_solution_sentinel("solution_paper")
    assert not is_solution_sentinel("solution_papers")
    assert is_unknown_sentinel("Unknown_quiz_a")
    assert not is_unknown_sentinel("unknownish")
    assert not is_unknown_sentinel(None)


def test_win_ansi_folds_typography():
    assert to_win_ansi("“Hi” — there…") == '"Hi" - there...'
    assert to_win_ansi("✓ done → next") == "v done -> next"
    assert to_win_ansi("café") == "cafe"


def test_wrap_lines_respects_width():
    text = " ".join(["word"] * 30)
    lines = wrap_lines(text, 20)
    assert all(len(line) <= 20 for line in lines)
    assert " ".join(lines) == text
    assert len(lines) == 8


def test_wrap_lines_long_word_gets_own_line():
    assert wrap_lines("a " + "x" * 30 + " b", 10) == ["a", "x" * 30, "b"]
    assert wrap_lines("", 10) == []


def test_format_number():
    assert format_number(3.0) == "3"
    assert format_number(2.5) == "2.5"
    assert format_number(None) == "0"
    assert format_number(None, missing="-") == "-"
