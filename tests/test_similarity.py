import pytest

from budget_engine.similarity import fold, similarity


def test_fold_collapses_case_and_whitespace():
    assert fold("  Coffee   SHOP ") == "coffee shop"
    assert fold(None) == ""


def test_identical_after_folding_scores_one():
    assert similarity("Netflix", "  netflix ") == 1.0
    assert similarity("STARBUCKS #4471", "starbucks #4471") == 1.0


def test_empty_against_non_empty_scores_zero():
    assert similarity("", "coffee") == 0.0
    assert similarity("coffee", None) == 0.0


def test_containment():
    assert similarity("coffee", "coffee shop") == pytest.approx(0.8 + 0.2 * 6 / 11)


def test_shared_words():
    assert similarity("coffee shop downtwn", "coffee shop downtown") == pytest.approx(0.6 + 0.3 * 2 / 3)


def test_edit_distance_for_comparable_lengths():
    assert similarity("starbuks", "starbucks") == pytest.approx(1 - 1 / 9)
    assert similarity("abcd", "wxyz") == 0.0


def test_edit_distance_skipped_for_very_different_lengths():
    assert similarity("ab", "xyzwvuts") == 0.0


@pytest.mark.parametrize(
    "a, b",
    [
        ("coffee", "coffee shop"),
        ("Trader Joes", "trader joe's market"),
        ("starbuks", "starbucks"),
        ("amazon mktplace", "AMZN Mktp US"),
    ],
)
def test_symmetric(a, b):
    assert similarity(a, b) == similarity(b, a)
