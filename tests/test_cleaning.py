"""Tests for OCR text cleaning and validity checks."""

import pytest

from microapis.text.cleaning import clean_text, clean_text_basic, is_valid_text


class TestCleanText:
    """Tests for the extended-pipeline cleaner."""

    def test_collapses_whitespace(self) -> None:
        assert clean_text("  Name:\n\tJohn    Doe  ") == "Name: John Doe"

    def test_strips_disallowed_characters(self) -> None:
        assert clean_text("Total ₹ 500 © «ok»") == "Total 500 ok"

    def test_keeps_common_punctuation(self) -> None:
        text = "A/C No: 1234-5678 (savings) & [joint], e-mail a@b.c"
        assert clean_text(text) == text

    @pytest.mark.parametrize(
        "raw",
        [
            "Name:  ~~ John ~~  Doe",
            "\n\n  ¶¶ paragraph  \t end ¶",
            "x   y",
            "",
        ],
    )
    def test_idempotent(self, raw: str) -> None:
        once = clean_text(raw)
        assert clean_text(once) == once

    def test_no_leading_trailing_or_double_spaces(self) -> None:
        cleaned = clean_text(" ™ start  ™  middle ™ end ™ ")
        assert cleaned == cleaned.strip()
        assert "  " not in cleaned


class TestCleanTextBasic:
    """Tests for the restrictive single-pass cleaner."""

    def test_keeps_only_basic_characters(self) -> None:
        assert clean_text_basic("File: report_v2.pdf, (final)!") == "File report_v2.pdf final"

    def test_collapses_whitespace(self) -> None:
        assert clean_text_basic("a \n\n b") == "a b"


class TestIsValidText:
    """Tests for the meaningful-text heuristic."""

    def test_valid_sentence(self) -> None:
        assert is_valid_text("Government of India Aadhaar card") is True

    def test_too_short(self) -> None:
        assert is_valid_text("short text") is False

    def test_empty(self) -> None:
        assert is_valid_text("") is False

    def test_mostly_punctuation(self) -> None:
        assert is_valid_text("-- .. // -- .. // ab -- ..") is False

    def test_ratio_must_exceed_half(self) -> None:
        # 10 alphanumerics out of 20 characters is exactly one half.
        assert is_valid_text("a-b-c-d-e-f-g-h-i-j-") is False
        assert is_valid_text("ab-c-d-e-f-g-h-i-j-k") is True
