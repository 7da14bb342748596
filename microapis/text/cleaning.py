"""Normalisation and validity checks for OCR output text."""

import re

_DISALLOWED = re.compile(r"""[^a-zA-Z0-9.,!?;:'"()@#$%&*+=\-_/\\\[\]{}|\s]""")
_DISALLOWED_BASIC = re.compile(r"[^a-zA-Z0-9\s._\-]")
_WHITESPACE = re.compile(r"\s+")
_ALNUM = re.compile(r"[a-zA-Z0-9]")

MIN_TEXT_LENGTH = 20
MIN_ALNUM_RATIO = 0.5


def clean_text(text: str) -> str:
    """Strip OCR artefacts and collapse whitespace to single spaces.

    Characters outside the allow-list (ASCII letters, digits, common
    punctuation) are removed before whitespace is collapsed, so the result
    is stable under repeated cleaning.

    Args:
        text: Raw text from the OCR engine.

    Returns:
        Cleaned single-line text.
    """
    stripped = _DISALLOWED.sub("", text)
    return _WHITESPACE.sub(" ", stripped).strip()


def clean_text_basic(text: str) -> str:
    """Restrictive cleaning used by the single-pass endpoint.

    Keeps letters, digits, whitespace, dots, underscores and hyphens.
    """
    stripped = _DISALLOWED_BASIC.sub("", text)
    return _WHITESPACE.sub(" ", stripped).strip()


def is_valid_text(
    text: str,
    min_length: int = MIN_TEXT_LENGTH,
    min_alnum_ratio: float = MIN_ALNUM_RATIO,
) -> bool:
    """Decide whether cleaned OCR text is meaningful enough to keep.

    Args:
        text: Cleaned text.
        min_length: Minimum number of characters.
        min_alnum_ratio: Alphanumeric share the text must exceed.

    Returns:
        ``True`` if the text is long enough and mostly alphanumeric.
    """
    if not text or len(text) < min_length:
        return False
    alnum = len(_ALNUM.findall(text))
    return alnum / len(text) > min_alnum_ratio
