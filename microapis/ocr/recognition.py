"""Multi-pass recognition sweep over engine and segmentation modes.

Attempts are tried in a fixed priority order: for each engine mode, every
segmentation mode from the most general page assumption to the most
specific one. The whole sweep runs first on the preprocessed buffer and then
on the original buffer. The first attempt whose cleaned text passes the
validity check wins.
"""

from dataclasses import dataclass
from pathlib import Path

import pytesseract

from microapis.exceptions import ExtractionFailedError
from microapis.text.cleaning import clean_text, is_valid_text
from microapis.utils.logger import get_logger

from .tesseract_engine import (
    EXTENDED_WHITELIST,
    EngineMode,
    SegmentationMode,
    TesseractEngine,
)

logger = get_logger(__name__)

ENGINE_MODES: tuple[EngineMode, ...] = (
    EngineMode.LSTM_ONLY,
    EngineMode.TESSERACT_LSTM_COMBINED,
)
SEGMENTATION_MODES: tuple[SegmentationMode, ...] = (
    SegmentationMode.AUTO,
    SegmentationMode.SPARSE_TEXT,
    SegmentationMode.SINGLE_BLOCK,
    SegmentationMode.SINGLE_BLOCK_VERT_TEXT,
)

_ENGINE_ERRORS = (pytesseract.TesseractError, RuntimeError, OSError)


@dataclass(frozen=True)
class Attempt:
    """One (engine mode, segmentation mode, buffer variant) combination."""

    engine_mode: EngineMode
    segmentation_mode: SegmentationMode
    variant: str

    def describe(self) -> str:
        return (
            f"OEM {self.engine_mode.name}, PSM {self.segmentation_mode.name} "
            f"({self.variant} buffer)"
        )


@dataclass
class Recognition:
    """Successful sweep outcome."""

    text: str
    attempt: Attempt
    attempts_made: int


def attempt_plan(variants: tuple[str, ...] = ("preprocessed", "original")) -> list[Attempt]:
    """Return every attempt in priority order."""
    return [
        Attempt(oem, psm, variant)
        for variant in variants
        for oem in ENGINE_MODES
        for psm in SEGMENTATION_MODES
    ]


class RecognitionLoop:
    """Runs the recognition sweep against a Tesseract engine.

    Args:
        engine: Engine providing scoped workers.
        whitelist: Characters Tesseract may emit.
    """

    def __init__(self, engine: TesseractEngine, whitelist: str = EXTENDED_WHITELIST) -> None:
        self.engine = engine
        self.whitelist = whitelist

    def run(
        self,
        preprocessed: bytes,
        original: bytes,
        languages: str,
        tessdata_dir: Path | None = None,
    ) -> Recognition:
        """Sweep all attempts until one yields valid text.

        Args:
            preprocessed: Output of the preprocessing stage.
            original: The unprocessed input image.
            languages: ``+``-separated language codes.
            tessdata_dir: Directory with traineddata files, if not the default.

        Returns:
            The cleaned text and the attempt that produced it.

        Raises:
            ExtractionFailedError: If every attempt fails.
        """
        buffers = {"preprocessed": preprocessed, "original": original}
        last_error = "no attempts made"

        for count, attempt in enumerate(attempt_plan(), start=1):
            if count == len(ENGINE_MODES) * len(SEGMENTATION_MODES) + 1:
                logger.info("Preprocessed sweep exhausted, retrying with original buffer")
            logger.info("Attempting OCR with %s", attempt.describe())

            outcome = self._try(attempt, buffers[attempt.variant], languages, tessdata_dir)
            if isinstance(outcome, Recognition):
                outcome.attempts_made = count
                return outcome
            last_error = outcome
            logger.warning("OCR failed with %s: %s", attempt.describe(), outcome)

        raise ExtractionFailedError(f"All OCR attempts failed: {last_error}")

    def _try(
        self,
        attempt: Attempt,
        buffer: bytes,
        languages: str,
        tessdata_dir: Path | None,
    ) -> Recognition | str:
        """Run one attempt; return the recognition or a failure reason."""
        with self.engine.worker(
            languages,
            attempt.engine_mode,
            attempt.segmentation_mode,
            whitelist=self.whitelist,
            tessdata_dir=tessdata_dir,
        ) as worker:
            try:
                raw = worker.recognize(buffer).text
            except _ENGINE_ERRORS as exc:
                return f"engine error: {exc}"

        if not raw or not raw.strip():
            return "no text detected"

        text = clean_text(raw)
        if not is_valid_text(text):
            return f"text too short or invalid: {text!r}"

        logger.info("Extracted %d characters with %s", len(text), attempt.describe())
        return Recognition(text=text, attempt=attempt, attempts_made=0)
