"""Tesseract OCR engine wrapper with scoped recognition workers.

A worker binds one engine mode and one page segmentation mode to a set of
languages. Workers are acquired through :meth:`TesseractEngine.worker`, which
releases them when the ``with`` block exits whatever the outcome.
"""

import io
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

import pytesseract
from PIL import Image

from microapis.utils.logger import get_logger

logger = get_logger(__name__)


class EngineMode(IntEnum):
    """Tesseract OCR engine modes (``--oem``)."""

    TESSERACT_ONLY = 0
    LSTM_ONLY = 1
    TESSERACT_LSTM_COMBINED = 2
    DEFAULT = 3


class SegmentationMode(IntEnum):
    """Tesseract page segmentation modes (``--psm``)."""

    AUTO = 3
    SINGLE_BLOCK_VERT_TEXT = 5
    SINGLE_BLOCK = 6
    SPARSE_TEXT = 11


TAMIL_LETTERS = "அஆஇஈஉஊஎஏஐஒஓஔகஙசஜஞடணதநபமயரலவழளனஷஸஹ"
EXTENDED_WHITELIST = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-.,/:()&"
    + TAMIL_LETTERS
)
BASIC_WHITELIST = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789._-"


@dataclass
class RecognizedText:
    """Raw text produced by a single recognition call."""

    text: str
    engine_mode: EngineMode
    segmentation_mode: SegmentationMode


class TesseractWorker:
    """A configured recognizer bound to one (oem, psm) pair.

    Args:
        languages: ``+``-separated Tesseract language codes.
        engine_mode: OCR engine mode.
        segmentation_mode: Page segmentation mode.
        whitelist: Characters Tesseract may emit.
        tessdata_dir: Directory holding ``*.traineddata`` files, or ``None``
            for the system default.
        timeout: Seconds before a recognition call is abandoned.
    """

    def __init__(
        self,
        languages: str,
        engine_mode: EngineMode,
        segmentation_mode: SegmentationMode,
        whitelist: str,
        tessdata_dir: Path | None = None,
        timeout: float = 0,
    ) -> None:
        self.languages = languages
        self.engine_mode = engine_mode
        self.segmentation_mode = segmentation_mode
        self.whitelist = whitelist
        self.tessdata_dir = tessdata_dir
        self.timeout = timeout
        self._images: list[Image.Image] = []
        self.terminated = False

    @property
    def config(self) -> str:
        """Command-line configuration passed to the tesseract binary."""
        parts = [
            f"--oem {int(self.engine_mode)}",
            f"--psm {int(self.segmentation_mode)}",
        ]
        if self.tessdata_dir is not None:
            parts.append(f'--tessdata-dir "{self.tessdata_dir}"')
        parts.extend(
            [
                f"-c tessedit_char_whitelist={self.whitelist}",
                "-c preserve_interword_spaces=1",
                "-c tessedit_do_invert=0",
            ]
        )
        return " ".join(parts)

    def recognize(self, buffer: bytes) -> RecognizedText:
        """Run OCR over an encoded image.

        Args:
            buffer: Encoded image bytes.

        Returns:
            Raw recognised text.

        Raises:
            RuntimeError: If the worker has been terminated or the call
                times out.
            pytesseract.TesseractError: If Tesseract rejects the input.
        """
        if self.terminated:
            raise RuntimeError("Worker already terminated")
        image = Image.open(io.BytesIO(buffer))
        self._images.append(image)
        text = pytesseract.image_to_string(
            image,
            lang=self.languages,
            config=self.config,
            timeout=self.timeout,
        )
        return RecognizedText(
            text=text,
            engine_mode=self.engine_mode,
            segmentation_mode=self.segmentation_mode,
        )

    def terminate(self) -> None:
        """Release decoded images held by this worker."""
        for image in self._images:
            image.close()
        self._images.clear()
        self.terminated = True


class TesseractEngine:
    """Factory for scoped Tesseract workers.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        timeout: Seconds allowed per recognition call (0 disables).
    """

    def __init__(self, tesseract_cmd: str | None = None, timeout: float = 0) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.timeout = timeout
        self.active_workers = 0
        self.peak_workers = 0
        self._lock = threading.Lock()

    @contextmanager
    def worker(
        self,
        languages: str,
        engine_mode: EngineMode,
        segmentation_mode: SegmentationMode,
        whitelist: str = EXTENDED_WHITELIST,
        tessdata_dir: Path | None = None,
    ) -> Iterator[TesseractWorker]:
        """Acquire a worker for the duration of a ``with`` block.

        The worker is terminated on exit, including when recognition raises.
        """
        worker = TesseractWorker(
            languages=languages,
            engine_mode=engine_mode,
            segmentation_mode=segmentation_mode,
            whitelist=whitelist,
            tessdata_dir=tessdata_dir,
            timeout=self.timeout,
        )
        with self._lock:
            self.active_workers += 1
            self.peak_workers = max(self.peak_workers, self.active_workers)
        try:
            yield worker
        finally:
            logger.debug(
                "Terminating worker (oem=%s, psm=%s)",
                engine_mode.name,
                segmentation_mode.name,
            )
            worker.terminate()
            with self._lock:
                self.active_workers -= 1
