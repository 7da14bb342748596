"""OCR pipelines behind the text extraction endpoints.

The extended pipeline runs ingest checks, preprocessing, the recognition
sweep, remote refinement, and classification in sequence. The basic pipeline
is a single recognition pass with restrictive cleaning.
"""

import io
from dataclasses import asdict, dataclass
from pathlib import Path

import pytesseract
from PIL import Image, UnidentifiedImageError

from microapis.exceptions import (
    ExtractionFailedError,
    InvalidInputError,
    NoTextDetectedError,
    PayloadTooLargeError,
    TrainedDataError,
    UnsupportedImageError,
)
from microapis.preprocessing.pipeline import PreprocessingPipeline
from microapis.remote.classifier import DocumentClassifier
from microapis.remote.refiner import TextRefiner
from microapis.text.cleaning import clean_text_basic
from microapis.utils.config import OCRConfig
from microapis.utils.logger import get_logger

from .pdf_handler import PDFHandler, is_pdf
from .recognition import RecognitionLoop
from .tessdata import TrainedDataStore, check_languages
from .tesseract_engine import (
    BASIC_WHITELIST,
    EngineMode,
    SegmentationMode,
    TesseractEngine,
)

logger = get_logger(__name__)


@dataclass
class OcrResult:
    """Extended pipeline output returned to API callers."""

    text: str
    refined_text: str
    document_type: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


class DocumentProcessor:
    """End-to-end OCR processing for uploaded images.

    Args:
        config: OCR configuration.
        engine: Tesseract engine providing scoped workers.
        preprocessing: Image preprocessing stage.
        refiner: Remote text refiner.
        classifier: Document type classifier.
        tessdata: Optional store that downloads missing language files.
        pdf_handler: Renderer for PDF uploads.
    """

    def __init__(
        self,
        config: OCRConfig,
        engine: TesseractEngine,
        preprocessing: PreprocessingPipeline,
        refiner: TextRefiner,
        classifier: DocumentClassifier,
        tessdata: TrainedDataStore | None = None,
        pdf_handler: PDFHandler | None = None,
    ) -> None:
        self.config = config
        self.engine = engine
        self.preprocessing = preprocessing
        self.refiner = refiner
        self.classifier = classifier
        self.tessdata = tessdata
        self.pdf_handler = pdf_handler or PDFHandler(dpi=config.pdf_dpi)
        self.recognition = RecognitionLoop(engine)

    def process(self, buffer: bytes, languages: str | None = None) -> OcrResult:
        """Extract, refine, and classify the text of an image.

        Args:
            buffer: Encoded PNG, JPEG, or PDF bytes.
            languages: ``+``-separated language codes.

        Returns:
            Raw text, refined text, and predicted document type.

        Raises:
            InvalidInputError: If the buffer is empty or the languages are
                malformed.
            PayloadTooLargeError: If the buffer exceeds the ceiling.
            UnsupportedImageError: If the image cannot be handled.
            ExtractionFailedError: If every recognition attempt fails.
        """
        languages = check_languages(languages or self.config.default_languages)
        self._check_buffer(buffer)
        logger.info("Input buffer size: %.2fMB", len(buffer) / 1024 / 1024)

        if is_pdf(buffer):
            buffer = self.pdf_handler.first_page_png(buffer)

        tessdata_dir = self._tessdata_dir(languages)
        prepared = self.preprocessing.process(buffer)
        logger.info("Preprocessing strategy: %s", prepared.strategy)

        recognition = self.recognition.run(
            prepared.buffer, buffer, languages, tessdata_dir=tessdata_dir
        )
        logger.info(
            "Recognition succeeded after %d attempt(s) with %s",
            recognition.attempts_made,
            recognition.attempt.describe(),
        )

        refined = self.refiner.refine(recognition.text)
        document_type = self.classifier.classify(refined)
        logger.info("Predicted document type: %s", document_type)

        return OcrResult(
            text=recognition.text,
            refined_text=refined,
            document_type=document_type,
        )

    def extract_basic(self, buffer: bytes) -> str:
        """Single-pass extraction with restrictive cleaning.

        Args:
            buffer: Encoded PNG or JPEG bytes.

        Returns:
            Cleaned text.

        Raises:
            NoTextDetectedError: If Tesseract finds no text.
            ExtractionFailedError: If Tesseract fails.
        """
        self._check_buffer(buffer)
        try:
            with Image.open(io.BytesIO(buffer)) as img:
                img.verify()
        except Image.DecompressionBombError as exc:
            raise PayloadTooLargeError(f"Image has too many pixels: {exc}") from exc
        except (UnidentifiedImageError, OSError) as exc:
            raise UnsupportedImageError(f"Unreadable image data: {exc}") from exc

        with self.engine.worker(
            "eng",
            EngineMode.LSTM_ONLY,
            SegmentationMode.SINGLE_BLOCK,
            whitelist=BASIC_WHITELIST,
            tessdata_dir=self._tessdata_dir("eng"),
        ) as worker:
            try:
                raw = worker.recognize(buffer).text
            except (pytesseract.TesseractError, RuntimeError, OSError) as exc:
                raise ExtractionFailedError(
                    f"Failed to extract text from image: {exc}"
                ) from exc

        if not raw.strip():
            raise NoTextDetectedError("No text detected in the image")
        return clean_text_basic(raw)

    def _check_buffer(self, buffer: bytes) -> None:
        if not buffer:
            raise InvalidInputError("Invalid image buffer")
        limit = self.config.max_buffer_mb * 1024 * 1024
        if len(buffer) > limit:
            raise PayloadTooLargeError(
                f"Image size exceeds {self.config.max_buffer_mb}MB limit"
            )

    def _tessdata_dir(self, languages: str) -> Path | None:
        if self.tessdata is None:
            return None
        try:
            return self.tessdata.ensure(languages)
        except TrainedDataError as exc:
            logger.error("Failed to ensure traineddata files: %s", exc)
            return None
