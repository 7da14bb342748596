"""PDF rasterisation for OCR uploads.

Scanned documents often arrive as PDFs; the OCR pipeline works on a single
raster image, so the first page is rendered to PNG bytes.
"""

import io

from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFPageCountError, PDFSyntaxError

from microapis.exceptions import UnsupportedImageError
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF"


def is_pdf(buffer: bytes) -> bool:
    return buffer[:4] == PDF_MAGIC


class PDFHandler:
    """Renders PDF pages to PNG images.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def first_page_png(self, pdf_bytes: bytes) -> bytes:
        """Render the first page of a PDF to PNG bytes.

        Args:
            pdf_bytes: Raw PDF bytes.

        Returns:
            PNG-encoded first page.

        Raises:
            UnsupportedImageError: If the PDF cannot be rendered.
        """
        try:
            pages = convert_from_bytes(pdf_bytes, dpi=self.dpi, first_page=1, last_page=1)
        except (PDFPageCountError, PDFSyntaxError) as exc:
            raise UnsupportedImageError(f"Unreadable PDF: {exc}") from exc

        if not pages:
            raise UnsupportedImageError("PDF has no pages")

        page = pages[0]
        buf = io.BytesIO()
        page.save(buf, format="PNG")
        logger.info("Rendered PDF first page at %d DPI (%dx%d)", self.dpi, page.width, page.height)
        for p in pages:
            p.close()
        return buf.getvalue()
