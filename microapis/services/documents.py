"""Document to PDF conversion for DOCX, XLSX, HTML, and plain text files.

Each loader reduces its input to a flat list of headings, paragraphs, and
tables, which :func:`render_pdf` lays out on A4 pages with ReportLab.
"""

import html
import io
import zipfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import openpyxl
from bs4 import BeautifulSoup
from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from openpyxl.utils.exceptions import InvalidFileException
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.platypus.doctemplate import LayoutError

from microapis.exceptions import ConversionFailedError, InvalidInputError
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

UNSUPPORTED_DOCUMENT = "Only .html, .txt, .docx, and .xlsx are supported"

_HTML_BLOCKS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "li", "pre", "table"]


@dataclass
class Block:
    """One unit of document content: a heading, a paragraph, or a table."""

    kind: str
    text: str = ""
    rows: list[list[str]] = field(default_factory=list)


def load_text(text: str) -> list[Block]:
    return [Block("paragraph", line.strip()) for line in text.splitlines() if line.strip()]


def load_html(text: str) -> list[Block]:
    """Collect headings, paragraphs, list items, and tables from HTML.

    Markup without any of those elements falls back to its visible text,
    one paragraph per line.
    """
    soup = BeautifulSoup(text, "html.parser")
    for tag in soup(["script", "style", "title"]):
        tag.decompose()

    blocks = []
    for element in soup.find_all(_HTML_BLOCKS):
        if element.find_parent(["table", "li"]) is not None:
            continue
        if element.name == "table":
            rows = [
                [cell.get_text(" ", strip=True) for cell in tr.find_all(["td", "th"])]
                for tr in element.find_all("tr")
            ]
            rows = [row for row in rows if row]
            if rows:
                blocks.append(Block("table", rows=rows))
            continue
        content = element.get_text(" ", strip=True)
        if content:
            kind = "heading" if element.name.startswith("h") else "paragraph"
            blocks.append(Block(kind, content))

    if not blocks:
        return load_text(soup.get_text("\n"))
    return blocks


def load_docx(path: Path) -> list[Block]:
    """Paragraphs in order, headings kept apart, then every table."""
    document = DocxDocument(str(path))
    blocks = []
    for para in document.paragraphs:
        text = para.text.strip()
        if not text:
            continue
        style = para.style.name if para.style is not None else ""
        kind = "heading" if style.startswith(("Heading", "Title")) else "paragraph"
        blocks.append(Block(kind, text))

    for table in document.tables:
        rows = [[cell.text.strip() for cell in row.cells] for row in table.rows]
        if rows:
            blocks.append(Block("table", rows=rows))
    return blocks


def load_xlsx(path: Path) -> list[Block]:
    """The first worksheet as a titled table."""
    workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        title = sheet.title
        rows = [
            ["" if value is None else str(value) for value in row]
            for row in sheet.iter_rows(values_only=True)
        ]
    finally:
        workbook.close()

    rows = [row for row in rows if any(row)]
    blocks = [Block("heading", title)]
    if rows:
        blocks.append(Block("table", rows=rows))
    return blocks


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


_LOADERS: dict[str, Callable[[Path], list[Block]]] = {
    ".docx": load_docx,
    ".xlsx": load_xlsx,
    ".html": lambda path: load_html(_read_text(path)),
    ".txt": lambda path: load_text(_read_text(path)),
}


def check_document_name(filename: str | None) -> str:
    """Return the lower-cased extension of a convertible document.

    Raises:
        InvalidInputError: If the extension has no loader.
    """
    suffix = Path(filename or "").suffix.lower()
    if suffix not in _LOADERS:
        raise InvalidInputError(UNSUPPORTED_DOCUMENT)
    return suffix


def _escape(text: str) -> str:
    return html.escape(text, quote=False)


def _table(rows: list[list[str]], width: float, style) -> Table:
    columns = max(len(row) for row in rows)
    cells = [
        [Paragraph(_escape(cell), style) for cell in row] + [""] * (columns - len(row))
        for row in rows
    ]
    table = Table(cells, colWidths=[width / columns] * columns)
    table.setStyle(
        TableStyle(
            [
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    return table


def render_pdf(blocks: list[Block]) -> bytes:
    """Lay out blocks on A4 pages and return the PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4)
    styles = getSampleStyleSheet()

    story = []
    for block in blocks:
        if block.kind == "table":
            story.append(_table(block.rows, doc.width, styles["BodyText"]))
        elif block.kind == "heading":
            story.append(Paragraph(_escape(block.text), styles["Heading2"]))
        else:
            story.append(Paragraph(_escape(block.text), styles["BodyText"]))
    if not story:
        story.append(Spacer(1, 1))

    doc.build(story)
    return buffer.getvalue()


def convert_to_pdf(path: Path) -> bytes:
    """Convert a staged document to PDF.

    Args:
        path: Document on disk; its extension selects the loader.

    Returns:
        PDF bytes.

    Raises:
        InvalidInputError: If the extension is not supported.
        ConversionFailedError: If the document cannot be read or laid out.
    """
    suffix = check_document_name(path.name)
    try:
        pdf = render_pdf(_LOADERS[suffix](path))
    except (
        zipfile.BadZipFile,
        PackageNotFoundError,
        InvalidFileException,
        LayoutError,
        KeyError,
        ValueError,
    ) as exc:
        logger.error("Document conversion failed for %s: %s", path.name, exc)
        raise ConversionFailedError("Conversion failed") from exc

    logger.info("Converted %s to PDF (%.2fKB)", path.name, len(pdf) / 1024)
    return pdf
