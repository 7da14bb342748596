"""Tests for document to PDF conversion."""

from pathlib import Path

import openpyxl
import pytest
from docx import Document

from microapis.exceptions import ConversionFailedError, InvalidInputError
from microapis.services.documents import (
    UNSUPPORTED_DOCUMENT,
    Block,
    check_document_name,
    convert_to_pdf,
    load_docx,
    load_html,
    load_text,
    load_xlsx,
    render_pdf,
)


@pytest.fixture
def docx_file(tmp_path: Path) -> Path:
    document = Document()
    document.add_heading("Quarterly Report", level=1)
    document.add_paragraph("Revenue grew & costs fell <slightly>.")
    document.add_paragraph("")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Region"
    table.cell(0, 1).text = "Sales"
    table.cell(1, 0).text = "North"
    table.cell(1, 1).text = "1250"
    path = tmp_path / "report.docx"
    document.save(str(path))
    return path


@pytest.fixture
def xlsx_file(tmp_path: Path) -> Path:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Sales"
    sheet.append(["Region", "Units"])
    sheet.append(["North", 1250])
    sheet.append([None, None])
    sheet.append(["South", 7])
    other = workbook.create_sheet("Ignored")
    other.append(["not", "converted"])
    path = tmp_path / "sales.xlsx"
    workbook.save(path)
    return path


class TestLoaders:
    """Tests for reducing documents to blocks."""

    def test_text(self) -> None:
        assert load_text("first\n\n  second  \n") == [
            Block("paragraph", "first"),
            Block("paragraph", "second"),
        ]

    def test_html_blocks(self) -> None:
        page = """
        <html><head><title>Skipped</title><style>p { color: red; }</style></head>
        <body>
          <h2>Summary</h2>
          <p>Opening paragraph</p>
          <ul><li>Item <p>nested</p></li></ul>
          <table><tr><th>Name</th><th>Qty</th></tr><tr><td>Bolt</td><td>4</td></tr></table>
          <script>ignored()</script>
        </body></html>
        """
        assert load_html(page) == [
            Block("heading", "Summary"),
            Block("paragraph", "Opening paragraph"),
            Block("paragraph", "Item nested"),
            Block("table", rows=[["Name", "Qty"], ["Bolt", "4"]]),
        ]

    def test_html_without_blocks_falls_back_to_text(self) -> None:
        assert load_html("<div>one</div><div>two</div>") == [
            Block("paragraph", "one"),
            Block("paragraph", "two"),
        ]

    def test_docx(self, docx_file: Path) -> None:
        assert load_docx(docx_file) == [
            Block("heading", "Quarterly Report"),
            Block("paragraph", "Revenue grew & costs fell <slightly>."),
            Block("table", rows=[["Region", "Sales"], ["North", "1250"]]),
        ]

    def test_xlsx_first_sheet_only(self, xlsx_file: Path) -> None:
        assert load_xlsx(xlsx_file) == [
            Block("heading", "Sales"),
            Block("table", rows=[["Region", "Units"], ["North", "1250"], ["South", "7"]]),
        ]


class TestConversion:
    """Tests for PDF rendering and error mapping."""

    def test_render_pdf(self) -> None:
        pdf = render_pdf(
            [
                Block("heading", "Title & <Co>"),
                Block("paragraph", "Body"),
                Block("table", rows=[["a", "b"], ["c"]]),
            ]
        )
        assert pdf.startswith(b"%PDF")

    def test_render_empty_document(self) -> None:
        assert render_pdf([]).startswith(b"%PDF")

    @pytest.mark.parametrize("fixture_name", ["docx_file", "xlsx_file"])
    def test_convert_office_files(
        self, fixture_name: str, request: pytest.FixtureRequest
    ) -> None:
        path = request.getfixturevalue(fixture_name)
        assert convert_to_pdf(path).startswith(b"%PDF")

    def test_convert_html(self, tmp_path: Path) -> None:
        path = tmp_path / "page.HTML"
        path.write_text("<h1>Hi</h1><p>there</p>", encoding="utf-8")
        assert convert_to_pdf(path).startswith(b"%PDF")

    @pytest.mark.parametrize("name", ["broken.docx", "broken.xlsx"])
    def test_corrupt_files(self, tmp_path: Path, name: str) -> None:
        path = tmp_path / name
        path.write_bytes(b"not a zip archive")
        with pytest.raises(ConversionFailedError, match="Conversion failed"):
            convert_to_pdf(path)

    @pytest.mark.parametrize("name", ["slides.pptx", "legacy.xls", "noext", None])
    def test_unsupported_names(self, name: str | None) -> None:
        with pytest.raises(InvalidInputError) as excinfo:
            check_document_name(name)
        assert excinfo.value.message == UNSUPPORTED_DOCUMENT

    def test_supported_names(self) -> None:
        assert check_document_name("Report.DOCX") == ".docx"
        assert check_document_name("notes.txt") == ".txt"
