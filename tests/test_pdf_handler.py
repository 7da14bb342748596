"""Tests for PDF rasterisation and trained-data downloads."""

import io
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from pdf2image.exceptions import PDFPageCountError
from PIL import Image

from microapis.exceptions import (
    InvalidInputError,
    TrainedDataError,
    UnsupportedImageError,
)
from microapis.ocr.pdf_handler import PDFHandler, is_pdf
from microapis.ocr.tessdata import TrainedDataStore, check_languages

CONVERT = "microapis.ocr.pdf_handler.convert_from_bytes"


class TestPDFHandler:
    """Tests for first-page rendering."""

    def test_is_pdf(self) -> None:
        assert is_pdf(b"%PDF-1.7\n...") is True
        assert is_pdf(b"\x89PNG\r\n") is False
        assert is_pdf(b"") is False

    def test_first_page_png(self) -> None:
        page = Image.new("RGB", (120, 80), "white")
        with patch(CONVERT, return_value=[page]) as mock_convert:
            png = PDFHandler(dpi=150).first_page_png(b"%PDF-1.4")

        mock_convert.assert_called_once_with(b"%PDF-1.4", dpi=150, first_page=1, last_page=1)
        with Image.open(io.BytesIO(png)) as img:
            assert img.format == "PNG"
            assert img.size == (120, 80)

    def test_unreadable_pdf(self) -> None:
        with patch(CONVERT, side_effect=PDFPageCountError("no pages")):
            with pytest.raises(UnsupportedImageError, match="Unreadable PDF"):
                PDFHandler().first_page_png(b"%PDF-broken")

    def test_empty_pdf(self) -> None:
        with patch(CONVERT, return_value=[]):
            with pytest.raises(UnsupportedImageError, match="no pages"):
                PDFHandler().first_page_png(b"%PDF-1.4")


class TestTrainedDataStore:
    """Tests for on-demand language file downloads."""

    @staticmethod
    def _store(directory: Path, handler) -> TrainedDataStore:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return TrainedDataStore(
            directory,
            fast_url="https://fast.test/tessdata/",
            best_url="https://best.test/tessdata",
            client=client,
        )

    def test_url_for(self, tmp_path: Path) -> None:
        store = self._store(tmp_path, lambda request: httpx.Response(200))
        assert store.url_for("eng") == "https://fast.test/tessdata/eng.traineddata"
        assert store.url_for("osd") == "https://best.test/tessdata/osd.traineddata"

    def test_downloads_missing_files_once(self, tmp_path: Path) -> None:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, content=b"x" * 2048)

        store = self._store(tmp_path / "tessdata", handler)
        directory = store.ensure("eng+hin")
        store.ensure("eng+hin")

        assert directory == tmp_path / "tessdata"
        assert sorted(requested) == [
            "/tessdata/eng.traineddata",
            "/tessdata/hin.traineddata",
            "/tessdata/osd.traineddata",
        ]
        assert (directory / "hin.traineddata").stat().st_size == 2048
        assert not list(directory.glob("*.part"))

    def test_existing_files_not_downloaded(self, tmp_path: Path) -> None:
        for lang in ("osd", "eng"):
            (tmp_path / f"{lang}.traineddata").write_bytes(b"x" * 2048)

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError(f"unexpected download of {request.url}")

        self._store(tmp_path, handler).ensure("eng")

    def test_download_failure(self, tmp_path: Path) -> None:
        store = self._store(tmp_path, lambda request: httpx.Response(404))
        with pytest.raises(TrainedDataError, match="Missing language file"):
            store.ensure("tam")
        assert not (tmp_path / "tam.traineddata").exists()

    def test_rejects_names_outside_directory(self, tmp_path: Path) -> None:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, content=b"x" * 2048)

        store = self._store(tmp_path / "tessdata", handler)
        with pytest.raises(TrainedDataError, match="Invalid language code"):
            store.ensure("eng+../escaped")

        assert not (tmp_path / "escaped.traineddata").exists()
        assert not any(path.endswith("escaped.traineddata") for path in requested)


class TestCheckLanguages:
    """Tests for language code validation."""

    @pytest.mark.parametrize("languages", ["eng", "eng+hin", "chi_sim+eng+tam"])
    def test_accepts_codes(self, languages: str) -> None:
        assert check_languages(languages) == languages

    @pytest.mark.parametrize(
        "languages",
        [
            "",
            "eng+",
            "+eng",
            "eng++hin",
            "eng+../escaped",
            "not-a-language",
            "ENG",
            "eng\n",
        ],
    )
    def test_rejects_malformed(self, languages: str) -> None:
        with pytest.raises(InvalidInputError, match="Invalid languages"):
            check_languages(languages)
