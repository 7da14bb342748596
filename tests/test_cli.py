"""Tests for the command-line interface."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeTextApi
from microapis.api.dependencies import Services
from microapis.cli import lookup_pincode, main, ocr_files
from microapis.exceptions import InvalidInputError, NoTextDetectedError
from microapis.main import main as server_main
from microapis.ocr.document_processor import OcrResult


def _mock_services() -> MagicMock:
    services = MagicMock()
    services.processor.process.return_value = OcrResult(
        text="Invoice total 500", refined_text="Invoice total 500", document_type="Invoice"
    )
    services.processor.extract_basic.return_value = "Invoice total 500"
    return services


class TestOcrFiles:
    """Tests for local file extraction."""

    def test_full_pipeline(self, tmp_path: Path, sample_png: bytes) -> None:
        image = tmp_path / "scan.png"
        image.write_bytes(sample_png)
        services = _mock_services()

        results = ocr_files(services, [image], languages="eng+hin")

        assert results == [
            {
                "filename": "scan.png",
                "text": "Invoice total 500",
                "refined_text": "Invoice total 500",
                "document_type": "Invoice",
            }
        ]
        services.processor.process.assert_called_once_with(sample_png, "eng+hin")

    def test_basic_mode(self, tmp_path: Path, sample_png: bytes) -> None:
        image = tmp_path / "scan.png"
        image.write_bytes(sample_png)
        services = _mock_services()

        results = ocr_files(services, [image], basic=True)

        assert results == [{"filename": "scan.png", "text": "Invoice total 500"}]
        services.processor.process.assert_not_called()

    def test_failure_recorded_per_file(self, tmp_path: Path, sample_png: bytes) -> None:
        good = tmp_path / "good.png"
        good.write_bytes(sample_png)
        services = _mock_services()
        services.processor.process.side_effect = [
            NoTextDetectedError("No text detected in the image"),
            OcrResult("text", "text", "Unknown Document"),
        ]

        results = ocr_files(services, [tmp_path / "missing.png", good, good])

        assert results[0]["filename"] == "missing.png"
        assert "error" in results[0]
        assert results[1] == {"filename": "good.png", "error": "No text detected in the image"}
        assert results[2]["document_type"] == "Unknown Document"


class TestLookupPincode:
    """Tests for the pincode subcommand helper."""

    def test_success(self, services: Services, text_api: FakeTextApi) -> None:
        text_api.replies["641001"] = {"city": "Coimbatore", "state": "Tamil Nadu"}
        assert lookup_pincode(services, "641001") == {
            "pincode": "641001",
            "city": "Coimbatore",
            "state": "Tamil Nadu",
        }

    def test_invalid(self, services: Services) -> None:
        result = lookup_pincode(services, "64100")
        assert result == {
            "pincode": "64100",
            "error": "Invalid pincode. Must be a 6-digit number.",
        }


class TestMain:
    """Tests for argument parsing and dispatch."""

    def test_no_command_shows_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "serve" in capsys.readouterr().out

    def test_ocr_missing_file(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["ocr", "/nonexistent/scan.png"])
        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err

    @patch("microapis.cli.build_services")
    def test_ocr_writes_output(
        self, mock_build: MagicMock, tmp_path: Path, sample_png: bytes
    ) -> None:
        image = tmp_path / "scan.png"
        image.write_bytes(sample_png)
        output = tmp_path / "out" / "results.json"
        services = _mock_services()
        mock_build.return_value = services

        main(["ocr", str(image), "-l", "eng", "-o", str(output)])

        data = json.loads(output.read_text())
        assert data[0]["document_type"] == "Invoice"
        services.close.assert_called_once()

    @patch("microapis.cli.build_services")
    def test_pincode_error_exit_code(
        self, mock_build: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        services = _mock_services()
        services.pincode.lookup.side_effect = InvalidInputError(
            "Invalid pincode. Must be a 6-digit number."
        )
        mock_build.return_value = services

        with pytest.raises(SystemExit) as exc_info:
            main(["pincode", "12"])

        assert exc_info.value.code == 1
        services.close.assert_called_once()
        assert "error" in json.loads(capsys.readouterr().out)

    @patch("microapis.cli.uvicorn")
    @patch("microapis.cli.create_app")
    def test_serve(self, mock_create: MagicMock, mock_uvicorn: MagicMock) -> None:
        main(["serve", "--port", "8080"])
        mock_uvicorn.run.assert_called_once_with(
            mock_create.return_value, host="0.0.0.0", port=8080
        )


class TestServerEntryPoint:
    """Tests for the uvicorn entry point."""

    @patch("microapis.main.uvicorn")
    @patch("microapis.main.create_app")
    def test_port_from_environment(
        self,
        mock_create: MagicMock,
        mock_uvicorn: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("PORT", "9000")
        server_main()
        mock_uvicorn.run.assert_called_once_with(
            mock_create.return_value, host="0.0.0.0", port=9000
        )
