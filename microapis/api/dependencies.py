"""Process-wide service container and its FastAPI dependency.

All shared state (HTTP clients, result caches, the OCR engine) is built
once by :func:`build_services` when the app is created and handed to
request handlers through :func:`get_services`.
"""

from dataclasses import dataclass
from pathlib import Path

import httpx
from fastapi import Request

from microapis.ocr.document_processor import DocumentProcessor
from microapis.ocr.pdf_handler import PDFHandler
from microapis.ocr.tessdata import TrainedDataStore
from microapis.ocr.tesseract_engine import TesseractEngine
from microapis.preprocessing.pipeline import PreprocessingPipeline
from microapis.remote.classifier import DocumentClassifier
from microapis.remote.client import RemoteTextClient
from microapis.remote.refiner import TextRefiner
from microapis.services.pincode import PincodeService
from microapis.services.qr import QRCodeGenerator
from microapis.services.scraper import WebScraper
from microapis.utils.cache import ResultCache
from microapis.utils.config import AppConfig


@dataclass
class Services:
    """Long-lived collaborators shared by all requests."""

    config: AppConfig
    processor: DocumentProcessor
    ocr_cache: ResultCache
    pincode_cache: ResultCache
    pincode: PincodeService
    qr: QRCodeGenerator
    scraper: WebScraper
    remote_client: RemoteTextClient
    download_client: httpx.Client

    def close(self) -> None:
        self.remote_client.close()
        self.scraper.close()
        self.download_client.close()


def build_services(
    config: AppConfig,
    engine: TesseractEngine | None = None,
    remote_transport: httpx.BaseTransport | None = None,
    web_transport: httpx.BaseTransport | None = None,
) -> Services:
    """Wire up every service from configuration.

    Args:
        config: Application configuration.
        engine: OCR engine; a real Tesseract engine when ``None``.
        remote_transport: httpx transport for the remote text API.
        web_transport: httpx transport for scraping and model downloads.

    Returns:
        The populated service container.
    """
    remote_client = RemoteTextClient(
        config.remote.api_url,
        model=config.remote.model,
        timeout=config.remote.timeout_seconds,
        transport=remote_transport,
    )
    download_client = httpx.Client(timeout=60.0, transport=web_transport)

    tessdata = None
    if config.ocr.download_trained_data:
        tessdata = TrainedDataStore(
            Path(config.ocr.tessdata_dir),
            fast_url=config.ocr.tessdata_fast_url,
            best_url=config.ocr.tessdata_best_url,
            client=download_client,
        )

    engine = engine or TesseractEngine(
        tesseract_cmd=config.ocr.tesseract_cmd,
        timeout=config.ocr.timeout_seconds,
    )
    processor = DocumentProcessor(
        config.ocr,
        engine=engine,
        preprocessing=PreprocessingPipeline(config.preprocessing),
        refiner=TextRefiner(remote_client),
        classifier=DocumentClassifier(remote_client),
        tessdata=tessdata,
        pdf_handler=PDFHandler(dpi=config.ocr.pdf_dpi),
    )

    ocr_cache = ResultCache(
        config.cache.ocr_ttl_seconds, config.cache.max_entries, name="ocr"
    )
    pincode_cache = ResultCache(
        config.cache.pincode_ttl_seconds, config.cache.max_entries, name="pincode"
    )

    return Services(
        config=config,
        processor=processor,
        ocr_cache=ocr_cache,
        pincode_cache=pincode_cache,
        pincode=PincodeService(remote_client, pincode_cache, config.pincode),
        qr=QRCodeGenerator(config.qr),
        scraper=WebScraper(config.scraper, transport=web_transport),
        remote_client=remote_client,
        download_client=download_client,
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the app's service container."""
    return request.app.state.services
