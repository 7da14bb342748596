"""Configuration management for the micro APIs service.

Loads and validates YAML configuration with sensible defaults for OCR,
preprocessing, uploads, caching, and remote API settings. Environment
variables prefixed with ``MICROAPI_`` override file values, using ``__``
to reach nested sections (``MICROAPI_REMOTE__API_URL``).
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    default_languages: str = "eng+tam+hin"
    tessdata_dir: str = "/tmp/tessdata"
    download_trained_data: bool = True
    tessdata_fast_url: str = "https://github.com/tesseract-ocr/tessdata_fast/raw/main"
    tessdata_best_url: str = "https://github.com/tesseract-ocr/tessdata/raw/main"
    timeout_seconds: float = 60.0
    pdf_dpi: int = 300
    max_buffer_mb: int = 50


class PreprocessingConfig(BaseModel):
    """Configuration for the image preprocessing stage."""

    max_dimension: int = 1200
    contrast_gain: float = 1.2
    fallback_contrast_gain: float = 1.5
    sharpen_sigma: float = 1.0
    median_kernel: int = 3
    min_output_bytes: int = 1000


class UploadConfig(BaseModel):
    """Configuration for staged uploads and payload ceilings."""

    upload_dir: str = "/tmp/uploads"
    basic_max_mb: int = 5
    extended_max_mb: int = 20
    converter_max_mb: int = 10


class CacheConfig(BaseModel):
    """Configuration for in-memory result caches."""

    ocr_ttl_seconds: float = 3600.0
    pincode_ttl_seconds: float = 86400.0
    max_entries: int = 1000


class RemoteConfig(BaseModel):
    """Configuration for the remote text-completion API."""

    api_url: str = "https://text.pollinations.ai/"
    model: str = "openai-fast"
    timeout_seconds: float = 8.0


class PincodeConfig(BaseModel):
    """Configuration for pincode lookup retries."""

    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_max_seconds: float = 4.0


class QRConfig(BaseModel):
    """Configuration for QR code rendering."""

    box_size: int = 10
    border: int = 4
    max_data_length: int = 2048


class ScraperConfig(BaseModel):
    """Configuration for the web scraper."""

    timeout_seconds: float = 10.0
    user_agent: str = "microapis-scraper/1.0"


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MICROAPI_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    uploads: UploadConfig = Field(default_factory=UploadConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    pincode: PincodeConfig = Field(default_factory=PincodeConfig)
    qr: QRConfig = Field(default_factory=QRConfig)
    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over values read from the YAML file.
        return env_settings, init_settings, file_secret_settings


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
