"""Pydantic request/response schemas for the FastAPI endpoints."""

from enum import StrEnum

from pydantic import BaseModel, Field


class QRFormat(StrEnum):
    """Output encodings for generated QR codes."""

    PNG = "png"
    BASE64 = "base64"


class Base64OcrRequest(BaseModel):
    """Request body for base64 text extraction."""

    base64: str | None = None
    languages: str | None = None


class Base64ImageRequest(BaseModel):
    """Request body for decoding a base64 data URL to an image."""

    base64: str | None = None
    filename: str = "output.png"


class BasicOcrResponse(BaseModel):
    """Response schema for single-pass text extraction."""

    text: str


class OcrResponse(BaseModel):
    """Response schema for the extended OCR pipeline."""

    text: str
    refined_text: str
    document_type: str


class Base64Response(BaseModel):
    """A base64 data URL."""

    base64: str


class LocationResponse(BaseModel):
    """Response schema for pincode lookups."""

    pincode: str
    city: str
    state: str
    cached: bool


class LinkResponse(BaseModel):
    text: str
    href: str


class ScrapeResponse(BaseModel):
    """Response schema for a scraped page."""

    url: str
    title: str
    meta_description: str
    h1_tags: list[str]
    links: list[LinkResponse]


class PaletteResponse(BaseModel):
    seed: str
    palette: list[str]


class PalettesResponse(BaseModel):
    """Response schema for palette generation."""

    type: str
    palettes: list[PaletteResponse]


class ErrorResponse(BaseModel):
    """Body returned with every 4xx/5xx response."""

    error: str


class ServiceInfo(BaseModel):
    """Response schema for the root endpoint."""

    message: str
    version: str
    endpoints: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    ocr_cache_entries: int
    pincode_cache_entries: int
