"""Utility endpoints: QR codes, base64 conversion, format conversion,
document to PDF conversion, pincode lookup, scraping, and colour palettes."""

from dataclasses import asdict
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from microapis.api.dependencies import Services, get_services
from microapis.api.schemas import (
    Base64ImageRequest,
    Base64Response,
    ErrorResponse,
    LocationResponse,
    PaletteResponse,
    PalettesResponse,
    QRFormat,
    ScrapeResponse,
)
from microapis.api.uploads import attachment_filename, megabytes, staged_upload
from microapis.exceptions import InvalidInputError
from microapis.imaging.codec import convert_format, parse_data_url, to_data_url
from microapis.services.documents import check_document_name, convert_to_pdf
from microapis.services.palette import generate_palettes

router = APIRouter(
    prefix="/api",
    tags=["tools"],
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)

ServicesDep = Annotated[Services, Depends(get_services)]


@router.get(
    "/qr",
    responses={200: {"content": {"image/png": {}}}},
    response_model=None,
)
async def generate_qr_code(
    services: ServicesDep,
    data: Annotated[str | None, Query()] = None,
    format: Annotated[QRFormat, Query()] = QRFormat.PNG,
) -> Response | Base64Response:
    """Render ``data`` as a QR code PNG, or as a base64 data URL."""
    if format == QRFormat.BASE64:
        return Base64Response(base64=services.qr.data_url(data or ""))
    return Response(content=services.qr.png(data or ""), media_type="image/png")


@router.post("/to-base64", response_model=Base64Response)
async def image_to_base64(
    services: ServicesDep,
    image: Annotated[UploadFile | None, File()] = None,
) -> Base64Response:
    """Encode an uploaded file as a data URL."""
    if image is None:
        raise InvalidInputError("No file uploaded")
    uploads = services.config.uploads
    mime_type = image.content_type or "application/octet-stream"
    async with staged_upload(
        image, Path(uploads.upload_dir), megabytes(uploads.converter_max_mb)
    ) as path:
        data = await run_in_threadpool(path.read_bytes)
    return Base64Response(base64=to_data_url(data, mime_type))


@router.post(
    "/from-base64",
    responses={200: {"content": {"image/*": {}}}},
    response_class=Response,
)
async def base64_to_image(payload: Base64ImageRequest | None = None) -> Response:
    """Decode a data URL and return the raw file."""
    if payload is None or not payload.base64:
        raise InvalidInputError("Base64 string is required")
    mime_type, data = parse_data_url(payload.base64)
    filename = attachment_filename(payload.filename, "output.png")
    return Response(
        content=data,
        media_type=mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/convert-format",
    responses={200: {"content": {"image/*": {}}}},
    response_class=Response,
)
async def convert_image_format(
    services: ServicesDep,
    image: Annotated[UploadFile | None, File()] = None,
    target_format: Annotated[str | None, Form()] = None,
) -> Response:
    """Re-encode an uploaded image in ``target_format``."""
    if image is None:
        raise InvalidInputError("No image file uploaded")
    uploads = services.config.uploads
    async with staged_upload(
        image, Path(uploads.upload_dir), megabytes(uploads.converter_max_mb)
    ) as path:
        data = await run_in_threadpool(path.read_bytes)
        content, mime_type = await run_in_threadpool(
            convert_format, data, target_format or ""
        )
    return Response(content=content, media_type=mime_type)


@router.post(
    "/convert-doc",
    responses={
        200: {"content": {"application/pdf": {}}},
        500: {"model": ErrorResponse},
    },
    response_class=Response,
)
async def convert_document(
    services: ServicesDep,
    document: Annotated[UploadFile | None, File()] = None,
) -> Response:
    """Convert an uploaded DOCX, XLSX, HTML, or text file to PDF."""
    if document is None:
        raise InvalidInputError("No file uploaded")
    check_document_name(document.filename)
    uploads = services.config.uploads
    async with staged_upload(
        document, Path(uploads.upload_dir), megabytes(uploads.converter_max_mb)
    ) as path:
        pdf = await run_in_threadpool(convert_to_pdf, path)

    stem = Path(attachment_filename(document.filename, "document")).stem
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{stem}.pdf"'},
    )


@router.get("/pincode/{pincode}", response_model=LocationResponse)
async def get_pincode_details(pincode: str, services: ServicesDep) -> LocationResponse:
    """Resolve an Indian pincode to its city and state."""
    location = await run_in_threadpool(services.pincode.lookup, pincode)
    return LocationResponse(**asdict(location))


@router.get("/scrape", response_model=ScrapeResponse)
async def scrape_site(
    services: ServicesDep,
    url: Annotated[str | None, Query()] = None,
) -> ScrapeResponse:
    """Summarise the page at ``url``."""
    result = await run_in_threadpool(services.scraper.scrape, url or "")
    return ScrapeResponse(**asdict(result))


@router.get("/colors/palette", response_model=PalettesResponse)
async def color_palette(
    type: Annotated[str, Query()] = "analogous",
    seeds: Annotated[str, Query()] = "#3498db",
) -> PalettesResponse:
    """Generate a palette for each comma-separated seed colour."""
    palettes = generate_palettes(type, [s.strip() for s in seeds.split(",")])
    return PalettesResponse(
        type=type,
        palettes=[PaletteResponse(seed=p.seed, palette=p.palette) for p in palettes],
    )
