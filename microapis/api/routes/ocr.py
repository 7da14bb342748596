"""Text extraction endpoints.

``/v1`` runs a single recognition pass; ``/v2`` runs the full pipeline with
preprocessing, the recognition sweep, refinement, and classification.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool

from microapis.api.dependencies import Services, get_services
from microapis.api.schemas import (
    Base64OcrRequest,
    BasicOcrResponse,
    ErrorResponse,
    OcrResponse,
)
from microapis.api.uploads import (
    check_basic_upload,
    check_extended_upload,
    check_size,
    fingerprint,
    megabytes,
    staged_upload,
)
from microapis.exceptions import ExtractionFailedError, InvalidInputError, MicroApiError
from microapis.imaging.codec import decode_base64, is_image_base64, is_image_data_url
from microapis.ocr.document_processor import OcrResult
from microapis.ocr.tessdata import check_languages
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["ocr"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)

ServicesDep = Annotated[Services, Depends(get_services)]


async def _run(func: Callable[..., Any], *args: Any, failure: str) -> Any:
    """Run blocking OCR work off the event loop, mapping unexpected errors."""
    try:
        return await run_in_threadpool(func, *args)
    except MicroApiError:
        raise
    except Exception as exc:
        logger.error("%s: %s", failure, exc)
        raise ExtractionFailedError(f"{failure}. Reason: {exc}") from exc


@router.post("/v1/extract-base64", response_model=BasicOcrResponse)
async def extract_base64_v1(
    services: ServicesDep,
    payload: Base64OcrRequest | None = None,
) -> BasicOcrResponse:
    """Extract text from a base64 PNG/JPEG in a single pass."""
    value = payload.base64 if payload else None
    if not value:
        raise InvalidInputError('Missing "base64" in request body')
    if not is_image_base64(value):
        raise InvalidInputError("Invalid base64 image format. Must be PNG or JPEG.")

    buffer = check_size(decode_base64(value), services.config.uploads.basic_max_mb)
    key = fingerprint("text", "eng", buffer)
    cached = services.ocr_cache.get(key)
    if cached is not None:
        return BasicOcrResponse(text=cached)

    text = await _run(
        services.processor.extract_basic,
        buffer,
        failure="Failed to extract text from base64 image",
    )
    services.ocr_cache.set(key, text)
    return BasicOcrResponse(text=text)


@router.post("/v1/extract-image", response_model=BasicOcrResponse)
async def extract_image_v1(
    services: ServicesDep,
    image: Annotated[UploadFile | None, File()] = None,
) -> BasicOcrResponse:
    """Extract text from an uploaded PNG/JPEG in a single pass."""
    upload = check_basic_upload(image)
    uploads = services.config.uploads

    async with staged_upload(
        upload, Path(uploads.upload_dir), megabytes(uploads.basic_max_mb)
    ) as path:
        buffer = await run_in_threadpool(path.read_bytes)
        key = fingerprint("text", "eng", buffer)
        cached = services.ocr_cache.get(key)
        if cached is not None:
            return BasicOcrResponse(text=cached)

        text = await _run(
            services.processor.extract_basic,
            buffer,
            failure="Failed to extract text from image",
        )

    services.ocr_cache.set(key, text)
    return BasicOcrResponse(text=text)


@router.post("/v2/extract-base64", response_model=OcrResponse)
async def extract_base64_v2(
    services: ServicesDep,
    payload: Base64OcrRequest | None = None,
) -> OcrResponse:
    """Run the full OCR pipeline on a base64 data URL."""
    value = payload.base64 if payload else None
    if not value:
        raise InvalidInputError('Missing "base64" in request body.')
    if not is_image_data_url(value):
        raise InvalidInputError(
            'Invalid base64 image format. Must start with "data:image/..."'
        )
    languages = check_languages(
        (payload.languages if payload else None)
        or services.config.ocr.default_languages
    )

    buffer = decode_base64(value)
    key = fingerprint("ocr_base64", languages, buffer)
    cached = services.ocr_cache.get(key)
    if cached is not None:
        return OcrResponse(**cached.to_dict())

    result: OcrResult = await _run(
        services.processor.process,
        buffer,
        languages,
        failure="Failed to extract text",
    )
    services.ocr_cache.set(key, result)
    return OcrResponse(**result.to_dict())


@router.post("/v2/extract-image", response_model=OcrResponse)
async def extract_image_v2(
    services: ServicesDep,
    image: Annotated[UploadFile | None, File()] = None,
    languages: Annotated[str | None, Form()] = None,
) -> OcrResponse:
    """Run the full OCR pipeline on an uploaded JPEG, PNG, or PDF."""
    upload = check_extended_upload(image)
    uploads = services.config.uploads
    languages = check_languages(languages or services.config.ocr.default_languages)

    async with staged_upload(
        upload, Path(uploads.upload_dir), megabytes(uploads.extended_max_mb)
    ) as path:
        buffer = await run_in_threadpool(path.read_bytes)
        key = fingerprint("ocr_file", languages, buffer)
        cached = services.ocr_cache.get(key)
        if cached is not None:
            return OcrResponse(**cached.to_dict())

        result: OcrResult = await _run(
            services.processor.process,
            buffer,
            languages,
            failure="Failed to extract text from image",
        )

    services.ocr_cache.set(key, result)
    return OcrResponse(**result.to_dict())
