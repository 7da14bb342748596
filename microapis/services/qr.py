"""QR code rendering."""

import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from microapis.exceptions import InvalidInputError
from microapis.utils.config import QRConfig
from microapis.utils.logger import get_logger

logger = get_logger(__name__)


class QRCodeGenerator:
    """Renders text payloads as PNG QR codes.

    Args:
        config: Module size, quiet-zone border, and payload limit.
    """

    def __init__(self, config: QRConfig) -> None:
        self.config = config

    def png(self, data: str) -> bytes:
        """Encode ``data`` as a QR code PNG.

        Raises:
            InvalidInputError: If ``data`` is empty or too long to encode.
        """
        if not data:
            raise InvalidInputError('Missing "data" query parameter')
        if len(data) > self.config.max_data_length:
            raise InvalidInputError(
                f"Data exceeds {self.config.max_data_length} characters"
            )

        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECT_M,
            box_size=self.config.box_size,
            border=self.config.border,
        )
        qr.add_data(data)
        try:
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as exc:
            raise InvalidInputError(f"Data too long for a QR code: {exc}") from exc

        image = qr.make_image(fill_color="black", back_color="white")
        buf = io.BytesIO()
        image.save(buf)
        logger.debug("Rendered QR code version %d for %d chars", qr.version, len(data))
        return buf.getvalue()

    def data_url(self, data: str) -> str:
        """Encode ``data`` as a base64 PNG data URL."""
        encoded = base64.b64encode(self.png(data)).decode("ascii")
        return f"data:image/png;base64,{encoded}"
