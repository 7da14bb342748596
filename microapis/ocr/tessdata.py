"""On-demand download of Tesseract language files.

Serverless deployments start without ``*.traineddata`` files, so the store
fetches each missing language from the public tessdata repositories on first
use and keeps it on local disk for later requests.
"""

import re
import threading
from pathlib import Path

import httpx

from microapis.exceptions import InvalidInputError, TrainedDataError
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

MIN_TRAINEDDATA_BYTES = 1000

LANGUAGES_PATTERN = re.compile(r"[a-z_]+(\+[a-z_]+)*")


def check_languages(languages: str) -> str:
    """Require Tesseract language codes joined by ``+``, e.g. ``eng+hin``.

    Raises:
        InvalidInputError: If the value is not of that form.
    """
    if not LANGUAGES_PATTERN.fullmatch(languages):
        raise InvalidInputError(
            "Invalid languages. Use Tesseract codes joined by '+', e.g. eng+hin"
        )
    return languages


class TrainedDataStore:
    """Keeps language model files available in a local directory.

    Args:
        directory: Where ``<lang>.traineddata`` files live.
        fast_url: Base URL for language models (tessdata_fast).
        best_url: Base URL for the orientation model (tessdata).
        client: HTTP client used for downloads.
    """

    def __init__(
        self,
        directory: Path,
        fast_url: str,
        best_url: str,
        client: httpx.Client,
    ) -> None:
        self.directory = Path(directory)
        self.fast_url = fast_url.rstrip("/")
        self.best_url = best_url.rstrip("/")
        self.client = client
        self._lock = threading.Lock()

    def path_for(self, lang: str) -> Path:
        """Return the local file for ``lang``.

        Raises:
            TrainedDataError: If the name resolves outside the store directory.
        """
        path = self.directory / f"{lang}.traineddata"
        if not path.resolve().is_relative_to(self.directory.resolve()):
            raise TrainedDataError(f"Invalid language code: {lang!r}")
        return path

    def url_for(self, lang: str) -> str:
        """Return the download URL for a language code.

        The orientation/script model only ships in the full tessdata set.
        """
        base = self.best_url if lang == "osd" else self.fast_url
        return f"{base}/{lang}.traineddata"

    def ensure(self, languages: str) -> Path:
        """Make sure ``osd`` and every requested language are on disk.

        Args:
            languages: ``+``-separated language codes, e.g. ``eng+hin``.

        Returns:
            The tessdata directory.

        Raises:
            TrainedDataError: If a missing file cannot be downloaded.
        """
        required = ["osd", *[lang for lang in languages.split("+") if lang]]
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            for lang in required:
                if not self.path_for(lang).exists():
                    self._download(lang)
            self._report(required)
        return self.directory

    def _download(self, lang: str) -> None:
        url = self.url_for(lang)
        logger.info("Downloading %s.traineddata from %s", lang, url)
        try:
            response = self.client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TrainedDataError(
                f"Missing language file for '{lang}': {exc}"
            ) from exc

        target = self.path_for(lang)
        partial = target.with_suffix(".part")
        partial.write_bytes(response.content)
        partial.replace(target)
        logger.info("Downloaded %s.traineddata (%.2fKB)", lang, len(response.content) / 1024)

    def _report(self, languages: list[str]) -> None:
        for lang in languages:
            path = self.path_for(lang)
            size = path.stat().st_size if path.exists() else 0
            if size < MIN_TRAINEDDATA_BYTES:
                logger.warning("%s missing or corrupted at %s (%d bytes)", path.name, path, size)
            else:
                logger.debug("%s found, size %.2fKB", path.name, size / 1024)
