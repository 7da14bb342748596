"""Indian pincode to city/state lookup backed by the remote text API.

Lookups are cached and transient upstream failures are retried with
exponential backoff and jitter.
"""

import re
from dataclasses import dataclass, replace

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from microapis.exceptions import (
    InvalidInputError,
    NotFoundError,
    RemoteResponseError,
    UpstreamError,
)
from microapis.remote.client import RemoteTextClient
from microapis.utils.cache import ResultCache
from microapis.utils.config import PincodeConfig
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

PINCODE_PATTERN = re.compile(r"^\d{6}$")

PINCODE_PROMPT = (
    "Given the Indian pincode {pincode}, provide the corresponding city and state "
    'in JSON format like {{"city": "CityName", "state": "StateName"}}, if the '
    'pincode is valid. If invalid, return {{"error": "Invalid pincode"}}.'
)


@dataclass(frozen=True)
class LocationResult:
    """City and state resolved for a pincode."""

    pincode: str
    city: str
    state: str
    cached: bool = False


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


class PincodeService:
    """Resolves pincodes with caching and bounded retries.

    Args:
        client: Remote text API client.
        cache: Cache of successful lookups.
        config: Retry settings.
    """

    def __init__(
        self,
        client: RemoteTextClient,
        cache: ResultCache,
        config: PincodeConfig,
    ) -> None:
        self.client = client
        self.cache = cache
        self.config = config

    def lookup(self, pincode: str) -> LocationResult:
        """Return the location of a six-digit pincode.

        Raises:
            InvalidInputError: If the pincode is not exactly six digits.
            NotFoundError: If the remote API reports the pincode as invalid.
            UpstreamError: If the remote API fails or replies malformed data.
        """
        if not PINCODE_PATTERN.match(pincode):
            raise InvalidInputError("Invalid pincode. Must be a 6-digit number.")

        key = f"pincode:{pincode}"
        hit = self.cache.get(key)
        if hit is not None:
            logger.debug("Pincode %s served from cache", pincode)
            return replace(hit, cached=True)

        reply = self._fetch(pincode)
        if reply.get("error"):
            raise NotFoundError(str(reply["error"]))

        city, state = reply.get("city"), reply.get("state")
        if not isinstance(city, str) or not isinstance(state, str) or not city or not state:
            raise UpstreamError(
                "Failed to fetch location data: response missing city or state fields"
            )

        result = LocationResult(pincode=pincode, city=city, state=state)
        self.cache.set(key, result)
        return result

    def _fetch(self, pincode: str) -> dict:
        retrying = Retrying(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_random_exponential(
                multiplier=self.config.backoff_initial_seconds,
                max=self.config.backoff_max_seconds,
            ),
            before_sleep=lambda state: logger.warning(
                "Pincode lookup attempt %d failed: %s",
                state.attempt_number,
                state.outcome.exception(),
            ),
        )
        try:
            return retrying(self.client.complete, PINCODE_PROMPT.format(pincode=pincode))
        except RetryError as exc:
            cause = exc.last_attempt.exception()
            raise UpstreamError(f"Failed to fetch location data: {cause}") from cause
        except (httpx.HTTPError, RemoteResponseError) as exc:
            raise UpstreamError(f"Failed to fetch location data: {exc}") from exc
