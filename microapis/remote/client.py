"""Client for the remote text-completion API.

The API accepts a chat-style body and replies either with a JSON object or
with a string holding JSON, sometimes wrapped in a markdown code fence.
"""

import json
import re
from typing import Any

import httpx

from microapis.exceptions import RemoteResponseError
from microapis.utils.logger import get_logger

logger = get_logger(__name__)

_FENCE = re.compile(r"```(?:json)?\n?|\n?```")


def unwrap_markdown_json(text: str) -> str:
    """Remove markdown code fences around a JSON payload."""
    return _FENCE.sub("", text).strip()


def parse_reply(response: httpx.Response) -> dict[str, Any]:
    """Extract the JSON object from a remote reply.

    Args:
        response: HTTP response from the text API.

    Returns:
        Decoded JSON object.

    Raises:
        RemoteResponseError: If the body does not hold a JSON object.
    """
    try:
        payload: Any = response.json()
    except ValueError:
        payload = response.text

    if isinstance(payload, str):
        cleaned = unwrap_markdown_json(payload)
        try:
            payload = json.loads(cleaned)
        except ValueError as exc:
            raise RemoteResponseError(f"Response is not valid JSON: {cleaned[:200]}") from exc

    if not isinstance(payload, dict):
        raise RemoteResponseError(f"Unexpected response format: {type(payload).__name__}")
    return payload


class RemoteTextClient:
    """Sends single-prompt completions to the remote text API.

    Args:
        api_url: Endpoint accepting ``{messages, model, private}`` bodies.
        model: Model name forwarded to the API.
        timeout: Seconds before a request is abandoned.
        transport: Optional httpx transport, used to stub the API in tests.
    """

    def __init__(
        self,
        api_url: str,
        model: str = "openai-fast",
        timeout: float = 8.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = api_url
        self.model = model
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def complete(self, prompt: str) -> dict[str, Any]:
        """Send a prompt and return the decoded JSON reply.

        Raises:
            httpx.HTTPError: On network failure or an error status.
            RemoteResponseError: If the reply is not a JSON object.
        """
        body = {
            "messages": [{"role": "user", "content": prompt}],
            "model": self.model,
            "private": True,
        }
        response = self._client.post(self.api_url, json=body)
        response.raise_for_status()
        result = parse_reply(response)
        logger.debug("Remote API replied with keys: %s", sorted(result))
        return result

    def close(self) -> None:
        self._client.close()
