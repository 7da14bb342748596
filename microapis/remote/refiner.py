"""Spelling, grammar, and translation cleanup of OCR text.

Refinement is best effort: any remote failure returns the input unchanged.
"""

import httpx

from microapis.exceptions import RemoteResponseError
from microapis.utils.logger import get_logger

from .client import RemoteTextClient

logger = get_logger(__name__)

REFINE_PROMPT = """You are an expert text corrector and completer.
Given the following raw text, which may contain spelling errors, grammatical mistakes, incomplete words, or missing phrases due to OCR processing (especially from scanned documents or handwriting), your task is to:
1. Correct all spelling and grammatical errors.
2. Based on context, infer and complete any truncated or missing words/phrases. Do not hallucinate extensively, but make reasonable completions.
3. If the text is not in English, translate it accurately into English while preserving the original meaning.
4. Provide ONLY the corrected, completed, and translated text as a JSON object with a single key 'refined_text'.
Do NOT include any introductory or concluding remarks, explanations, summaries, or any text outside the specified JSON format.

Example of expected output:
{{"refined_text": "The quick brown fox jumps over the lazy dog."}}

Text to process: "{text}\""""


class TextRefiner:
    """Asks the remote API to correct and translate extracted text.

    Args:
        client: Remote text API client.
    """

    def __init__(self, client: RemoteTextClient) -> None:
        self.client = client

    def refine(self, text: str) -> str:
        """Return the refined text, or ``text`` itself on any failure."""
        try:
            reply = self.client.complete(REFINE_PROMPT.format(text=text))
        except (httpx.HTTPError, RemoteResponseError) as exc:
            logger.warning("Text refinement failed, keeping original text: %s", exc)
            return text

        refined = reply.get("refined_text")
        if not isinstance(refined, str):
            logger.warning("Malformed refinement reply, keeping original text: %s", reply)
            return text
        return refined
