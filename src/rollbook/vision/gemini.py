"""Gemini vision provider over the generateContent REST endpoint.

The request is a blocking `requests` call, run in a worker thread so the
event loop stays free while the model works.
"""

import asyncio
import base64

import requests

from src.rollbook.config import RollbookConfig, get_config
from src.rollbook.errors import VisionProviderError
from src.rollbook.logging import get_logger

log = get_logger(__name__)


class GeminiVisionProvider:
    """VisionProvider backed by Google's Gemini API."""

    def __init__(
        self,
        config: RollbookConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config or get_config()
        self._session = session or requests.Session()

    async def generate(
        self, prompt: str, image_bytes: bytes, mime_type: str = "image/jpeg"
    ) -> str:
        """Send prompt + image and return the model's text.

        Raises:
            VisionProviderError: Missing API key, transport failure,
                non-200 status, or a response without text.
        """
        if not self._config.gemini_api_key:
            raise VisionProviderError(
                "Gemini API key is missing. Please set GEMINI_API_KEY."
            )
        return await asyncio.to_thread(
            self._generate_sync, prompt, image_bytes, mime_type
        )

    def _generate_sync(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        url = (
            f"{self._config.gemini_base_url}/models/"
            f"{self._config.gemini_model}:generateContent"
        )
        body = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        headers = {
            "x-goog-api-key": self._config.gemini_api_key,
            "Content-Type": "application/json",
        }

        log.info(
            "vision_request_started",
            model=self._config.gemini_model,
            image_bytes=len(image_bytes),
        )
        try:
            resp = self._session.post(
                url,
                headers=headers,
                json=body,
                timeout=self._config.vision_timeout_seconds,
            )
        except requests.RequestException as e:
            log.error("vision_request_error", error=str(e), type=type(e).__name__)
            raise VisionProviderError(f"Failed to reach Gemini: {e}") from e

        if resp.status_code == 404:
            raise VisionProviderError(
                f"Gemini model {self._config.gemini_model!r} not found."
            )
        if resp.status_code != 200:
            log.error(
                "vision_request_failed",
                status=resp.status_code,
                body=resp.text[:500],
            )
            raise VisionProviderError(f"Gemini request failed: {resp.status_code}")

        try:
            data = resp.json()
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise VisionProviderError("Unexpected response shape from Gemini.") from e

        if not text.strip():
            raise VisionProviderError("No response text from Gemini.")

        log.info("vision_request_succeeded", chars=len(text))
        return text
