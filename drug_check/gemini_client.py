"""
Gemini client - single-shot multimodal generation.

One prompt (plus an optional inline image) in, reply text out. No retries;
the HTTP timeout is the only bound on a call.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Optional

from google import genai
from google.genai import types

from .config import DEFAULT_MODEL, DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class InlineImage:
    """Base64-encoded image as received in a request body."""
    data: str
    mime_type: str

    def to_part(self) -> types.Part:
        return types.Part.from_bytes(
            data=base64.b64decode(self.data),
            mime_type=self.mime_type,
        )


class GeminiClient:
    """Thin async wrapper around ``google.genai.Client``."""

    def __init__(self, model_name: str = DEFAULT_MODEL, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.client = None
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds

    @property
    def ready(self) -> bool:
        return self.client is not None

    def initialize(self, api_key: Optional[str]):
        """Create the Gemini client with timeout configuration."""
        if not api_key:
            raise RuntimeError(
                "No Gemini API key found. Set GEMINI_API_KEY or GOOGLE_API_KEY "
                "environment variable."
            )

        timeout_ms = int(self.timeout_seconds * 1000)
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=timeout_ms)
        )
        logger.info(f"Gemini client initialized with model: {self.model_name} (timeout: {self.timeout_seconds}s)")

    async def generate(self, prompt: str, image: Optional[InlineImage] = None) -> str:
        """Send the prompt (and image, if any) and return the reply text.

        Raises:
            RuntimeError: client not initialized, or the reply has no text
        """
        if self.client is None:
            raise RuntimeError("Gemini client is not initialized")

        contents = [prompt]
        if image is not None:
            contents.append(image.to_part())

        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=contents,
        )

        text = response.text
        if text is None:
            raise RuntimeError("Gemini returned no text (response may have been blocked)")
        logger.info(f"Gemini reply: {len(text)} chars")
        return text
