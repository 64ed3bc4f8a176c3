"""
Error taxonomy for the Drug Check Service.

Each exception maps to one HTTP status in ``main.py``; the ``message`` is the
user-facing (localized) text sent back to the caller.
"""
from typing import Optional


class ServiceError(Exception):
    """Base class for errors returned to the caller as ``{"error": ...}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.message}


class ClientInputError(ServiceError):
    """A required request field is missing or malformed."""

    status_code = 400


class PayloadTooLargeError(ServiceError):
    status_code = 413


class ForbiddenOriginError(ServiceError):
    """The request carries an Origin outside the CORS allow-list."""

    status_code = 403


class UpstreamModelError(ServiceError):
    """The Gemini call failed. The cause is logged, never returned."""

    status_code = 500


PARSE_ERROR_MESSAGE = "AIからの応答を解析できませんでした。形式が正しくない可能性があります。"


class ResponseParseError(ServiceError):
    """The model replied but its text could not be interpreted.

    ``detail`` explains what went wrong (server-side only); ``raw_text`` is
    the full model reply and is returned to the caller for debugging.
    """

    status_code = 500

    def __init__(self, detail: str, raw_text: Optional[str] = None):
        super().__init__(PARSE_ERROR_MESSAGE)
        self.detail = detail
        self.raw_text = raw_text

    def __str__(self) -> str:
        return self.detail

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.raw_text is not None:
            payload["rawResponse"] = self.raw_text
        return payload
