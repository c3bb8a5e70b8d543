"""HTTP client for the Pl@ntNet identification API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Sequence

import requests

from models import PlantMatch

if TYPE_CHECKING:
    from app_settings import AppSettings


logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 7 * 1024 * 1024

NOT_IDENTIFIED_MESSAGE = (
    "Sorry, I could not identify this plant. Please try with a clearer image that shows "
    "the entire plant or specific parts like leaves, flowers, or fruits."
)

_STATUS_MESSAGES = {
    429: "Too many requests. Please wait a moment and try again.",
    413: "Image file is too large. Please use a smaller image.",
    400: "Invalid request. Please ensure you're uploading a valid image file.",
    401: "API authentication failed. Please try again later.",
    403: "API authentication failed. Please try again later.",
}


class PlantIdentificationError(RuntimeError):
    """Raised with a user-facing message when identification fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _response_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, Mapping) and payload.get("message"):
        return str(payload["message"])
    return response.reason or f"status {response.status_code}"


@dataclass
class PlantNetClient:
    """Thin wrapper around ``POST /v2/identify/{project}``."""

    api_url: str
    api_key: str | None
    timeout: int = 30

    @classmethod
    def from_settings(cls, settings: "AppSettings") -> "PlantNetClient":
        return cls(
            api_url=settings.plantnet_api_url,
            api_key=settings.plantnet_api_key,
            timeout=settings.request_timeout,
        )

    def identify(self, data: bytes, filename: str, mime: str) -> list[PlantMatch]:
        """Return candidate species, best first; an empty list means no match."""

        if len(data) > MAX_IMAGE_BYTES:
            raise PlantIdentificationError("Image file is too large. Maximum size is 7MB.")

        params: dict[str, Any] = {}
        if self.api_key:
            params["api-key"] = self.api_key
        try:
            response = requests.post(
                self.api_url,
                params=params,
                data={"organs": "auto"},
                files={"images": (filename, data, mime)},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.warning("Plant identification timed out: %s", exc)
            raise PlantIdentificationError("Request timed out. Please try again.") from exc
        except requests.ConnectionError as exc:
            logger.warning("Plant identification unreachable: %s", exc)
            raise PlantIdentificationError(
                "No response received from the server. Please check your internet connection and try again."
            ) from exc
        except requests.RequestException as exc:
            logger.exception("Plant identification request failed")
            raise PlantIdentificationError(f"Failed to identify plant: {exc}") from exc

        status = response.status_code
        if status != 200:
            message = _STATUS_MESSAGES.get(status) or f"API request failed: {_response_message(response)}"
            logger.error("Plant identification error (%s): %s", status, message)
            raise PlantIdentificationError(message, status_code=status)

        try:
            payload = response.json()
        except ValueError as exc:
            raise PlantIdentificationError("Failed to identify plant: malformed response") from exc
        results = payload.get("results") if isinstance(payload, Mapping) else None
        if not isinstance(results, Sequence):
            return []
        return [PlantMatch.from_dict(item) for item in results if isinstance(item, Mapping)]


def describe_matches(matches: Sequence[PlantMatch]) -> str:
    """Describe the best match the way the assistant reports it in chat."""

    if not matches:
        return NOT_IDENTIFIED_MESSAGE
    best = matches[0]
    common = ", ".join(best.common_names) or "no common name available"
    confidence = round(best.score * 100)
    return (
        f"I identified this plant as {best.scientific_name} ({common}).\n"
        f"Family: {best.family}\n"
        f"Genus: {best.genus}\n"
        f"Confidence: {confidence}%"
    )


__all__ = [
    "MAX_IMAGE_BYTES",
    "NOT_IDENTIFIED_MESSAGE",
    "PlantIdentificationError",
    "PlantNetClient",
    "describe_matches",
]
