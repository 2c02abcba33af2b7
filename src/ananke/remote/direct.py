"""Plain HTTP downloads for skill URLs that are not GitHub repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from ananke.config import Settings, get_settings
from ananke.core.exceptions import ContentEncodingError, InputValidationError, TransportError
from ananke.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = get_logger(__name__)


def open_http_client(
    settings: Settings | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    resolved_settings = settings or get_settings()
    return httpx.Client(
        headers={"User-Agent": resolved_settings.user_agent},
        timeout=resolved_settings.request_timeout,
        transport=transport,
        follow_redirects=True,
    )


def fetch_first_available(
    urls: Sequence[str],
    *,
    client: httpx.Client,
    file_label: str = "SKILL.md",
) -> str:
    """Return the body of the first URL answering 200 with content.

    A 200 with a blank body stops the search: the file exists but is empty.
    """
    last_error: str | None = None
    for url in urls:
        try:
            response = client.get(url)
        except httpx.HTTPError as exc:
            last_error = f"Request failed: {exc}"
            logger.debug("Candidate request failed", data={"url": url, "error": str(exc)})
            continue
        if response.status_code != 200:
            last_error = f"Unexpected status {response.status_code}"
            logger.debug(
                "Candidate returned non-success status",
                data={"url": url, "status": response.status_code},
            )
            continue
        try:
            body = response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ContentEncodingError(f"Failed to read response: {exc}") from exc
        if not body.strip():
            raise InputValidationError(f"{file_label} is empty")
        return body

    raise TransportError(last_error or f"Unable to download {file_label}")
