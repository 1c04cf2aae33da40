"""Fetch the system preamble from a raw GitHub document."""

from __future__ import annotations

import logging

import httpx

from middleseek.errors import PreambleError

logger = logging.getLogger(__name__)

GITHUB_RAW_BASE_URL = "https://raw.githubusercontent.com"


def preamble_url(repo: str, path: str, *, branch: str = "main") -> str:
    """Return the raw-content URL for ``path`` in ``repo`` at ``branch``."""
    return f"{GITHUB_RAW_BASE_URL}/{repo.strip('/')}/{branch}/{path.lstrip('/')}"


async def fetch_preamble(
    repo: str,
    path: str,
    *,
    branch: str = "main",
    client: httpx.AsyncClient | None = None,
    timeout_s: float = 10.0,
) -> str:
    """Download the preamble text.

    Args:
        repo: ``owner/name`` of the repository holding the document.
        path: Path of the document inside the repository.
        branch: Branch to read from.
        client: Optional shared client; a short-lived one is used otherwise.
        timeout_s: Request timeout when no client is given.

    Raises:
        PreambleError: When the document cannot be fetched or the final
            response (after redirects) is not 2xx.
    """
    url = preamble_url(repo, path, branch=branch)
    try:
        if client is not None:
            response = await client.get(url, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=timeout_s) as own_client:
                response = await own_client.get(url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise PreambleError(
            f"Failed to load prompt: {e.response.status_code} {e.response.reason_phrase}",
            hint=f"Check that {url} exists and is public.",
        ) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise PreambleError(f"Failed to load prompt from {url}: {e}") from e

    logger.debug("Loaded preamble from %s (%d chars)", url, len(response.text))
    return response.text
