from __future__ import annotations

import logging

import requests

from pre_compute.__version__ import __version__ as VERSION

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 15
DEFAULT_READ_TIMEOUT = 300
DEFAULT_TIMEOUT = (DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT)


def build_user_agent(name: str = "tee-pre-compute", version: str = VERSION) -> str:
    """Build a default User-Agent string."""
    return f"{name}/{version}"


def http_get_bytes(
    url: str,
    *,
    timeout: float | tuple[float, float] = DEFAULT_TIMEOUT,
    user_agent: str | None = None,
) -> bytes:
    """Fetch a URL with a single GET and return the response body.

    Raises ``requests.RequestException`` on transport errors and non-2xx
    statuses.
    """
    headers = {"User-Agent": user_agent or build_user_agent()}
    response = requests.get(url, timeout=timeout, headers=headers)
    response.raise_for_status()
    return response.content


def download_from_url(
    url: str,
    *,
    timeout: float | tuple[float, float] = DEFAULT_TIMEOUT,
) -> bytes | None:
    """Fetch a URL, returning None instead of raising on any HTTP failure."""
    try:
        return http_get_bytes(url, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Download failed [url:%s, error:%s]", url, exc)
        return None
