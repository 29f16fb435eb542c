"""Download page HTML for extraction.

Only public http(s) URLs are fetched. The response must be HTML; it is
decoded with the charset the server declares, falling back to UTF-8.
"""

from __future__ import annotations

import ipaddress
import logging
from urllib.parse import urlparse

import httpx

from .exceptions import FetchError

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def is_private_host(host: str) -> bool:
    """Check whether ``host`` is localhost or a private/loopback address."""
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return host.lower() == "localhost"
    return ip.is_private or ip.is_loopback


def _charset(content_type: str) -> str:
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip("\"'")
    return "utf-8"


def decode_body(content: bytes, content_type: str) -> str:
    """Decode a response body using its declared charset, falling back to UTF-8."""
    try:
        return content.decode(_charset(content_type))
    except (UnicodeDecodeError, LookupError):
        return content.decode("utf-8", errors="replace")


async def fetch_html(
    url: str,
    timeout: float = 15.0,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Fetch a page's HTML.

    Args:
        url: Public http(s) URL
        timeout: Read timeout in seconds (connect timeout is 5s)
        client: Optional client to reuse; one is created per call otherwise

    Returns:
        Decoded HTML

    Raises:
        FetchError: If the URL is rejected, the request fails or the response
            is not HTML
    """
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise FetchError("URL must be an absolute http(s) URL", url=url)
    if is_private_host(parsed.hostname or ""):
        raise FetchError("URL points to a private or disallowed host", url=url)

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(timeout, connect=5.0),
        )

    try:
        response = await client.get(url, headers=BROWSER_HEADERS)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise FetchError(
            f"Site returned status {e.response.status_code}",
            url=url,
            status=e.response.status_code,
        ) from e
    except httpx.HTTPError as e:
        raise FetchError(f"Network error: {e}", url=url) from e
    finally:
        if owns_client:
            await client.aclose()

    content_type = response.headers.get("content-type", "")
    if content_type and "html" not in content_type.lower():
        raise FetchError("Unsupported content type", url=url, content_type=content_type)

    html = decode_body(response.content, content_type)
    logger.info(f"Fetched {url}: {len(html)} chars")
    return html
