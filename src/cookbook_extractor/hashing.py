"""Content hashing for cache keys.

Two URLs that differ only in tracking parameters, fragment, or the case of
scheme and host point at the same content and must share a cache entry.
``ContentHasher.normalize`` removes those differences and ``hash`` turns the
result into a SHA-256 hex digest.

Example:
    >>> hasher = ContentHasher()
    >>> hasher.normalize("HTTPS://Example.com/pie?utm_source=x&id=3#top")
    'https://example.com/pie?id=3'
"""

import hashlib
import logging
import threading
from urllib.parse import urlsplit, urlunsplit

from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)

TRACKING_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "fbclid",
        "gclid",
        "dclid",
        "msclkid",
        "twclid",
        "ref",
        "source",
    }
)


def _is_tracking_param(segment: str) -> bool:
    key = segment.split("=", 1)[0].lower()
    return key in TRACKING_PARAMS or key.startswith("utm_")


class ContentHasher:
    """Normalizes URLs and hashes them, memoizing per raw URL.

    The memo is shared between threads and coroutines; writes are guarded by
    a lock. Concurrent first calls for the same URL may both compute the hash,
    which is harmless because the result is deterministic.

    At most ``max_memo_size`` URLs are remembered; the oldest entry is
    dropped to make room for a new one.
    """

    def __init__(self, max_memo_size: int = 10_000) -> None:
        if max_memo_size < 1:
            raise InvalidInputError("max_memo_size must be at least 1", max_memo_size=max_memo_size)
        self.max_memo_size = max_memo_size
        self._memo: dict[str, str] = {}
        self._lock = threading.Lock()

    def normalize(self, url: str) -> str:
        """Canonical form of ``url``.

        Lower-cases scheme and host, drops tracking parameters (keys matched
        case-insensitively), keeps the remaining parameters in their original
        order and spelling, drops empty query segments and the fragment.
        Applying it twice gives the same result.

        Args:
            url: Absolute URL

        Returns:
            Normalized URL

        Raises:
            InvalidInputError: If the URL is empty, unparsable, or lacks a
                scheme or host
        """
        if not url or not url.strip():
            raise InvalidInputError("URL cannot be empty")

        try:
            parts = urlsplit(url.strip())
            # Accessing port validates it
            parts.port
        except ValueError as e:
            raise InvalidInputError("Malformed URL", url=url, error=str(e)) from e

        if not parts.scheme or not parts.netloc:
            raise InvalidInputError("URL must have a scheme and host", url=url)

        kept = [
            segment
            for segment in parts.query.split("&")
            if segment and not _is_tracking_param(segment)
        ]

        return urlunsplit(
            (parts.scheme.lower(), parts.netloc.lower(), parts.path, "&".join(kept), "")
        )

    def hash(self, url: str) -> str:
        """SHA-256 hex digest of the normalized URL.

        Raises:
            InvalidInputError: If the URL is malformed
        """
        cached = self._memo.get(url)
        if cached is not None:
            return cached

        normalized = self.normalize(url)
        digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
        logger.debug(f"Hashed {url} -> {normalized} -> {digest[:12]}")

        with self._lock:
            if url not in self._memo and len(self._memo) >= self.max_memo_size:
                del self._memo[next(iter(self._memo))]
            self._memo[url] = digest
        return digest

    def clear_memo(self) -> None:
        with self._lock:
            self._memo.clear()

    @property
    def memo_size(self) -> int:
        return len(self._memo)
