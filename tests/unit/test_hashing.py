"""Unit tests for cookbook_extractor.hashing module."""

import hashlib

import pytest

from cookbook_extractor.exceptions import InvalidInputError
from cookbook_extractor.hashing import ContentHasher


@pytest.fixture
def hasher() -> ContentHasher:
    return ContentHasher()


class TestNormalize:
    """Tests for URL normalization."""

    def test_lowercases_scheme_and_host_only(self, hasher: ContentHasher) -> None:
        """Path case is significant and kept."""
        assert hasher.normalize("HTTPS://Example.COM/Recipes/Tart") == "https://example.com/Recipes/Tart"

    def test_drops_fragment(self, hasher: ContentHasher) -> None:
        """Fragments never reach the server."""
        assert hasher.normalize("https://example.com/tart#method") == "https://example.com/tart"

    def test_drops_tracking_params_keeps_order(self, hasher: ContentHasher) -> None:
        """Remaining parameters keep their order and spelling."""
        url = "https://example.com/tart?b=2&utm_source=x&A=1&fbclid=abc&ref=home&z=Z"
        assert hasher.normalize(url) == "https://example.com/tart?b=2&A=1&z=Z"

    @pytest.mark.parametrize(
        "param",
        ["UTM_SOURCE=x", "Utm_Campaign=y", "utm_id=5", "GCLID=1", "dclid=2", "msclkid=3", "twclid=4", "source=feed"],
    )
    def test_tracking_keys_case_insensitive(self, hasher: ContentHasher, param: str) -> None:
        """Tracking keys are matched regardless of case."""
        assert hasher.normalize(f"https://example.com/tart?{param}&id=7") == "https://example.com/tart?id=7"

    def test_only_tracking_params_removes_query(self, hasher: ContentHasher) -> None:
        """No dangling question mark is left behind."""
        assert hasher.normalize("https://example.com/tart?utm_medium=email") == "https://example.com/tart"

    def test_drops_empty_segments(self, hasher: ContentHasher) -> None:
        """Repeated separators collapse."""
        assert hasher.normalize("https://example.com/tart?&&id=1&") == "https://example.com/tart?id=1"

    def test_idempotent(self, hasher: ContentHasher) -> None:
        """Normalizing twice changes nothing."""
        once = hasher.normalize("HTTP://Example.com/a?utm_term=q&x=1#frag")
        assert hasher.normalize(once) == once

    @pytest.mark.parametrize("url", ["", "   ", "not a url", "/relative/path", "https://", "http://host:99999/"])
    def test_malformed_input_rejected(self, hasher: ContentHasher, url: str) -> None:
        """Malformed URLs raise InvalidInputError."""
        with pytest.raises(InvalidInputError):
            hasher.normalize(url)


class TestHash:
    """Tests for hashing and the memo."""

    def test_sha256_of_normalized(self, hasher: ContentHasher) -> None:
        """The hash is the hex SHA-256 of the normalized URL."""
        expected = hashlib.sha256(b"https://example.com/tart").hexdigest()
        assert hasher.hash("https://EXAMPLE.com/tart#x") == expected
        assert len(expected) == 64

    def test_tracking_variants_share_hash(self, hasher: ContentHasher) -> None:
        """URLs differing only in tracking params collide on purpose."""
        plain = hasher.hash("https://example.com/tart?id=1")
        tracked = hasher.hash("https://example.com/tart?utm_source=news&id=1&gclid=zz")
        assert plain == tracked

    def test_different_pages_differ(self, hasher: ContentHasher) -> None:
        """Different paths produce different hashes."""
        assert hasher.hash("https://example.com/a") != hasher.hash("https://example.com/b")

    def test_memo(self, hasher: ContentHasher) -> None:
        """Hashes are memoized per raw URL and the memo can be cleared."""
        hasher.hash("https://example.com/a")
        hasher.hash("https://example.com/a")
        hasher.hash("https://example.com/a?utm_source=x")
        assert hasher.memo_size == 2

        hasher.clear_memo()
        assert hasher.memo_size == 0

    def test_memo_is_bounded(self) -> None:
        """The oldest URL is forgotten once the memo is full."""
        hasher = ContentHasher(max_memo_size=2)
        first = hasher.hash("https://example.com/1")
        hasher.hash("https://example.com/2")
        hasher.hash("https://example.com/3")

        assert hasher.memo_size == 2
        assert "https://example.com/1" not in hasher._memo
        assert hasher.hash("https://example.com/1") == first

    def test_memo_size_must_be_positive(self) -> None:
        """A memo that can hold nothing is rejected."""
        with pytest.raises(InvalidInputError):
            ContentHasher(max_memo_size=0)

    def test_invalid_url_not_memoized(self, hasher: ContentHasher) -> None:
        """Failures leave the memo untouched."""
        with pytest.raises(InvalidInputError):
            hasher.hash("")
        assert hasher.memo_size == 0
