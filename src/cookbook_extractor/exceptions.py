"""Custom exceptions for cookbook_extractor.

Every error raised by the package derives from ``CookbookExtractorError`` and
carries keyword context that is rendered into the message, so log lines and
CLI output show where a failure happened without extra formatting.

Which errors are fatal:
- ``ExtractionError`` always propagates to the caller; the pipeline never
  caches or hides an LLM failure.
- ``StoreError`` is raised by store backends but recovered inside the result
  cache, which treats it as a miss or a skipped write.
- ``InvalidInputError`` signals a programming or input mistake (malformed URL,
  null recipe, empty recipe list).

Example:
    >>> try:
    ...     raise ExtractionError("Model refused", reason="blocked", url="https://x.test")
    ... except CookbookExtractorError as e:
    ...     print(e)
    Model refused (reason='blocked', url='https://x.test')
"""


class CookbookExtractorError(Exception):
    """Base exception for all cookbook_extractor errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about where/when the error occurred
    """

    def __init__(self, message: str, **context: str | int | float | bool | None) -> None:
        """Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error description
            **context: Additional context (e.g., url="https://...", attempt=2)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Format error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class InvalidInputError(CookbookExtractorError):
    """Input that the pipeline cannot work with.

    Raised when:
    - A URL is empty, has no scheme or host, or cannot be parsed
    - The post-processor is handed a null recipe
    - A recipe response is built from an empty recipe list
    """

    pass


class ConfigurationError(CookbookExtractorError):
    """Error in configuration or settings.

    Raised when:
    - Configuration file is invalid
    - Settings have invalid values
    - Environment variables are malformed

    Example:
        >>> raise ConfigurationError(
        ...     "confidence_threshold must be between 0.0 and 1.0",
        ...     confidence_threshold=1.5,
        ... )
    """

    pass


class ExtractionError(CookbookExtractorError):
    """Failure of the LLM extraction call.

    The ``reason`` attribute classifies the failure:

    - ``blocked``: the model refused or the prompt was blocked
    - ``network``: connection problem or timeout talking to the API
    - ``parse_error``: the response could not be parsed into the output schema
    - ``api_error``: any other API failure (HTTP status, empty output)

    Example:
        >>> raise ExtractionError(
        ...     "Structured output missing",
        ...     reason="parse_error",
        ...     model="gpt-5-nano",
        ... )
    """

    REASONS = frozenset({"blocked", "network", "parse_error", "api_error"})

    def __init__(
        self,
        message: str,
        reason: str = "api_error",
        **context: str | int | float | bool | None,
    ) -> None:
        """Initialize extraction error with a failure classification.

        Args:
            message: Human-readable error description
            reason: One of ``ExtractionError.REASONS``
            **context: Additional context
        """
        if reason not in self.REASONS:
            reason = "api_error"
        super().__init__(message, reason=reason, **context)
        self.reason = reason


class StoreError(CookbookExtractorError):
    """Error reading from or writing to a recipe store.

    Example:
        >>> raise StoreError("Could not write cache entry", content_hash="ab12...")
    """

    pass


class FetchError(CookbookExtractorError):
    """Error downloading a page's HTML.

    Raised when:
    - The URL is not http(s) or points at a private address
    - The server answers with an error status
    - The response is not HTML
    """

    pass
