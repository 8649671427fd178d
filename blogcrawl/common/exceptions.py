"""Exception types for crawl errors.

Fetch, parse and extract errors are local to one listing page or one item
page: the driver logs them and moves on. Sink errors are fatal to the run.
"""

from __future__ import annotations

from typing import Any


class CrawlException(Exception):
    """Base class for all blogcrawl errors."""


# =============================================================================
# Transient errors
# =============================================================================


class TransientException(CrawlException):
    """Base class for errors that might resolve on retry.

    Network failures, timeouts and unexpected status codes land here. The
    fetcher is responsible for the retry strategy; by the time one of these
    reaches the driver, retries are exhausted.
    """


class FetchError(TransientException):
    """Raised when a URL could not be fetched after all attempts.

    Attributes:
        url: The URL that failed.
        attempts: Number of attempts made.
        status_code: Status code of the final response, or None if the final
            attempt failed at the network level.
        reason: Human-readable description of the final failure.
        message: Formatted error message.
    """

    def __init__(
        self,
        url: str,
        attempts: int,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.attempts = attempts
        self.reason = reason
        self.status_code = status_code

        plural = "attempt" if attempts == 1 else "attempts"
        self.message = (
            f"Failed to fetch {url} after {attempts} {plural}: {reason}"
        )
        super().__init__(self.message)


# =============================================================================
# Document errors
# =============================================================================


class ParseError(CrawlException):
    """Raised when a response body cannot be parsed into a document.

    Attributes:
        url: The URL whose body was malformed.
        reason: Parser error description.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        self.message = f"Could not parse document from {url}: {reason}"
        super().__init__(self.message)


class ExtractError(CrawlException):
    """Raised when a valid document lacks the structure an extractor expects.

    Extractors make assumptions about page structure. When these are
    violated they should raise this (or a subclass) with enough context to
    diagnose what changed on the site.
    """

    def __init__(
        self,
        message: str,
        request_url: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the violation.
            request_url: The URL of the page being extracted.
            context: Optional dict of additional context (selector, counts, etc).
        """
        self.message = message
        self.request_url = request_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        parts.append(f"URL: {self.request_url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class HTMLStructuralAssumptionException(ExtractError):
    """Raised when a selector matches an unexpected number of nodes.

    Attributes:
        selector: The XPath or CSS selector that was used.
        selector_type: Type of selector ("xpath" or "css").
        description: What the selector was meant to find.
        expected_min: Minimum number of matches expected.
        expected_max: Maximum number of matches expected (None = unlimited).
        actual_count: Number of matches found.
    """

    def __init__(
        self,
        selector: str,
        selector_type: str,
        description: str,
        expected_min: int,
        expected_max: int | None,
        actual_count: int,
        request_url: str,
    ) -> None:
        self.selector = selector
        self.selector_type = selector_type
        self.description = description
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual_count = actual_count

        if expected_max is None:
            expected_str = f"at least {expected_min}"
        elif expected_min == expected_max:
            expected_str = f"exactly {expected_min}"
        else:
            expected_str = f"between {expected_min} and {expected_max}"

        message = (
            f"HTML structure mismatch: Expected {expected_str} "
            f"elements for '{description}', but found {actual_count}"
        )

        context = {
            "selector": selector,
            "selector_type": selector_type,
            "expected_min": expected_min,
            "expected_max": expected_max
            if expected_max is not None
            else "unlimited",
            "actual_count": actual_count,
        }

        super().__init__(message, request_url, context)


# =============================================================================
# Output errors
# =============================================================================


class SinkWriteError(CrawlException):
    """Raised when records cannot be written to the output destination.

    Attributes:
        destination: The path that could not be written.
        reason: Description of the underlying OS error.
    """

    def __init__(self, destination: str, reason: str) -> None:
        self.destination = destination
        self.reason = reason
        self.message = f"Error writing records to {destination}: {reason}"
        super().__init__(self.message)
