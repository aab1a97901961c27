"""Error taxonomy for scanning, scoring and fix generation."""

from __future__ import annotations

from enum import Enum


class A11yNavError(Exception):
    """Base class for all errors raised by the scanning pipeline."""


class NavigationErrorKind(str, Enum):
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    CERTIFICATE = "certificate"


_USER_MESSAGES: dict[NavigationErrorKind, str] = {
    NavigationErrorKind.TIMEOUT: (
        "Website scan timed out. Please try again or contact support."
    ),
    NavigationErrorKind.UNREACHABLE: (
        "Unable to reach the website. Please check the URL and try again."
    ),
    NavigationErrorKind.CERTIFICATE: (
        "Website has SSL certificate issues. Please contact the website administrator."
    ),
}


class NavigationError(A11yNavError):
    """A page could not be loaded. Fatal to one page, not to a crawl."""

    def __init__(self, url: str, kind: NavigationErrorKind, detail: str = "") -> None:
        self.url = url
        self.kind = kind
        self.detail = detail
        super().__init__(f"Navigation to {url} failed ({kind.value}): {detail}")

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self.kind]


class RuleEvaluationError(A11yNavError):
    """The rule evaluator could not produce results for a page."""

    def __init__(self, url: str, detail: str = "") -> None:
        self.url = url
        super().__init__(f"Rule evaluation failed for {url}: {detail}")


class HeuristicCheckError(A11yNavError):
    """A single heuristic check failed. Always caught by the suite."""

    def __init__(self, check: str, detail: str = "") -> None:
        self.check = check
        super().__init__(f"Heuristic check {check!r} failed: {detail}")


class ReasoningServiceError(A11yNavError):
    """The reasoning service call failed or timed out."""


class ParseError(A11yNavError):
    """The reasoning service returned a response that could not be used."""


class InvalidInputError(A11yNavError, ValueError):
    """Malformed URL or scan options."""


class ScanRejectedError(A11yNavError):
    """A usage gate refused the scan before any page was loaded."""
