"""Error definitions for the Novella translation pipeline."""

from __future__ import annotations

from typing import Optional


class NovellaError(Exception):
    """Base exception for all custom errors."""


class TranslationCancelled(NovellaError):
    """Raised when the cancellation signal is observed."""


class TranslatorConstructionError(NovellaError):
    """Raised when a translator backend cannot be built or initialised."""


class TranslationProviderConfigurationError(NovellaError):
    """Raised when the translation provider is misconfigured."""


class TranslationProviderError(NovellaError):
    """Raised when the translation provider fails permanently."""


class RateLimitedError(TranslationProviderError):
    """Raised when the remote service rejects requests as too frequent."""


class AccessDeniedError(TranslationProviderError):
    """Raised when the remote service refuses access to the resource."""


class DegenerationError(TranslationProviderError):
    """Raised when too many lines of one segment degenerate."""

    def __init__(self, message: str, *, degenerated_lines: int) -> None:
        super().__init__(message)
        self.degenerated_lines = degenerated_lines


def error_for_status(status_code: int, message: Optional[str] = None) -> TranslationProviderError:
    """Map an HTTP status code onto the typed provider error hierarchy."""

    text = message or f"Remote service returned HTTP {status_code}"
    if status_code == 429:
        return RateLimitedError(f"Request frequency too high: {text}")
    if status_code in {401, 403}:
        return AccessDeniedError(f"Access to the remote service denied: {text}")
    return TranslationProviderError(text)
