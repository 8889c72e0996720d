"""Error definitions for the albsub translator."""

from __future__ import annotations


class AlbsubError(Exception):
    """Base exception for all custom errors."""


class InvalidOptionsError(AlbsubError):
    """Raised when batching, worker, or retry options are out of range."""


class SubtitleFormatError(AlbsubError):
    """Raised when a subtitle source cannot be decoded."""


class UnsupportedFileTypeError(AlbsubError):
    """Raised when a given file extension is not supported."""


class OverwriteRefusedError(AlbsubError):
    """Raised when attempting to overwrite an output without consent."""


class TranslationProviderConfigurationError(AlbsubError):
    """Raised when the translation provider is misconfigured."""


class TranslationProviderError(AlbsubError):
    """Raised when the translation provider fails."""
