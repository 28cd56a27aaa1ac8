"""Custom exceptions for linefold."""


class LinefoldError(Exception):
    """Base exception for linefold operations."""


class ConfigurationError(LinefoldError):
    """Invalid patterns, pairs file or option values supplied at startup."""


class StreamReadError(LinefoldError):
    """The line source failed while reading."""


class RenderError(LinefoldError):
    """The terminal cannot be used for the folded view."""
