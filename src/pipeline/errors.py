"""Exception types raised inside pipeline stages."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline failures."""


class ConfigurationError(PipelineError):
    """A required provider setting (usually an API key) is missing."""


class TranscriptFetchError(PipelineError):
    """The transcript provider rejected the request or returned nothing usable."""


class EmptyCompletionError(PipelineError):
    """The completion model answered but produced no text."""


class InvalidTransitionError(PipelineError):
    """A job was asked to move backwards or out of a terminal status."""


def error_message(exc: BaseException) -> str:
    """Human-readable message for *exc*, falling back to its class name."""
    return str(exc) or type(exc).__name__
