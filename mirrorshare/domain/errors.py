from __future__ import annotations


class MirrorShareError(Exception):
    """Base class for errors raised by the domain and relay."""


class InputValidationError(MirrorShareError):
    """Caller supplied something unusable. Maps to HTTP 400, never retried."""


class InvalidReference(InputValidationError):
    pass


class InvalidAction(InputValidationError):
    pass


class InvalidParameter(InputValidationError):
    pass


class UpstreamUnavailable(MirrorShareError):
    """A metadata source timed out, answered non-200 or returned junk.

    Recovered inside the resolver by moving on to the next source.
    """
