"""Exception types raised by the deepreason core.

Parsing problems never surface as exceptions (bad lines are skipped);
only failures that end a turn are represented here.
"""


class DeepReasonError(Exception):
    """Base class for all deepreason errors."""


class TransportError(DeepReasonError):
    """The network stream failed, was rejected, or ended abnormally."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteStreamError(TransportError):
    """The server reported an error event in the middle of a stream."""
