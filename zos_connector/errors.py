# zos_connector/errors.py
"""
Exception hierarchy for zos-connector.

Transport and protocol errors are normally caught by JobControlSession and
turned into completion tags. Only precondition and schema failures are meant
to reach the caller as hard stops.
"""


class ZosConnectorError(Exception):
    """Base class for all zos-connector errors."""


class TransportError(ZosConnectorError):
    """Connection refused, dropped, or a data transfer failed."""


class ConnectionClosedError(TransportError):
    """Server closed the control connection mid-operation."""


class AuthError(TransportError):
    """Server rejected the supplied credentials or session setup."""


class ProtocolError(ZosConnectorError):
    """Server reply could not be interpreted (missing job ID, bad listing record)."""


class JobTimeoutError(ZosConnectorError):
    """Job did not reach a terminal state before the wait deadline."""


class CancellationError(ZosConnectorError):
    """Waiting for the job was interrupted."""


class SchemaError(ZosConnectorError):
    """Changelog or snapshot document does not match the expected schema."""


class PreconditionError(ZosConnectorError):
    """Required input (credentials, baseline, job file) is missing."""


class JobFailedError(ZosConnectorError):
    """Job finished, but not successfully or above the allowed condition code."""

    def __init__(self, message: str, completion_code: str = "") -> None:
        super().__init__(message)
        self.completion_code = completion_code
