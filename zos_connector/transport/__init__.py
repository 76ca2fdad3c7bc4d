# zos_connector/transport/__init__.py
"""Session transport: abstract protocol, FTP implementation and retry policy."""

from .base import Credentials, SessionTransport
from .ftp import FtpTransport
from .retry import connect_retry, is_retryable

__all__ = [
    "Credentials",
    "SessionTransport",
    "FtpTransport",
    "connect_retry",
    "is_retryable",
]
