# zos_connector/transport/base.py
"""
Session transport protocol definition.

Defines the abstract interface JobControlSession drives. FtpTransport is the
production implementation; tests use scripted in-memory transports.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """Resolved logon credentials. The password never appears in repr()."""

    username: str
    password: str = field(repr=False)


class SessionTransport(ABC):
    """
    Abstract connection to a JES spool over a session-based transfer protocol.

    Every method raises TransportError (or AuthError) on failure; nothing
    else escapes.
    """

    @abstractmethod
    def connect(self) -> None:
        """Open a new control connection, discarding any previous one."""
        pass

    @abstractmethod
    def authenticate(self, credentials: Credentials) -> None:
        """
        Log on and switch the session to JES mode.

        Raises:
            AuthError: If the server rejects the credentials or the mode switch
        """
        pass

    @abstractmethod
    def list_names(self, pattern: str) -> list[str]:
        """List spool entry names (job IDs) matching pattern."""
        pass

    @abstractmethod
    def list_details(self, pattern: str) -> list[str]:
        """List spool entries matching pattern, one raw listing line each."""
        pass

    @abstractmethod
    def store(self, name: str, data: bytes) -> list[str]:
        """
        Transfer data as a new spool entry.

        Returns:
            The server's final reply, split into lines
        """
        pass

    @abstractmethod
    def retrieve(self, name: str) -> bytes:
        """Fetch the content of a spool entry."""
        pass

    @abstractmethod
    def delete(self, name: str) -> None:
        """Delete a spool entry."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Log out and disconnect. Never raises."""
        pass

    def logon(self, credentials: Credentials) -> None:
        """
        Run a fresh connect + authenticate cycle.

        Prior connection state is discarded first; failures of that teardown
        are ignored.
        """
        self.close()
        self.connect()
        self.authenticate(credentials)
