# zos_connector/transport/ftp.py
"""FTP transport for the z/OS JES spool, built on ftplib."""

import ftplib
import io
import logging

from zos_connector.errors import AuthError, ConnectionClosedError, TransportError

from .base import Credentials, SessionTransport
from .retry import connect_retry

logger = logging.getLogger(__name__)

JES_SITE_COMMAND = "SITE filetype=jes jesjobname=* jesstatus=ALL"


def _as_transport_error(message: str, exc: BaseException) -> TransportError:
    """Map an ftplib failure onto the transport error taxonomy."""
    if isinstance(exc, EOFError) or str(exc).startswith("421"):
        return ConnectionClosedError(f"{message}: server closed connection")
    return TransportError(f"{message}: {exc}")


def _is_empty_listing(exc: ftplib.error_perm) -> bool:
    # z/OS answers "550 No jobs found for listing" instead of an empty list
    return str(exc).startswith("550")


class FtpTransport(SessionTransport):
    """
    SessionTransport over a z/OS FTP server in JES mode.

    Handles:
    - Reconnect + logon cycles (each cycle starts from a clean ftplib.FTP)
    - Passive/active data connection mode applied before every transfer
    - Translation of ftplib.all_errors into TransportError / AuthError
    """

    def __init__(
        self,
        host: str,
        port: int = 21,
        active_mode: bool = False,
        timeout: int = 30,
        encoding: str = "latin-1",
        log_prefix: str = "",
    ) -> None:
        """
        Initialize FTP transport.

        Args:
            host: LPAR name or IP address
            port: FTP port
            active_mode: Use active data connections (default passive)
            timeout: Socket timeout in seconds
            encoding: Encoding of text exchanged with the spool
            log_prefix: Prefix for every log line
        """
        self.host = host
        self.port = port
        self.active_mode = active_mode
        self.timeout = timeout
        self.encoding = encoding
        self.log_prefix = log_prefix
        self._ftp: ftplib.FTP | None = None

    @connect_retry
    def _open(self) -> ftplib.FTP:
        ftp = ftplib.FTP(timeout=self.timeout, encoding=self.encoding)
        try:
            ftp.connect(self.host, self.port)
        except BaseException:
            ftp.close()
            raise
        return ftp

    def connect(self) -> None:
        self.close()
        try:
            self._ftp = self._open()
        except ftplib.all_errors as e:
            logger.error(f"{self.log_prefix}Could not connect to {self.host}:{self.port}: {e}")
            raise _as_transport_error(f"Could not connect to {self.host}:{self.port}", e) from e
        logger.info(f"{self.log_prefix}FTP: connected to {self.host}:{self.port}")

    def authenticate(self, credentials: Credentials) -> None:
        ftp = self._require_connection()
        try:
            ftp.login(credentials.username, credentials.password)
        except ftplib.error_perm as e:
            self.close()
            raise AuthError(f"Logon rejected for user {credentials.username}: {e}") from e
        except ftplib.all_errors as e:
            self.close()
            raise _as_transport_error("Could not logon to server", e) from e

        try:
            ftp.sendcmd(JES_SITE_COMMAND)
        except ftplib.error_perm as e:
            self.close()
            raise AuthError(f"FTP server refused to change FileType and JESJobName: {e}") from e
        except ftplib.all_errors as e:
            self.close()
            raise _as_transport_error("Could not switch to JES mode", e) from e

    def list_names(self, pattern: str) -> list[str]:
        ftp = self._prepare_data_connection()
        try:
            return ftp.nlst(pattern)
        except ftplib.error_perm as e:
            if _is_empty_listing(e):
                return []
            raise _as_transport_error("Failed to list available jobs", e) from e
        except ftplib.all_errors as e:
            raise _as_transport_error("Failed to list available jobs", e) from e

    def list_details(self, pattern: str) -> list[str]:
        ftp = self._prepare_data_connection()
        lines: list[str] = []
        try:
            ftp.retrlines(f"LIST {pattern}", lines.append)
        except ftplib.error_perm as e:
            if _is_empty_listing(e):
                return []
            raise _as_transport_error("Failed to list job details", e) from e
        except ftplib.all_errors as e:
            raise _as_transport_error("Failed to list job details", e) from e
        return lines

    def store(self, name: str, data: bytes) -> list[str]:
        ftp = self._prepare_data_connection()
        try:
            reply = ftp.storlines(f"STOR {name}", io.BytesIO(data))
        except ftplib.all_errors as e:
            raise _as_transport_error(f"Failed to store {name}", e) from e
        return reply.splitlines()

    def retrieve(self, name: str) -> bytes:
        ftp = self._prepare_data_connection()
        lines: list[str] = []
        try:
            ftp.retrlines(f"RETR {name}", lines.append)
        except ftplib.all_errors as e:
            raise _as_transport_error(f"Failed to retrieve {name}", e) from e
        return "\n".join(lines).encode(self.encoding, errors="replace")

    def delete(self, name: str) -> None:
        ftp = self._prepare_data_connection()
        try:
            ftp.delete(name)
        except ftplib.all_errors as e:
            raise _as_transport_error(f"Failed to delete {name}", e) from e

    def close(self) -> None:
        if self._ftp is None:
            return
        ftp, self._ftp = self._ftp, None
        try:
            ftp.quit()
        except ftplib.all_errors:
            logger.debug(f"{self.log_prefix}Logout failed, dropping connection")
        finally:
            ftp.close()

    def _require_connection(self) -> ftplib.FTP:
        if self._ftp is None:
            raise TransportError("Not connected")
        return self._ftp

    def _prepare_data_connection(self) -> ftplib.FTP:
        ftp = self._require_connection()
        ftp.set_pasv(not self.active_mode)
        return ftp
