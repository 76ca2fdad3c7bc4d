# zos_connector/jobs/models.py
"""
Remote job tracking models and completion tags.

A RemoteJob is owned by exactly one JobControlSession. The session mutates it
while polling; once a terminal state is reached the job is frozen.
"""

from dataclasses import dataclass
from enum import Enum

from zos_connector.errors import (
    CancellationError,
    JobFailedError,
    JobTimeoutError,
    ProtocolError,
    TransportError,
)

# Completion tags set by the session when no real condition code is available
COULD_NOT_CONNECT = "COULD_NOT_CONNECT"
FAILED_TO_PARSE_JOB_ID = "FAILED_TO_PARSE_JOB_ID"
SERVER_CLOSED_CONNECTION = "SERVER_CLOSED_CONNECTION"
IO_ERROR = "IO_ERROR"
ENCODING_ERROR = "ENCODING_ERROR"
JOB_NOT_FOUND_IN_JES = "JOB_NOT_FOUND_IN_JES"
CHECK_JOB_AVAILABILITY_ERROR_LOGIN = "CHECK_JOB_AVAILABILITY_ERROR_LOGIN"
CHECK_JOB_AVAILABILITY_IO_ERROR = "CHECK_JOB_AVAILABILITY_IO_ERROR"
FETCH_LOG_ERROR_LOGIN = "FETCH_LOG_ERROR_LOGIN"
FETCH_LOG_IO_ERROR = "FETCH_LOG_IO_ERROR"
RETR_ERR_JOB_NOT_FINISHED_OR_NOT_FOUND = "RETR_ERR_JOB_NOT_FINISHED_OR_NOT_FOUND"
JOB_ENDED_WITHOUT_RC = "JOB_ENDED_WITHOUT_RC"
JOB_DID_NOT_FINISH_IN_TIME = "JOB_DID_NOT_FINISH_IN_TIME"
WAIT_ERROR = "WAIT_ERROR"
WAIT_INTERRUPTED = "WAIT_INTERRUPTED"
JCL_ERROR = "JCL_ERROR"
ABEND_PREFIX = "ABEND_"

_PROTOCOL_TAGS = {FAILED_TO_PARSE_JOB_ID, JOB_ENDED_WITHOUT_RC}


class JobState(Enum):
    """Job control lifecycle states."""

    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    AWAITING_AVAILABILITY = "awaiting_availability"
    CHECKING_STATUS = "checking_status"
    FETCHING_LOG = "fetching_log"
    DONE = "done"
    ABANDONED = "abandoned"
    INTERRUPTED = "interrupted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            JobState.SUBMITTED,
            JobState.DONE,
            JobState.ABANDONED,
            JobState.INTERRUPTED,
            JobState.FAILED,
        )


@dataclass
class RemoteJob:
    """
    A job submitted to JES.

    job_id is assigned by the server on submission; job_name is discovered
    while polling and may differ from the name in the JOB card.
    """

    job_id: str = ""
    job_name: str = ""
    completion_code: str | None = None
    captured_log: bool = False
    log: bytes = b""
    log_error: str | None = None
    state: JobState = JobState.SUBMITTING


@dataclass(frozen=True)
class JobResult:
    """Outcome of one JobControlSession run."""

    job_id: str
    job_name: str
    completion_code: str | None
    log: bytes
    captured_log: bool
    state: JobState
    success: bool
    log_error: str | None = None

    @classmethod
    def from_job(cls, job: RemoteJob, success: bool) -> "JobResult":
        return cls(
            job_id=job.job_id,
            job_name=job.job_name,
            completion_code=job.completion_code,
            log=job.log,
            captured_log=job.captured_log,
            state=job.state,
            success=success,
            log_error=job.log_error,
        )

    def log_text(self, encoding: str = "latin-1") -> str:
        return self.log.decode(encoding, errors="replace")

    def raise_for_outcome(self) -> None:
        """
        Raise the exception matching a failed outcome. No-op on success.

        Raises:
            CancellationError: Waiting was interrupted
            JobTimeoutError: Job did not finish before the deadline
            ProtocolError: Server replies could not be interpreted
            TransportError: Connection or transfer failures
            JobFailedError: Anything else (e.g. log not captured, vanished job)
        """
        if self.success:
            return

        code = self.completion_code or ""
        message = f"Job [{self.job_id}] failed: {code or self.state.value}"

        if self.state == JobState.INTERRUPTED:
            raise CancellationError(message)
        if self.state == JobState.ABANDONED:
            raise JobTimeoutError(message)
        if code in _PROTOCOL_TAGS:
            raise ProtocolError(message)
        if code.endswith(("_ERROR_LOGIN", "_IO_ERROR")) or code in (
            COULD_NOT_CONNECT,
            SERVER_CLOSED_CONNECTION,
            IO_ERROR,
        ):
            raise TransportError(message)
        if self.log_error:
            message = f"{message} (log not captured: {self.log_error})"
        raise JobFailedError(message, completion_code=code)
