# zos_connector/jobs/session.py
"""
Job control session: submit a job to JES and follow it to completion.

State machine:
    SUBMITTING -> AWAITING_AVAILABILITY -> (CHECKING_STATUS <-> FETCHING_LOG)
               -> DONE | ABANDONED | INTERRUPTED | FAILED

Every transport failure is turned into a completion tag on the RemoteJob;
nothing raised by the transport escapes submit_job().
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable

from zos_connector.config.schema import JobConfig, ServerConfig
from zos_connector.errors import (
    AuthError,
    ConnectionClosedError,
    PreconditionError,
    TransportError,
)
from zos_connector.transport.base import Credentials, SessionTransport
from zos_connector.transport.ftp import FtpTransport

from .models import (
    CHECK_JOB_AVAILABILITY_ERROR_LOGIN,
    CHECK_JOB_AVAILABILITY_IO_ERROR,
    COULD_NOT_CONNECT,
    ENCODING_ERROR,
    FAILED_TO_PARSE_JOB_ID,
    FETCH_LOG_ERROR_LOGIN,
    FETCH_LOG_IO_ERROR,
    IO_ERROR,
    JCL_ERROR,
    JOB_DID_NOT_FINISH_IN_TIME,
    JOB_ENDED_WITHOUT_RC,
    JOB_NOT_FOUND_IN_JES,
    RETR_ERR_JOB_NOT_FINISHED_OR_NOT_FOUND,
    SERVER_CLOSED_CONNECTION,
    WAIT_ERROR,
    WAIT_INTERRUPTED,
    JobResult,
    JobState,
    RemoteJob,
)
from .status_rules import (
    DEFAULT_STATUS_RULES,
    CoarseStatus,
    StatusRule,
    classify_status,
    coarse_status,
    find_job_end,
    find_job_id,
    find_spool_entry,
)

logger = logging.getLogger(__name__)


class JobControlSession:
    """
    Single-use session that submits one job and polls it to completion.

    Features:
        - Fresh connect + logon before every step (the server drops idle sessions)
        - Two-state (JESINTERFACELEVEL=2) and three-state (level 1) status protocols
        - Job log fetched once after completion, optional spool cleanup
        - Cooperative cancellation via cancel(); task cancellation also marks
          the job WAIT_INTERRUPTED before propagating
        - Transport released on every exit path
    """

    def __init__(
        self,
        server: ServerConfig,
        credentials: Credentials | None,
        job_config: JobConfig | None = None,
        transport: SessionTransport | None = None,
        status_rules: tuple[StatusRule, ...] = DEFAULT_STATUS_RULES,
        clock: Callable[[], float] = time.monotonic,
        log_prefix: str = "",
    ) -> None:
        """
        Initialize job control session.

        Args:
            server: Server connection settings
            credentials: Resolved logon credentials (required)
            job_config: Wait/cleanup defaults and poll interval
            transport: Transport to use (default: FtpTransport for server)
            status_rules: Ordered status classification table
            clock: Monotonic clock in seconds, used for the wait deadline
            log_prefix: Prefix for every log line

        Raises:
            PreconditionError: If credentials are missing
        """
        if credentials is None or not credentials.username:
            raise PreconditionError("Cannot resolve credentials for job submission")

        self._server = server
        self._credentials = credentials
        self._job_config = job_config or JobConfig()
        self._transport = transport or FtpTransport(
            server.host,
            server.port,
            active_mode=server.active_mode,
            timeout=server.timeout,
            encoding=server.encoding,
            log_prefix=log_prefix,
        )
        self._status_rules = status_rules
        self._clock = clock
        self._log_prefix = log_prefix
        self._cancelled = asyncio.Event()
        self._io_lock = threading.Lock()
        self._last_error: str | None = None
        self._used = False
        self.job = RemoteJob()

    def cancel(self) -> None:
        """Ask a waiting session to stop at its next suspension point."""
        self._cancelled.set()

    async def submit_job(
        self,
        jcl: str | bytes,
        wait: bool | None = None,
        wait_time: int | None = None,
        delete_from_spool: bool | None = None,
    ) -> JobResult:
        """
        Submit a job and, if requested, wait for its completion.

        Args:
            jcl: Job source text
            wait: Wait for completion (default from JobConfig)
            wait_time: Maximum wait in minutes, 0 = forever (default from JobConfig)
            delete_from_spool: Delete the job output once fetched (default from JobConfig)

        Returns:
            JobResult; success requires submission and, when waiting, a
            terminal classification with the job log captured
        """
        if self._used:
            raise RuntimeError("JobControlSession is single-use")
        self._used = True

        wait = self._job_config.wait if wait is None else wait
        wait_time = self._job_config.wait_time if wait_time is None else wait_time
        if delete_from_spool is None:
            delete_from_spool = self._job_config.delete_from_spool

        try:
            success = await self._run(jcl, wait, wait_time, delete_from_spool)
        except asyncio.CancelledError:
            self._interrupt()
            raise
        finally:
            await asyncio.shield(self._call(self._transport.close))

        logger.info(
            f"{self._log_prefix}Job [{self.job.job_id}] processing finished: "
            f"state={self.job.state.value}, cc={self.job.completion_code}"
        )
        return JobResult.from_job(self.job, success)

    async def _run(
        self, jcl: str | bytes, wait: bool, wait_time: int, delete_from_spool: bool
    ) -> bool:
        job = self.job
        job.state = JobState.SUBMITTING

        try:
            data = jcl.encode(self._server.encoding) if isinstance(jcl, str) else jcl
        except UnicodeEncodeError as e:
            logger.error(
                f"{self._log_prefix}Job text cannot be sent as {self._server.encoding}: {e}"
            )
            return self._fail(ENCODING_ERROR)

        try:
            await self._logon()
        except TransportError as e:
            logger.error(f"{self._log_prefix}{e}")
            return self._fail(COULD_NOT_CONNECT)

        try:
            reply = await self._call(self._transport.store, self._job_config.submit_name, data)
        except ConnectionClosedError as e:
            logger.error(f"{self._log_prefix}Server closed connection: {e}")
            return self._fail(SERVER_CLOSED_CONNECTION)
        except TransportError as e:
            logger.error(f"{self._log_prefix}Job submission failed: {e}")
            return self._fail(IO_ERROR)

        job_id = find_job_id(reply)
        if not job_id:
            logger.error(
                f"{self._log_prefix}Failed to parse JES job ID. Response lines: "
                + " | ".join(reply)
            )
            return self._fail(FAILED_TO_PARSE_JOB_ID)
        job.job_id = job_id
        logger.info(f"{self._log_prefix}Submitted job [{job_id}]")

        if not wait:
            job.state = JobState.SUBMITTED
            return True

        if not await self._wait_for_completion(wait_time):
            return False

        if delete_from_spool:
            await self._delete_job_output()
        return True

    async def _wait_for_completion(self, wait_time: int) -> bool:
        """Poll until the job is classified, vanishes, times out or is cancelled."""
        job = self.job
        deadline = None if wait_time == 0 else self._clock() + wait_time * 60
        observed = False

        while True:
            job.state = JobState.AWAITING_AVAILABILITY
            if await self._sleep():
                return self._interrupt()
            now = self._clock()
            self._last_error = None

            available = await self._check_availability()
            if job.state.is_terminal:
                return False
            if available:
                observed = True
            elif available is False and observed:
                logger.error(f"{self._log_prefix}Job [{job.job_id}] cannot be found in JES")
                return self._fail(JOB_NOT_FOUND_IN_JES)

            await self._check_status()
            if job.state.is_terminal:
                return job.state == JobState.DONE and job.captured_log

            if deadline is not None and now > deadline:
                break

        # Deadline passed without a terminal classification
        code = WAIT_ERROR if self._last_error else JOB_DID_NOT_FINISH_IN_TIME
        logger.error(f"{self._log_prefix}Job [{job.job_id}] abandoned: {code}")
        job.completion_code = code
        job.state = JobState.ABANDONED
        return False

    async def _check_availability(self) -> bool | None:
        """
        List spool entries and look for the job.

        Returns:
            True/False for present/absent, None when the listing failed
        """
        try:
            await self._logon()
        except AuthError as e:
            logger.error(f"{self._log_prefix}{e}")
            self._fail(CHECK_JOB_AVAILABILITY_ERROR_LOGIN)
            return None
        except TransportError as e:
            logger.warning(f"{self._log_prefix}Availability check failed: {e}")
            self._last_error = CHECK_JOB_AVAILABILITY_IO_ERROR
            return None

        try:
            names = await self._call(self._transport.list_names, "*")
        except TransportError as e:
            logger.warning(f"{self._log_prefix}Failed to list available jobs: {e}")
            self._last_error = CHECK_JOB_AVAILABILITY_IO_ERROR
            return None

        return self.job.job_id in names

    async def _check_status(self) -> None:
        """Classify the job's spool status; completes or fails the job when terminal."""
        job = self.job
        job.state = JobState.CHECKING_STATUS

        try:
            await self._logon()
        except AuthError as e:
            logger.error(f"{self._log_prefix}{e}")
            self._fail(FETCH_LOG_ERROR_LOGIN)
            return
        except TransportError as e:
            logger.warning(f"{self._log_prefix}Status check failed: {e}")
            self._last_error = FETCH_LOG_IO_ERROR
            return

        try:
            lines = await self._call(self._transport.list_details, "*")
        except TransportError as e:
            logger.warning(f"{self._log_prefix}Failed to list job details: {e}")
            self._last_error = FETCH_LOG_IO_ERROR
            return

        entry = find_spool_entry(lines, job.job_id)
        if entry is None:
            logger.info(f"{self._log_prefix}Job [{job.job_id}] not listed yet")
            return

        job.job_name = entry.job_name
        status = entry.status
        logger.info(
            f"{self._log_prefix}Found job {job.job_id} with name {job.job_name}, "
            f"status '{status}'"
        )

        if self._server.jes_interface_level1:
            coarse = coarse_status(status)
            if coarse == CoarseStatus.WAITING:
                logger.info(f"{self._log_prefix}Job {job.job_name} is {status.split()[0]}")
                return
            if coarse == CoarseStatus.OUTPUT:
                status = await self._status_from_job_log()
                if status is None:
                    return

        code = classify_status(status, self._status_rules)
        if code is None:
            logger.error(f"{self._log_prefix}Unexpected status: '{status}'")
            return
        await self._complete(code)

    async def _status_from_job_log(self) -> str | None:
        """
        Fetch the log of an OUTPUT job and turn its HASP395 line into a status.

        Completes or fails the job directly when the termination line carries
        no return code.
        """
        job = self.job
        log = await self._retrieve_log()
        if log is None:
            return None

        marker = find_job_end(log.decode(self._server.encoding, errors="replace"), job.job_name)
        if marker is None:
            logger.error(f"{self._log_prefix}Failed to find HASP395 in job log")
            return None

        if marker.rc_token is None:
            if marker.saw_jcl_error:
                await self._complete(JCL_ERROR)
            else:
                logger.error(f"{self._log_prefix}Found HASP395 with no RC info: '{marker.line}'")
                self._fail(JOB_ENDED_WITHOUT_RC)
            return None

        logger.info(f"{self._log_prefix}Found HASP395: '{marker.rc_token}'")
        return marker.as_status()

    async def _complete(self, code: str) -> None:
        """Record the completion code and capture the job log exactly once."""
        job = self.job
        job.completion_code = code
        if not job.captured_log:
            if await self._retrieve_log() is None:
                job.log_error = RETR_ERR_JOB_NOT_FINISHED_OR_NOT_FOUND
                logger.error(
                    f"{self._log_prefix}Job [{job.job_id}] finished with {code}, "
                    f"but its log could not be retrieved"
                )
        job.state = JobState.DONE

    async def _retrieve_log(self) -> bytes | None:
        job = self.job
        job.state = JobState.FETCHING_LOG
        try:
            log = await self._call(self._transport.retrieve, job.job_id)
        except TransportError as e:
            logger.warning(f"{self._log_prefix}Failed to retrieve job log: {e}")
            self._last_error = RETR_ERR_JOB_NOT_FINISHED_OR_NOT_FOUND
            return None
        job.log = log
        job.captured_log = True
        return log

    async def _delete_job_output(self) -> None:
        """Delete the job from spool; failures are logged and ignored."""
        try:
            await self._logon()
            await self._call(self._transport.delete, self.job.job_id)
        except TransportError as e:
            logger.warning(f"{self._log_prefix}Failed to delete job [{self.job.job_id}]: {e}")
            return
        logger.info(f"{self._log_prefix}Deleted job [{self.job.job_id}] from spool")

    async def _sleep(self) -> bool:
        """Wait one poll interval. Returns True if cancel() was called."""
        if self._cancelled.is_set():
            return True
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=self._job_config.poll_interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def _logon(self) -> None:
        await self._call(self._transport.logon, self._credentials)

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._locked, func, *args)

    def _locked(self, func: Callable[..., Any], *args: Any) -> Any:
        # A cancelled await leaves its worker thread running; transport calls never overlap
        with self._io_lock:
            return func(*args)

    def _fail(self, code: str) -> bool:
        self.job.completion_code = code
        self.job.state = JobState.FAILED
        return False

    def _interrupt(self) -> bool:
        logger.error(f"{self._log_prefix}Interrupted.")
        self.job.completion_code = WAIT_INTERRUPTED
        self.job.state = JobState.INTERRUPTED
        return False
