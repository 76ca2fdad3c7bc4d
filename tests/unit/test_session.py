# tests/unit/test_session.py
"""
Tests for JobControlSession.

Tests cover:
    - Submission outcomes (job ID parsing, connection failures)
    - JESINTERFACELEVEL=2 status classification
    - JESINTERFACELEVEL=1 classification from the job log
    - Deadline, vanished job, cancellation
    - Spool cleanup and transport release on every path
"""

import asyncio
import logging
import threading

import pytest

from fakes import (
    JOB_ID,
    JOB_NAME,
    LISTING_HEADER,
    SECRET,
    FakeTransport,
    SteppingClock,
    level1_line,
    spool_line,
)
from zos_connector.config.schema import JobConfig
from zos_connector.errors import (
    AuthError,
    ConnectionClosedError,
    PreconditionError,
    TransportError,
)
from zos_connector.jobs.models import JobState
from zos_connector.jobs.session import JobControlSession
from zos_connector.transport.base import Credentials

JCL = "//MYJOB JOB (ACCT)\n//STEP1 EXEC PGM=IEFBR14\n"

DONE_RC4 = spool_line("OUTPUT A        RC=0004 3 spool files")
RUNNING = spool_line("ACTIVE")
LEVEL1_OUTPUT = level1_line("OUTPUT   3 spool files")

LOG_RC4 = (
    b" 13.32.05 JOB01234 ---- MONDAY, 19 OCT 2026 ----\n"
    b" 13.32.05 JOB01234  IRR010I  USERID USER1 IS ASSIGNED TO THIS JOB.\n"
    b" 13.32.06 JOB01234  $HASP395 MYJOB    ENDED - RC=0004\n"
)


def _session(transport, server, job_config, clock=None, **kwargs):
    return JobControlSession(
        server,
        Credentials(username="USER1", password=SECRET),
        job_config=job_config,
        transport=transport,
        clock=clock or SteppingClock(),
        **kwargs,
    )


class TestSubmission:
    """Submission without waiting and submission failures."""

    @pytest.mark.asyncio
    async def test_submit_without_wait(self, server, job_config):
        """Job ID is parsed from the reply and no polling happens."""
        transport = FakeTransport()
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL, wait=False)

        assert result.success is True
        assert result.job_id == JOB_ID
        assert result.state == JobState.SUBMITTED
        assert transport.stored == [("jenkins.sub", JCL.encode("latin-1"))]
        assert transport.count("list_names") == 0
        assert transport.connected is False

    @pytest.mark.asyncio
    async def test_reply_without_job_id(self, server, job_config):
        """A reply that never names the job fails with FAILED_TO_PARSE_JOB_ID."""
        transport = FakeTransport(store_reply=["250 Transfer completed successfully."])
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.success is False
        assert result.completion_code == "FAILED_TO_PARSE_JOB_ID"
        assert result.state == JobState.FAILED
        assert transport.count("list_names") == 0
        assert transport.close_count == 1

    @pytest.mark.asyncio
    async def test_connect_failure(self, server, job_config):
        transport = FakeTransport(connect=[TransportError("connection refused")])
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "COULD_NOT_CONNECT"
        assert result.state == JobState.FAILED
        assert transport.count("store") == 0
        assert transport.close_count == 1

    @pytest.mark.asyncio
    async def test_logon_rejected(self, server, job_config):
        transport = FakeTransport(auth=[AuthError("530 PASS command failed")])
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "COULD_NOT_CONNECT"

    @pytest.mark.asyncio
    async def test_server_closed_connection_during_store(self, server, job_config):
        transport = FakeTransport(store_reply=ConnectionClosedError("421 timeout"))
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "SERVER_CLOSED_CONNECTION"
        assert result.success is False

    @pytest.mark.asyncio
    async def test_io_error_during_store(self, server, job_config):
        transport = FakeTransport(store_reply=TransportError("broken pipe"))
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "IO_ERROR"
        assert transport.close_count == 1

    @pytest.mark.asyncio
    async def test_job_text_outside_server_encoding(self, server, job_config):
        """Characters the server encoding cannot carry fail the job instead of raising."""
        transport = FakeTransport()
        session = _session(transport, server, job_config)

        result = await session.submit_job("//MYJOB JOB (ACCT)\n//* owner €\n", wait=False)

        assert result.success is False
        assert result.completion_code == "ENCODING_ERROR"
        assert result.state == JobState.FAILED
        assert transport.count("store") == 0
        assert transport.close_count == 1

    def test_missing_credentials(self, server, job_config):
        with pytest.raises(PreconditionError):
            JobControlSession(server, None, job_config=job_config, transport=FakeTransport())

    @pytest.mark.asyncio
    async def test_session_is_single_use(self, server, job_config):
        session = _session(FakeTransport(), server, job_config)
        await session.submit_job(JCL, wait=False)

        with pytest.raises(RuntimeError):
            await session.submit_job(JCL, wait=False)


class TestLevel2Status:
    """Classification from the spool listing status column."""

    @pytest.mark.asyncio
    async def test_polls_until_return_code(self, server, job_config):
        """Running job is polled again; the finished job yields its RC and log."""
        transport = FakeTransport(
            details=[[LISTING_HEADER, RUNNING], [LISTING_HEADER, DONE_RC4]],
            log=LOG_RC4,
        )
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.success is True
        assert result.completion_code == "0004"
        assert result.state == JobState.DONE
        assert result.job_name == JOB_NAME
        assert result.captured_log is True
        assert result.log == LOG_RC4
        assert transport.count("list_details") == 2
        assert transport.count("retrieve") == 1

    @pytest.mark.asyncio
    async def test_abend(self, server, job_config):
        transport = FakeTransport(
            details=[[spool_line("OUTPUT A        ABEND=S0C4 3 spool files")]],
        )
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "ABEND_S0C4"
        assert result.success is True

    @pytest.mark.asyncio
    async def test_jcl_error(self, server, job_config):
        transport = FakeTransport(
            details=[[spool_line("OUTPUT A        (JCL error) 3 spool files")]],
        )
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "JCL_ERROR"

    @pytest.mark.asyncio
    async def test_log_retrieval_failure_keeps_code(self, server, job_config):
        """The completion code survives; success is withheld without a log."""
        transport = FakeTransport(
            details=[[DONE_RC4]],
            retrieve=[TransportError("550 not found")],
        )
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "0004"
        assert result.state == JobState.DONE
        assert result.captured_log is False
        assert result.log_error == "RETR_ERR_JOB_NOT_FINISHED_OR_NOT_FOUND"
        assert result.success is False
        assert transport.count("retrieve") == 1

    @pytest.mark.asyncio
    async def test_transient_listing_error_is_retried(self, server, job_config):
        transport = FakeTransport(
            details=[TransportError("425 can't open data connection"), [DONE_RC4]],
        )
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "0004"
        assert result.success is True


class TestLevel1Status:
    """Classification from the HASP395 line of the job log."""

    @pytest.mark.asyncio
    async def test_rc_from_job_log(self, level1_server, job_config):
        transport = FakeTransport(
            details=[[level1_line("ACTIVE")], [LEVEL1_OUTPUT]],
            log=LOG_RC4,
        )
        session = _session(transport, level1_server, job_config)

        result = await session.submit_job(JCL)

        assert result.success is True
        assert result.completion_code == "0004"
        assert result.captured_log is True
        # The log fetched for classification is the captured log
        assert transport.count("retrieve") == 1

    @pytest.mark.asyncio
    async def test_abend_from_job_log(self, level1_server, job_config):
        log = b" 13.32.06 JOB01234  $HASP395 MYJOB    ENDED - ABEND=S806\n"
        transport = FakeTransport(details=[[LEVEL1_OUTPUT]], log=log)
        session = _session(transport, level1_server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "ABEND_S806"

    @pytest.mark.asyncio
    async def test_jcl_error_without_rc(self, level1_server, job_config):
        log = (
            b" IEFC452I MYJOB - JOB NOT RUN - JCL ERROR\n"
            b" 13.32.06 JOB01234  $HASP395 MYJOB    ENDED\n"
        )
        transport = FakeTransport(details=[[LEVEL1_OUTPUT]], log=log)
        session = _session(transport, level1_server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "JCL_ERROR"
        assert result.state == JobState.DONE
        assert result.success is True

    @pytest.mark.asyncio
    async def test_ended_without_rc(self, level1_server, job_config):
        """HASP395 without RC and without JCL ERROR is a terminal failure."""
        log = b" 13.32.06 JOB01234  $HASP395 MYJOB    ENDED\n"
        transport = FakeTransport(details=[[LEVEL1_OUTPUT]], log=log)
        session = _session(transport, level1_server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "JOB_ENDED_WITHOUT_RC"
        assert result.state == JobState.FAILED
        assert result.success is False

    @pytest.mark.asyncio
    async def test_input_and_active_keep_polling(self, level1_server, job_config):
        transport = FakeTransport(
            details=[
                [level1_line("INPUT")],
                [level1_line("ACTIVE")],
                [LEVEL1_OUTPUT],
            ],
            log=LOG_RC4,
        )
        session = _session(transport, level1_server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "0004"
        assert transport.count("list_details") == 3


class TestWaitTermination:
    """Deadline, vanished jobs, auth failures and cancellation."""

    @pytest.mark.asyncio
    async def test_deadline(self, server, job_config):
        transport = FakeTransport(details=[[RUNNING]])
        session = _session(transport, server, job_config, clock=SteppingClock(step=30))

        result = await session.submit_job(JCL, wait_time=1)

        assert result.state == JobState.ABANDONED
        assert result.completion_code == "JOB_DID_NOT_FINISH_IN_TIME"
        assert result.success is False

    @pytest.mark.asyncio
    async def test_deadline_after_transport_error(self, server, job_config):
        transport = FakeTransport(details=[TransportError("connection reset")])
        session = _session(transport, server, job_config, clock=SteppingClock(step=30))

        result = await session.submit_job(JCL, wait_time=1)

        assert result.state == JobState.ABANDONED
        assert result.completion_code == "WAIT_ERROR"

    @pytest.mark.asyncio
    async def test_job_vanishes_from_spool(self, server, job_config):
        transport = FakeTransport(names=[[JOB_ID], []], details=[[RUNNING]])
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "JOB_NOT_FOUND_IN_JES"
        assert result.state == JobState.FAILED

    @pytest.mark.asyncio
    async def test_not_yet_listed_job_is_not_vanished(self, server, job_config):
        """A job absent before it was ever observed is still waited for."""
        transport = FakeTransport(names=[[], [JOB_ID]], details=[[], [DONE_RC4]])
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "0004"

    @pytest.mark.asyncio
    async def test_auth_failure_while_checking_availability(self, server, job_config):
        transport = FakeTransport(auth=[None, AuthError("530 PASS command failed")])
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "CHECK_JOB_AVAILABILITY_ERROR_LOGIN"
        assert result.state == JobState.FAILED

    @pytest.mark.asyncio
    async def test_auth_failure_while_checking_status(self, server, job_config):
        transport = FakeTransport(auth=[None, None, AuthError("530 PASS command failed")])
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL)

        assert result.completion_code == "FETCH_LOG_ERROR_LOGIN"

    @pytest.mark.asyncio
    async def test_cancel(self, server, job_config):
        transport = FakeTransport(details=[[RUNNING]])
        session = _session(transport, server, job_config)
        session.cancel()

        result = await session.submit_job(JCL)

        assert result.state == JobState.INTERRUPTED
        assert result.completion_code == "WAIT_INTERRUPTED"
        assert result.success is False
        assert transport.connected is False

    @pytest.mark.asyncio
    async def test_task_cancellation(self, server):
        """Cancelling the task marks the job interrupted and propagates."""
        transport = FakeTransport(details=[[RUNNING]])
        session = _session(transport, server, JobConfig(poll_interval=60))

        task = asyncio.create_task(session.submit_job(JCL))
        for _ in range(200):
            if session.job.state == JobState.AWAITING_AVAILABILITY:
                break
            await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert session.job.state == JobState.INTERRUPTED
        assert session.job.completion_code == "WAIT_INTERRUPTED"
        assert transport.connected is False


class RecordingTransport(FakeTransport):
    """FakeTransport that records the thread close() runs on and can stall store()."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.close_thread = None
        self.store_started = threading.Event()
        self.store_release = threading.Event()
        self.store_release.set()
        self.events = []

    def store(self, name, data):
        self.store_started.set()
        self.store_release.wait(5)
        self.events.append("store")
        return super().store(name, data)

    def close(self):
        self.close_thread = threading.current_thread()
        self.events.append("close")
        super().close()


class TestTransportRelease:
    """The transport is closed off the event loop, after any call still running."""

    @pytest.mark.asyncio
    async def test_close_runs_in_worker_thread(self, server, job_config):
        transport = RecordingTransport()
        session = _session(transport, server, job_config)

        await session.submit_job(JCL, wait=False)

        assert transport.close_count == 1
        assert transport.close_thread is not None
        assert transport.close_thread is not threading.current_thread()

    @pytest.mark.asyncio
    async def test_close_waits_for_running_call_after_cancellation(self, server, job_config):
        transport = RecordingTransport()
        transport.store_release.clear()
        session = _session(transport, server, job_config)

        task = asyncio.create_task(session.submit_job(JCL))
        await asyncio.to_thread(transport.store_started.wait, 5)
        task.cancel()
        asyncio.get_running_loop().call_later(0.05, transport.store_release.set)

        with pytest.raises(asyncio.CancelledError):
            await task
        assert session.job.completion_code == "WAIT_INTERRUPTED"
        assert transport.events == ["store", "close"]


class TestSpoolCleanup:
    """Optional deletion of the job output after completion."""

    @pytest.mark.asyncio
    async def test_delete_after_completion(self, server, job_config):
        transport = FakeTransport(details=[[DONE_RC4]], log=LOG_RC4)
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL, delete_from_spool=True)

        assert result.success is True
        assert ("delete", JOB_ID) in transport.calls

    @pytest.mark.asyncio
    async def test_delete_failure_is_ignored(self, server, job_config):
        transport = FakeTransport(
            details=[[DONE_RC4]], log=LOG_RC4, delete=[TransportError("550 denied")]
        )
        session = _session(transport, server, job_config)

        result = await session.submit_job(JCL, delete_from_spool=True)

        assert result.success is True
        assert result.completion_code == "0004"

    @pytest.mark.asyncio
    async def test_no_delete_by_default(self, server, job_config):
        transport = FakeTransport(details=[[DONE_RC4]], log=LOG_RC4)
        session = _session(transport, server, job_config)

        await session.submit_job(JCL)

        assert transport.count("delete") == 0


class TestCredentialHygiene:
    @pytest.mark.asyncio
    async def test_password_never_logged(self, server, job_config, caplog):
        caplog.set_level(logging.DEBUG)
        transport = FakeTransport(
            details=[TransportError("reset"), [DONE_RC4]],
            retrieve=[TransportError("550"), None],
        )
        session = _session(transport, server, job_config)

        await session.submit_job(JCL)

        assert caplog.text
        assert SECRET not in caplog.text

    def test_password_not_in_repr(self, credentials):
        assert SECRET not in repr(credentials)
