# zos_connector/jobs/submitter.py
"""
Job submitter: run one JCL file through a JobControlSession and judge the result.

Thin layer over JobControlSession that adds the MaxCC threshold, the
human-readable report and saving of the captured job log.
"""

import logging
import re
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

from zos_connector.config.schema import JobConfig, ServerConfig, normalize_max_cc
from zos_connector.errors import JobFailedError, PreconditionError
from zos_connector.transport.base import Credentials, SessionTransport

from .models import ABEND_PREFIX, JobResult
from .session import JobControlSession

logger = logging.getLogger(__name__)

NO_WAIT_CC = "0000"


def printable_cc(code: str | None) -> str:
    """Completion code with all whitespace removed."""
    if code is None:
        return ""
    return re.sub(r"\s+", "", code)


def describe_result(result: JobResult, wait: bool) -> str:
    """Build the one-line report printed after a submission."""
    report = f"Job [{result.job_id}] processing "
    if not wait:
        return report + "finished. Skip waiting."

    cc = printable_cc(result.completion_code)
    if cc.isdigit():
        return report + f"finished. Captured RC = [{cc}]"
    if cc.startswith(ABEND_PREFIX):
        return report + f"ABnormally ENDed. ABEND code = [{cc}]"
    return report + f"failed. Reason: [{cc}]"


def expand_variables(text: str, environ: Mapping[str, str]) -> str:
    """
    Replace $NAME and ${NAME} with values from environ.

    Unknown names and stray dollar signs are left as written; $$ becomes $.
    """
    return string.Template(text).safe_substitute(environ)


def log_file_name(job_name: str, cc: str, server: str, job_id: str, label: str) -> str:
    """File name used to save a captured job log in the workspace."""
    return f"{job_name} [{cc}] ({server} - {job_id}) {label}.log"


@dataclass(frozen=True)
class SubmissionOutcome:
    """What a JobSubmitter run produced."""

    result: JobResult
    report: str
    cc: str
    log_path: Path | None


class JobSubmitter:
    """
    Submits a job, reports on it and enforces the MaxCC threshold.

    The threshold check is a string comparison of the padded codes, so
    ABEND and other tags always fail against a numeric threshold.
    """

    def __init__(
        self,
        server: ServerConfig,
        job_config: JobConfig | None = None,
        transport_factory: Callable[[], SessionTransport] | None = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        """
        Initialize job submitter.

        Args:
            server: Server connection settings
            job_config: Wait/cleanup/threshold settings
            transport_factory: Builds the transport for each session (default FTP)
            echo: Sink for the report and, if enabled, the job log
        """
        self._server = server
        self._job_config = job_config or JobConfig()
        self._transport_factory = transport_factory
        self._echo = echo

    async def run(
        self,
        jcl: str,
        credentials: Credentials | None,
        workspace: Path,
        label: str = "",
    ) -> SubmissionOutcome:
        """
        Submit jcl and wait according to JobConfig.

        Args:
            jcl: Job source text
            credentials: Resolved credentials
            workspace: Directory that receives the job log
            label: Free text appended to the saved log file name

        Returns:
            SubmissionOutcome on success

        Raises:
            PreconditionError: If credentials are missing
            JobFailedError: If the job failed or exceeded max_cc
        """
        if credentials is None:
            raise PreconditionError("Cannot resolve credentials")

        config = self._job_config
        transport = self._transport_factory() if self._transport_factory else None
        session = JobControlSession(
            self._server,
            credentials,
            job_config=config,
            transport=transport,
            log_prefix=f"{label}: " if label else "",
        )
        result = await session.submit_job(jcl)

        cc = printable_cc(result.completion_code)
        report = describe_result(result, config.wait)
        self._echo(report)

        log_path = None
        if not config.wait:
            cc = NO_WAIT_CC
        elif result.captured_log:
            if config.log_to_console:
                self._echo(result.log_text(self._server.encoding))
            log_path = workspace / log_file_name(
                result.job_name, cc, self._server.host, result.job_id, label
            )
            workspace.mkdir(parents=True, exist_ok=True)
            log_path.write_bytes(result.log)
            logger.info(f"Saved job log to {log_path}")

        if not result.success:
            result.raise_for_outcome()

        max_cc = normalize_max_cc(config.max_cc)
        if max_cc < cc:
            raise JobFailedError(f"z/OS job failed with CC {cc}", completion_code=cc)

        return SubmissionOutcome(result=result, report=report, cc=cc, log_path=log_path)
