# zos_connector/jobs/status_rules.py
"""
Classification of JES spool status text.

The rules are plain data: an ordered table of (pattern, outcome) pairs tried
against the status part of a spool listing line. JobControlSession accepts a
custom table, so another server dialect only needs a new table.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .models import ABEND_PREFIX, JCL_ERROR

# Wraps a token taken from the job log so the listing rules can match it
JOB_LOG_MARKER = "FROM_JOB_LOG"


@dataclass(frozen=True)
class StatusRule:
    """One status classification rule; the first matching rule wins."""

    name: str
    pattern: re.Pattern[str]
    outcome: Callable[[re.Match[str]], str]

    def apply(self, status: str) -> str | None:
        match = self.pattern.fullmatch(status)
        if match is None:
            return None
        return self.outcome(match)


DEFAULT_STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule("jcl_error", re.compile(r".* \(JCL error\) .*"), lambda m: JCL_ERROR),
    StatusRule("abend", re.compile(r".* ABEND=(.*?) .*"), lambda m: ABEND_PREFIX + m.group(1)),
    StatusRule("rc_unlabeled", re.compile(r".* RC\s+(\S+)\s+.*"), lambda m: m.group(1).upper()),
    StatusRule("rc", re.compile(r".* RC=(\S+) .*"), lambda m: m.group(1)),
)


def classify_status(
    status: str, rules: tuple[StatusRule, ...] = DEFAULT_STATUS_RULES
) -> str | None:
    """
    Extract a completion code from a status field.

    Returns:
        The completion code of the first matching rule, or None if no rule matches
    """
    for rule in rules:
        code = rule.apply(status)
        if code is not None:
            return code
    return None


class CoarseStatus(Enum):
    """Job status as reported by a JESINTERFACELEVEL=1 server."""

    WAITING = "waiting"
    OUTPUT = "output"


COARSE_STATUSES: tuple[tuple[str, CoarseStatus], ...] = (
    ("INPUT", CoarseStatus.WAITING),
    ("ACTIVE", CoarseStatus.WAITING),
    ("OUTPUT", CoarseStatus.OUTPUT),
)


def coarse_status(status: str) -> CoarseStatus | None:
    for prefix, value in COARSE_STATUSES:
        if status.startswith(prefix):
            return value
    return None


@dataclass(frozen=True)
class SpoolEntry:
    """A spool listing line that belongs to the tracked job."""

    job_name: str
    status: str


def find_spool_entry(lines: list[str], job_id: str) -> SpoolEntry | None:
    """Locate the listing line whose job-id column equals job_id."""
    pattern = re.compile(r"(\S+)\s+" + re.escape(job_id) + r"\s+(.*)")
    for line in lines:
        match = pattern.fullmatch(line.rstrip())
        if match:
            return SpoolEntry(job_name=match.group(1), status=match.group(2))
    return None


@dataclass(frozen=True)
class JobEndMarker:
    """The $HASP395 ... ENDED line of a job log."""

    line: str
    rc_token: str | None
    saw_jcl_error: bool

    def as_status(self) -> str:
        """Status text the listing rules can classify."""
        return f"{JOB_LOG_MARKER} {self.rc_token} {JOB_LOG_MARKER}"


def find_job_end(log_text: str, job_name: str) -> JobEndMarker | None:
    """
    Scan a job log for the HASP395 termination line of job_name.

    A "JCL ERROR" line seen on or before the termination line is recorded so
    the caller can classify an RC-less termination.
    """
    pattern = re.compile(
        r".*HASP395\s+" + re.escape(job_name) + r"\s+ENDED(\s+-\s+(\S+)\s*)?.*"
    )
    saw_jcl_error = False
    for line in log_text.splitlines():
        saw_jcl_error = saw_jcl_error or "JCL ERROR" in line
        match = pattern.fullmatch(line)
        if match:
            return JobEndMarker(line=line, rc_token=match.group(2), saw_jcl_error=saw_jcl_error)
    return None


JES_JOB_ID = re.compile(r"250-It is known to JES as (.*)")


def find_job_id(reply_lines: list[str]) -> str | None:
    """Find the job ID announced in the server's reply to a job submission."""
    for line in reply_lines:
        match = JES_JOB_ID.fullmatch(line.rstrip())
        if match:
            return match.group(1).strip()
    return None
