# zos_connector/jobs/__init__.py
"""
Remote job control.

Exports:
    - JobControlSession: submit a job and poll it to completion
    - JobSubmitter: session + MaxCC threshold + report + saved log
    - RemoteJob, JobResult, JobState: job tracking models
    - StatusRule, DEFAULT_STATUS_RULES: status classification table
"""

from .models import JobResult, JobState, RemoteJob
from .session import JobControlSession
from .status_rules import DEFAULT_STATUS_RULES, StatusRule, classify_status
from .submitter import JobSubmitter, SubmissionOutcome, describe_result

__all__ = [
    "JobControlSession",
    "JobSubmitter",
    "SubmissionOutcome",
    "describe_result",
    "RemoteJob",
    "JobResult",
    "JobState",
    "StatusRule",
    "DEFAULT_STATUS_RULES",
    "classify_status",
]
