# tests/unit/test_status_rules.py
"""Tests for spool status classification and reply parsing."""

import re

import pytest

from zos_connector.jobs.status_rules import (
    DEFAULT_STATUS_RULES,
    CoarseStatus,
    StatusRule,
    classify_status,
    coarse_status,
    find_job_end,
    find_job_id,
    find_spool_entry,
)


class TestClassifyStatus:
    """Ordered rule table applied to the status column."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("USER1 OUTPUT A RC=0000 3 spool files", "0000"),
            ("USER1 OUTPUT A RC=0012 3 spool files", "0012"),
            ("USER1 OUTPUT A ABEND=S0C4 3 spool files", "ABEND_S0C4"),
            ("USER1 OUTPUT A ABEND=U0100 3 spool files", "ABEND_U0100"),
            ("USER1 OUTPUT A (JCL error) 3 spool files", "JCL_ERROR"),
            ("USER1 OUTPUT A RC unknown 1 spool files", "UNKNOWN"),
            ("FROM_JOB_LOG RC=0004 FROM_JOB_LOG", "0004"),
            ("FROM_JOB_LOG ABEND=S806 FROM_JOB_LOG", "ABEND_S806"),
        ],
    )
    def test_known_statuses(self, status, expected):
        assert classify_status(status) == expected

    @pytest.mark.parametrize(
        "status", ["USER1 ACTIVE", "USER1 INPUT A", "", "RC=0000"]
    )
    def test_unclassified(self, status):
        assert classify_status(status) is None

    def test_jcl_error_wins_over_rc(self):
        """Rule order decides when several rules would match."""
        status = "USER1 OUTPUT A (JCL error) RC=0000 3 spool files"
        assert classify_status(status) == "JCL_ERROR"

    def test_custom_rule_table(self):
        rules = (
            StatusRule("cc", re.compile(r".*COND CODE (\d+).*"), lambda m: m.group(1)),
            *DEFAULT_STATUS_RULES,
        )
        assert classify_status("ENDED COND CODE 0008", rules) == "0008"
        assert classify_status("USER1 OUTPUT A RC=0004 1 spool files", rules) == "0004"


class TestCoarseStatus:
    @pytest.mark.parametrize(
        "status,expected",
        [
            ("INPUT", CoarseStatus.WAITING),
            ("ACTIVE   1 spool files", CoarseStatus.WAITING),
            ("OUTPUT   3 spool files", CoarseStatus.OUTPUT),
            ("HELD", None),
        ],
    )
    def test_prefixes(self, status, expected):
        assert coarse_status(status) == expected


class TestSpoolEntry:
    def test_finds_line_by_job_id(self):
        lines = [
            "JOBNAME  JOBID    OWNER    STATUS CLASS",
            "OTHER    JOB00001 USER1    OUTPUT A        RC=0000 1 spool files",
            "MYJOB    JOB01234 USER1    OUTPUT A        RC=0004 3 spool files  ",
        ]
        entry = find_spool_entry(lines, "JOB01234")

        assert entry.job_name == "MYJOB"
        assert entry.status == "USER1    OUTPUT A        RC=0004 3 spool files"

    def test_missing_job(self):
        assert find_spool_entry(["OTHER JOB00001 USER1 ACTIVE"], "JOB01234") is None

    def test_job_id_is_matched_literally(self):
        assert find_spool_entry(["MYJOB JOBX1234 USER1 ACTIVE"], "JOB.1234") is None


class TestJobEnd:
    def test_rc_token(self):
        log = (
            " 13.32.05 JOB01234  IRR010I  USERID USER1 IS ASSIGNED TO THIS JOB.\n"
            " 13.32.06 JOB01234  $HASP395 MYJOB    ENDED - RC=0004\n"
        )
        marker = find_job_end(log, "MYJOB")

        assert marker.rc_token == "RC=0004"
        assert marker.saw_jcl_error is False
        assert marker.as_status() == "FROM_JOB_LOG RC=0004 FROM_JOB_LOG"

    def test_no_rc_after_jcl_error(self):
        log = (
            " IEFC452I MYJOB - JOB NOT RUN - JCL ERROR\n"
            " $HASP395 MYJOB    ENDED\n"
        )
        marker = find_job_end(log, "MYJOB")

        assert marker.rc_token is None
        assert marker.saw_jcl_error is True

    def test_jcl_error_after_termination_is_ignored(self):
        log = " $HASP395 MYJOB    ENDED\n JCL ERROR\n"
        assert find_job_end(log, "MYJOB").saw_jcl_error is False

    def test_other_job_name(self):
        assert find_job_end(" $HASP395 OTHER    ENDED - RC=0000\n", "MYJOB") is None


class TestJobId:
    def test_reply_with_job_id(self):
        reply = ["250-It is known to JES as JOB01234", "250 Transfer completed successfully."]
        assert find_job_id(reply) == "JOB01234"

    def test_reply_without_job_id(self):
        assert find_job_id(["250 Transfer completed successfully."]) is None
