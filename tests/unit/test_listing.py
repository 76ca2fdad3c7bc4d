# tests/unit/test_listing.py
"""Tests for the SCLM member listing job and its report parser."""

from datetime import datetime

import pytest

from zos_connector.config.schema import DEFAULT_JOB_HEADER, SCLMConfig
from zos_connector.errors import ProtocolError
from zos_connector.sclm.listing import (
    REPORT_TEMPLATE,
    build_listing_jcl,
    parse_listing,
    parse_record,
)

RECORD = "ZMEMBER PROJ PROJ DEV1 COBOL PGM1 3 USER1 DEV1 26/10/19 08:30:15.42"

LISTING_LOG = f"""\
 1 //JENKINS  JOB (ACCOUNT),'JENKINS',
 ZMEMBER @@FLMPRJ @@FLMALT @@FLMGRP @@FLMTYP @@FLMMBR @@FLMVER @@FLMUSR @@FLMCGP @@FLMDTC @@FLMTMC
{RECORD}
ZMEMBER PROJ PROJ DEV1 COBOL PGM2 1 USER2 DEV1 26/10/18 17:00:00
ZMEMBER PROJ PROJ DEV1 ASM   MAC1 5 USER1 DEV1 26/09/01 07:15:00
 FLM55000 - ACCOUNTING INFORMATION RETRIEVED
"""


class TestBuildJcl:
    def test_one_command_per_type(self):
        config = SCLMConfig(project="PROJ", alternate="ALT", group="DEV1", types="COBOL, ASM")

        jcl = build_listing_jcl(config)

        assert jcl.startswith(DEFAULT_JOB_HEADER)
        assert REPORT_TEMPLATE in jcl
        assert "FLMCMD DBUTIL,PROJ,ALT,DEV1,COBOL,*," in jcl
        assert "FLMCMD DBUTIL,PROJ,ALT,DEV1,ASM,*," in jcl
        assert jcl.count("ISPSTART") == 2
        assert jcl.endswith("/*\n")

    def test_custom_header(self):
        config = SCLMConfig(project="P", group="G", types=["T"], job_header="//MYJOB JOB 1")
        assert build_listing_jcl(config).startswith("//MYJOB JOB 1\n")


class TestParseRecord:
    def test_record(self):
        m = parse_record(RECORD)

        assert m.path == "PROJ.PROJ.DEV1.COBOL(PGM1)"
        assert m.version == 3
        assert m.change_user_id == "USER1"
        assert m.change_group == "DEV1"
        assert m.change_date == datetime(2026, 10, 19, 8, 30, 15)
        assert m.edit_type is None

    @pytest.mark.parametrize(
        "line",
        ["", " FLM55000 - DONE", REPORT_TEMPLATE, "XMEMBER A B C D E 1 U G 26/10/19 08:30:15"],
    )
    def test_non_records(self, line):
        assert parse_record(line) is None

    @pytest.mark.parametrize(
        "line",
        [
            "ZMEMBER PROJ PROJ DEV1 COBOL PGM1 3 USER1",
            "ZMEMBER PROJ PROJ DEV1 COBOL PGM1 x USER1 DEV1 26/10/19 08:30:15",
            "ZMEMBER PROJ PROJ DEV1 COBOL PGM1 3 USER1 DEV1 26-10-19 08:30:15",
        ],
    )
    def test_malformed(self, line):
        with pytest.raises(ProtocolError):
            parse_record(line)


class TestParseListing:
    def test_listing(self):
        snapshot = parse_listing(LISTING_LOG)

        assert [m.name for m in snapshot] == ["PGM1", "PGM2", "MAC1"]

    def test_duplicate_member(self):
        with pytest.raises(ProtocolError, match="Duplicate member"):
            parse_listing(f"{RECORD}\n{RECORD}\n")

    def test_empty_log(self):
        assert len(parse_listing("")) == 0
