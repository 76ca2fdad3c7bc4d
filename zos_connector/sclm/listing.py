# zos_connector/sclm/listing.py
"""
SCLM member listing job.

The listing job runs FLMCMD DBUTIL once per monitored type with a report
template that writes one ZMEMBER record per accounting entry:

    ZMEMBER project alternate group type member version user changegroup YY/MM/DD HH:MM:SS

parse_listing() reads those records back from the captured job log.
"""

import logging
from datetime import datetime

from zos_connector.config.schema import SCLMConfig
from zos_connector.errors import ProtocolError

from .models import MemberState, RevisionSnapshot

logger = logging.getLogger(__name__)

RECORD_TAG = "ZMEMBER"
TEMPLATE_VARIABLE_MARK = "@@FLM"

REPORT_TEMPLATE = (
    f"{RECORD_TAG} @@FLMPRJ @@FLMALT @@FLMGRP @@FLMTYP @@FLMMBR "
    "@@FLMVER @@FLMUSR @@FLMCGP @@FLMDTC @@FLMTMC"
)

_FIELD_COUNT = 11


def build_listing_jcl(config: SCLMConfig) -> str:
    """Assemble the listing job from the configured header and FLMCMD step."""
    commands = []
    for sclm_type in config.types:
        commands.append(
            f" ISPSTART CMD(FLMCMD DBUTIL,{config.project},{config.alternate},"
            f"{config.group},{sclm_type},*,,,,,,,,,,,,NORMAL,ZFLMRPT,ZFLMTPL)"
        )

    lines = [
        config.job_header,
        config.job_step,
        "//ZFLMTPL  DD  *",
        REPORT_TEMPLATE,
        "/*",
        "//ZFLMRPT  DD SYSOUT=(*)",
        "//SYSTSIN  DD  *",
        *commands,
        "/*",
    ]
    return "\n".join(lines) + "\n"


def _parse_timestamp(date_part: str, time_part: str) -> datetime:
    # Time may carry hundredths (HH:MM:SS.hh)
    time_part = time_part.split(".", 1)[0]
    return datetime.strptime(f"{date_part} {time_part}", "%y/%m/%d %H:%M:%S")


def parse_record(line: str) -> MemberState | None:
    """
    Parse one ZMEMBER record.

    Returns:
        MemberState, or None if the line is not a member record

    Raises:
        ProtocolError: If the record is malformed
    """
    tokens = line.split()
    if not tokens or tokens[0] != RECORD_TAG:
        return None
    if any(TEMPLATE_VARIABLE_MARK in token for token in tokens):
        return None
    if len(tokens) != _FIELD_COUNT:
        raise ProtocolError(f"Malformed member record: '{line.strip()}'")

    _, project, alternate, group, sclm_type, name, version, user, change_group, d, t = tokens
    try:
        return MemberState(
            project=project,
            alternate=alternate,
            group=group,
            type=sclm_type,
            name=name,
            version=int(version),
            change_user_id=user,
            change_group=change_group,
            change_date=_parse_timestamp(d, t),
        )
    except ValueError as e:
        raise ProtocolError(f"Malformed member record: '{line.strip()}': {e}") from e


def parse_listing(text: str) -> RevisionSnapshot:
    """
    Build a snapshot from the log of a listing job.

    Raises:
        ProtocolError: On malformed or duplicate records
    """
    members = []
    for line in text.splitlines():
        member = parse_record(line)
        if member is not None:
            members.append(member)

    try:
        snapshot = RevisionSnapshot(members)
    except ValueError as e:
        raise ProtocolError(str(e)) from e

    logger.info(f"Parsed {len(snapshot)} members from listing")
    return snapshot
