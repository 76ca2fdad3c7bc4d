# zos_connector/config/schema.py
"""
Pydantic configuration models for zos-connector.

All models use extra="ignore" to allow unknown YAML keys without crashing.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_JOB_HEADER = (
    "//JENKINS  JOB (ACCOUNT),'JENKINS',                             \n"
    "// MSGCLASS=A,CLASS=A,NOTIFY=&SYSUID"
)

DEFAULT_JOB_STEP = (
    "//SCLMEX   EXEC PGM=IKJEFT01,REGION=4096K,TIME=1439,DYNAMNBR=200\n"
    "//STEPLIB  DD DSN=ISP.SISPLPA,DISP=SHR                          \n"
    "//         DD DSN=ISP.SISPLOAD,DISP=SHR                         \n"
    "//ISPMLIB  DD DSN=ISP.SISPMENU,DISP=SHR                         \n"
    "//ISPSLIB  DD DSN=ISP.SISPSENU,DISP=SHR                         \n"
    "//         DD DSN=ISP.SISPSLIB,DISP=SHR                         \n"
    "//ISPPLIB  DD DSN=ISP.SISPPENU,DISP=SHR                         \n"
    "//ISPTLIB  DD UNIT=@TEMP0,DISP=(NEW,PASS),SPACE=(CYL,(1,1,5)),  \n"
    "//            DCB=(LRECL=80,BLKSIZE=19040,DSORG=PO,RECFM=FB),   \n"
    "//            DSN=                                              \n"
    "//         DD DSN=ISP.SISPTENU,DISP=SHR                         \n"
    "//ISPTABL  DD UNIT=@TEMP0,DISP=(NEW,PASS),SPACE=(CYL,(1,1,5)),  \n"
    "//            DCB=(LRECL=80,BLKSIZE=19040,DSORG=PO,RECFM=FB),   \n"
    "//            DSN=                                              \n"
    "//ISPPROF  DD UNIT=@TEMP0,DISP=(NEW,PASS),SPACE=(CYL,(1,1,5)),  \n"
    "//            DCB=(LRECL=80,BLKSIZE=19040,DSORG=PO,RECFM=FB),   \n"
    "//            DSN=                                              \n"
    "//ISPLOG   DD SYSOUT=*,                                         \n"
    "//            DCB=(LRECL=120,BLKSIZE=2400,DSORG=PS,RECFM=FB)    \n"
    "//ISPCTL1  DD DISP=NEW,UNIT=@TEMP0,SPACE=(CYL,(1,1)),           \n"
    "//            DCB=(LRECL=80,BLKSIZE=800,RECFM=FB)               \n"
    "//SYSTERM  DD SYSOUT=*                                          \n"
    "//SYSPROC  DD DSN=ISP.SISPCLIB,DISP=SHR                         \n"
    "//FLMMSGS  DD SYSOUT=(*)                                        \n"
    "//PASCERR  DD SYSOUT=(*)                                        \n"
    "//ZFLMDD   DD  *                                                \n"
    "   ZFLMNLST=FLMNLENU    ZFLMTRMT=ISR3278    ZDATEF=YY/MM/DD     \n"
    "/*                                                              \n"
    "//SYSPRINT DD SYSOUT=(*)                                        \n"
    "//SYSTSPRT DD SYSOUT=(*)"
)

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_WHITESPACE = re.compile(r"\s")


def _strip_all_whitespace(value: str) -> str:
    return _WHITESPACE.sub("", value or "")


def normalize_max_cc(value: str | int | None) -> str:
    """Pad a MaxCC threshold to four characters ('' -> '0000', '4' -> '0004')."""
    value = "" if value is None else str(value).strip()
    if not value:
        return "0000"
    return value.rjust(4, "0")


class ServerConfig(BaseModel):
    """Connection settings for the z/OS FTP server."""

    model_config = ConfigDict(extra="ignore")

    host: str = Field(default="", description="LPAR name or IP address")
    port: int = Field(default=21, ge=1, le=65535, description="FTP port")
    jes_interface_level1: bool = Field(
        default=False,
        description="Server runs with JESINTERFACELEVEL=1 (INPUT/ACTIVE/OUTPUT statuses only)",
    )
    active_mode: bool = Field(
        default=False, description="Use active FTP data connections (False = passive)"
    )
    timeout: int = Field(default=30, ge=1, description="Socket timeout in seconds")
    encoding: str = Field(
        default="latin-1", description="Encoding used to decode spool output"
    )

    @field_validator("host")
    @classmethod
    def _strip_host(cls, value: str) -> str:
        return _strip_all_whitespace(value)


class JobConfig(BaseModel):
    """Job submission and polling behaviour."""

    model_config = ConfigDict(extra="ignore")

    wait: bool = Field(default=True, description="Wait for job completion")
    wait_time: int = Field(
        default=0, ge=0, description="Maximum wait in minutes (0 = wait forever)"
    )
    delete_from_spool: bool = Field(
        default=False, description="Delete the job output from spool once fetched"
    )
    max_cc: str = Field(
        default="0000", description="Highest condition code still treated as success"
    )
    poll_interval: float = Field(
        default=10.0, ge=0.0, description="Seconds between status polls"
    )
    log_to_console: bool = Field(
        default=False, description="Echo the captured job log to stdout"
    )
    submit_name: str = Field(
        default="jenkins.sub", description="Spool file name used when storing the JCL"
    )

    @field_validator("max_cc", mode="before")
    @classmethod
    def _pad_max_cc(cls, value: str | int | None) -> str:
        return normalize_max_cc(value)


class SCLMConfig(BaseModel):
    """SCLM project coordinates and the JCL used to list its members."""

    model_config = ConfigDict(extra="ignore")

    project: str = Field(default="", description="SCLM project name")
    alternate: str = Field(default="", description="Alternate project definition")
    group: str = Field(default="", description="SCLM group to monitor")
    types: list[str] = Field(default_factory=list, description="SCLM types to monitor")
    job_header: str = Field(default=DEFAULT_JOB_HEADER, description="JOB card")
    job_step: str = Field(default=DEFAULT_JOB_STEP, description="FLMCMD invocation step")
    date_format: str = Field(
        default=DEFAULT_DATE_FORMAT, description="strftime format for changelog dates"
    )

    @field_validator("project", "alternate", "group")
    @classmethod
    def _strip_names(cls, value: str) -> str:
        return _strip_all_whitespace(value)

    @field_validator("types", mode="before")
    @classmethod
    def _split_types(cls, value: str | list[str] | None) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        types = [_strip_all_whitespace(t) for t in value]
        return [t for t in types if t]

    @field_validator("job_header", mode="before")
    @classmethod
    def _default_header(cls, value: str | None) -> str:
        return value.strip() if value and value.strip() else DEFAULT_JOB_HEADER

    @field_validator("job_step", mode="before")
    @classmethod
    def _default_step(cls, value: str | None) -> str:
        return value.strip() if value and value.strip() else DEFAULT_JOB_STEP


class ZosConnectorConfig(BaseModel):
    """Root configuration for zos-connector."""

    model_config = ConfigDict(extra="ignore")

    server: ServerConfig = Field(default_factory=ServerConfig)
    job: JobConfig = Field(default_factory=JobConfig)
    sclm: SCLMConfig = Field(default_factory=SCLMConfig)
    verbosity: Literal["quiet", "normal", "verbose"] = Field(
        default="normal", description="Logging verbosity level"
    )
    json_logs: bool = Field(default=False, description="Log to stderr as JSON lines")
