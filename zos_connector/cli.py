# zos_connector/cli.py
"""
CLI interface for zos-connector.

Composition root: loads the YAML config, applies command-line overrides,
resolves credentials and hands explicit config objects to the job and SCLM
layers.
"""

import asyncio
import os
from pathlib import Path
from typing import Any, Iterable, Optional

import typer

from zos_connector.config.loader import get_config_path, load_config
from zos_connector.config.schema import (
    JobConfig,
    SCLMConfig,
    ServerConfig,
    ZosConnectorConfig,
)
from zos_connector.errors import PreconditionError, SchemaError, ZosConnectorError
from zos_connector.logging_config import configure_logging
from zos_connector.transport.base import Credentials

app = typer.Typer(
    name="zos-connector",
    help="Submit z/OS jobs over FTP and track SCLM changes.",
    no_args_is_help=True,
)

EXIT_FAILED = 1
EXIT_PRECONDITION = 2
EXIT_NO_CHANGES = 3


def _run(coro):
    """Run async function from sync CLI context."""
    return asyncio.run(coro)


def _override(model, **overrides: Any):
    """Re-validate a config section with the options that were actually given."""
    given = {k: v for k, v in overrides.items() if v is not None}
    return type(model).model_validate({**model.model_dump(), **given})


def _load(config_file: Path | None, json_logs: bool | None = None) -> ZosConnectorConfig:
    try:
        config = load_config(config_file)
    except PreconditionError as e:
        raise _fail(str(e), EXIT_PRECONDITION)
    if json_logs is None:
        json_logs = config.json_logs
    configure_logging(config.verbosity, json_output=json_logs)
    return config


def _credentials(user: str | None, password: str | None) -> Credentials | None:
    if not user or password is None:
        return None
    return Credentials(username=user, password=password)


def _fail(message: str, code: int) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code)


def _print_members(members: Iterable, title: str, date_format: str) -> None:
    """Print members as a rich table on stdout."""
    from rich.console import Console
    from rich.table import Table

    table = Table(title=title)
    for column in ("Edit", "Date", "Member", "Version", "User", "Change group"):
        table.add_column(column)
    for m in members:
        table.add_row(
            m.edit_type.value if m.edit_type else "SAME",
            m.change_date.strftime(date_format),
            m.path,
            str(m.version),
            m.change_user_id,
            m.change_group,
        )
    Console().print(table)


# Options shared by every command that talks to the server
HostOption = typer.Option(None, "--host", "-H", help="LPAR name or IP address")
PortOption = typer.Option(None, "--port", "-p", help="FTP port")
UserOption = typer.Option(None, "--user", "-u", envvar="ZOS_USER", help="Logon user ID")
PasswordOption = typer.Option(
    None, "--password", envvar="ZOS_PASSWORD", help="Logon password (prefer ZOS_PASSWORD)"
)
Level1Option = typer.Option(
    None, "--level1/--level2", help="Server JESINTERFACELEVEL (1 = INPUT/ACTIVE/OUTPUT only)"
)
ActiveOption = typer.Option(None, "--active/--passive", help="FTP data connection mode")
ConfigOption = typer.Option(None, "--config", help="Config file (default: user config dir)")
JsonLogsOption = typer.Option(
    None, "--json-logs/--text-logs", help="Log to stderr as JSON lines"
)


@app.command()
def submit(
    job_file: Path = typer.Argument(..., help="JCL file to submit"),
    host: Optional[str] = HostOption,
    port: Optional[int] = PortOption,
    user: Optional[str] = UserOption,
    password: Optional[str] = PasswordOption,
    level1: Optional[bool] = Level1Option,
    active: Optional[bool] = ActiveOption,
    wait: Optional[bool] = typer.Option(None, "--wait/--no-wait", help="Wait for completion"),
    wait_time: Optional[int] = typer.Option(
        None, "--wait-time", "-t", help="Maximum wait in minutes (0 = forever)"
    ),
    delete: Optional[bool] = typer.Option(
        None, "--delete/--keep", help="Delete job output from spool after fetching"
    ),
    max_cc: Optional[str] = typer.Option(None, "--max-cc", help="Highest acceptable CC"),
    log_to_console: Optional[bool] = typer.Option(
        None, "--log-to-console/--no-log-to-console", help="Print the job log"
    ),
    workspace: Path = typer.Option(Path("."), "--workspace", "-w", help="Where to save the job log"),
    expand_vars: bool = typer.Option(
        True, "--expand-vars/--no-expand-vars", help="Expand $VAR and ${VAR} from the environment"
    ),
    config_file: Optional[Path] = ConfigOption,
    json_logs: Optional[bool] = JsonLogsOption,
):
    """Submit a job, wait for it and fail if its CC exceeds --max-cc."""
    from zos_connector.jobs.submitter import JobSubmitter, expand_variables

    def expand(value):
        return expand_variables(value, os.environ) if expand_vars else value

    config = _load(config_file, json_logs)
    server = _override(
        config.server,
        host=expand(host or config.server.host),
        port=port,
        jes_interface_level1=level1,
        active_mode=active,
    )
    job_config = _override(
        config.job,
        wait=wait,
        wait_time=wait_time,
        delete_from_spool=delete,
        max_cc=expand(max_cc or config.job.max_cc),
        log_to_console=log_to_console,
    )

    job_file = Path(expand(str(job_file)))
    if not job_file.is_file():
        raise _fail(f"Job file not found: {job_file}", EXIT_PRECONDITION)
    jcl = expand(job_file.read_text(encoding="utf-8"))

    submitter = JobSubmitter(server, job_config, echo=typer.echo)
    try:
        _run(submitter.run(jcl, _credentials(user, password), workspace, label=job_file.stem))
    except PreconditionError as e:
        raise _fail(str(e), EXIT_PRECONDITION)
    except ZosConnectorError as e:
        raise _fail(str(e), EXIT_FAILED)


def _sclm_source(
    config: ZosConnectorConfig,
    host: str | None,
    port: int | None,
    level1: bool | None,
    active: bool | None,
    project: str | None,
    alternate: str | None,
    group: str | None,
    types: str | None,
):
    from zos_connector.sclm.source import SCLMSource

    server: ServerConfig = _override(
        config.server, host=host, port=port, jes_interface_level1=level1, active_mode=active
    )
    sclm: SCLMConfig = _override(
        config.sclm, project=project, alternate=alternate, group=group, types=types
    )
    job_config: JobConfig = config.job
    return SCLMSource(server, sclm, job_config), sclm


ProjectOption = typer.Option(None, "--project", help="SCLM project")
AlternateOption = typer.Option(None, "--alternate", help="SCLM alternate project definition")
GroupOption = typer.Option(None, "--group", help="SCLM group")
TypesOption = typer.Option(None, "--types", help="Comma-separated SCLM types")


@app.command()
def poll(
    baseline_file: Path = typer.Option(..., "--baseline", "-b", help="Baseline snapshot JSON"),
    host: Optional[str] = HostOption,
    port: Optional[int] = PortOption,
    user: Optional[str] = UserOption,
    password: Optional[str] = PasswordOption,
    level1: Optional[bool] = Level1Option,
    active: Optional[bool] = ActiveOption,
    project: Optional[str] = ProjectOption,
    alternate: Optional[str] = AlternateOption,
    group: Optional[str] = GroupOption,
    types: Optional[str] = TypesOption,
    config_file: Optional[Path] = ConfigOption,
    json_logs: Optional[bool] = JsonLogsOption,
):
    """Compare the SCLM group with a baseline. Exit 0 on changes, 3 on none."""
    from zos_connector.sclm.state import load_snapshot

    config = _load(config_file, json_logs)
    source, sclm = _sclm_source(
        config, host, port, level1, active, project, alternate, group, types
    )
    try:
        baseline = load_snapshot(baseline_file)
        result = _run(source.compare_remote_revision(baseline, _credentials(user, password)))
    except (PreconditionError, SchemaError) as e:
        raise _fail(str(e), EXIT_PRECONDITION)
    except ZosConnectorError as e:
        raise _fail(str(e), EXIT_FAILED)

    if not result.has_changes:
        typer.echo("No changes.")
        raise typer.Exit(EXIT_NO_CHANGES)
    _print_members(result.changes, "Changed members", sclm.date_format)


@app.command()
def checkout(
    baseline_file: Path = typer.Option(..., "--baseline", "-b", help="Baseline snapshot JSON"),
    changelog_file: Path = typer.Option(
        Path("changelog.xml"), "--changelog", "-c", help="Changelog to write"
    ),
    init: bool = typer.Option(False, "--init", help="Start from an empty baseline if none exists"),
    host: Optional[str] = HostOption,
    port: Optional[int] = PortOption,
    user: Optional[str] = UserOption,
    password: Optional[str] = PasswordOption,
    level1: Optional[bool] = Level1Option,
    active: Optional[bool] = ActiveOption,
    project: Optional[str] = ProjectOption,
    alternate: Optional[str] = AlternateOption,
    group: Optional[str] = GroupOption,
    types: Optional[str] = TypesOption,
    config_file: Optional[Path] = ConfigOption,
    json_logs: Optional[bool] = JsonLogsOption,
):
    """Write the changelog for the current revision and advance the baseline."""
    from zos_connector.sclm.diff import changed_only
    from zos_connector.sclm.models import RevisionSnapshot
    from zos_connector.sclm.state import load_snapshot, save_snapshot

    config = _load(config_file, json_logs)
    source, sclm = _sclm_source(
        config, host, port, level1, active, project, alternate, group, types
    )
    try:
        baseline = load_snapshot(baseline_file)
        if baseline is None and init:
            baseline = RevisionSnapshot.empty()
        current = _run(
            source.checkout(baseline, _credentials(user, password), changelog_file)
        )
    except (PreconditionError, SchemaError) as e:
        raise _fail(str(e), EXIT_PRECONDITION)
    except ZosConnectorError as e:
        raise _fail(str(e), EXIT_FAILED)

    save_snapshot(baseline_file, source.calc_revision())
    typer.echo(
        f"{len(changed_only(current))} changed members written to {changelog_file}; "
        f"baseline {baseline_file} updated."
    )


@app.command()
def changelog(
    changelog_file: Path = typer.Argument(..., help="Changelog XML to display"),
    config_file: Optional[Path] = ConfigOption,
    json_logs: Optional[bool] = JsonLogsOption,
):
    """Display a changelog written by checkout."""
    from zos_connector.sclm.changelog import read_changelog

    config = _load(config_file, json_logs)
    try:
        entries = read_changelog(changelog_file, config.sclm.date_format)
    except (OSError, SchemaError) as e:
        raise _fail(str(e), EXIT_PRECONDITION)

    if not entries:
        typer.echo("Changelog is empty.")
        return
    _print_members(
        [e.member for e in entries], str(changelog_file), config.sclm.date_format
    )


@app.command("config-path")
def config_path():
    """Print the location of the config file."""
    typer.echo(str(get_config_path()))
