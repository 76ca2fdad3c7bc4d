# zos_connector/sclm/source.py
"""
SCLM source: polling and checkout on top of the member listing job.

Poll compares a fresh listing with a baseline; checkout additionally writes
the changelog and keeps the revision until calc_revision() hands it over
(minus deleted members) as the next baseline.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from zos_connector.config.schema import JobConfig, SCLMConfig, ServerConfig
from zos_connector.errors import JobFailedError, PreconditionError
from zos_connector.jobs.session import JobControlSession
from zos_connector.transport.base import Credentials, SessionTransport

from .changelog import ChangeEntry, write_changelog
from .diff import changed_only, diff, remove_deleted
from .listing import build_listing_jcl, parse_listing
from .models import MemberState, RevisionSnapshot

logger = logging.getLogger(__name__)

LOG_PREFIX = "SCLM: "


@dataclass(frozen=True)
class PollResult:
    """Outcome of comparing the remote revision with a baseline."""

    baseline: RevisionSnapshot
    current: RevisionSnapshot

    @property
    def changes(self) -> list[MemberState]:
        return changed_only(self.current)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


class SCLMSource:
    """Fetches SCLM revisions through listing jobs and compares them."""

    def __init__(
        self,
        server: ServerConfig,
        sclm: SCLMConfig,
        job_config: JobConfig | None = None,
        transport_factory: Callable[[], SessionTransport] | None = None,
    ) -> None:
        self._server = server
        self._sclm = sclm
        # The member list comes from the job log, so listing jobs always wait
        base = job_config or JobConfig()
        self._job_config = base.model_copy(update={"wait": True})
        self._transport_factory = transport_factory
        self._current: RevisionSnapshot | None = None

    async def fetch_revision(self, credentials: Credentials | None) -> RevisionSnapshot:
        """
        Run the listing job and parse its log.

        Raises:
            PreconditionError: If credentials are missing
            ZosConnectorError: Subclass matching the failed job outcome
            JobFailedError: If the listing job abended or hit a JCL error
            ProtocolError: If the listing cannot be parsed
        """
        if credentials is None:
            raise PreconditionError("Cannot resolve credentials")

        logger.info(f"{LOG_PREFIX}Will get new revision state.")
        transport = self._transport_factory() if self._transport_factory else None
        session = JobControlSession(
            self._server,
            credentials,
            job_config=self._job_config,
            transport=transport,
            log_prefix=LOG_PREFIX,
        )
        result = await session.submit_job(build_listing_jcl(self._sclm))
        result.raise_for_outcome()
        if not (result.completion_code or "").isdigit():
            # A partial listing would report every missing member as deleted
            raise JobFailedError(
                f"Listing job [{result.job_id}] ended with {result.completion_code}",
                completion_code=result.completion_code or "",
            )
        return parse_listing(result.log_text(self._server.encoding))

    async def compare_remote_revision(
        self, baseline: RevisionSnapshot | None, credentials: Credentials | None
    ) -> PollResult:
        """
        Compare the remote revision with baseline.

        Raises:
            PreconditionError: If baseline or credentials are missing
        """
        if baseline is None:
            raise PreconditionError("No baseline revision to compare with")
        listing = await self.fetch_revision(credentials)
        current = diff(baseline, listing)
        result = PollResult(baseline=baseline, current=current)
        logger.info(f"{LOG_PREFIX}{len(result.changes)} changed members")
        return result

    async def checkout(
        self,
        baseline: RevisionSnapshot | None,
        credentials: Credentials | None,
        changelog_path: Path | None,
    ) -> RevisionSnapshot:
        """
        Compute the new revision and write its changelog.

        An empty changelog is written when nothing changed.

        Returns:
            The annotated revision
        """
        logger.info(f"{LOG_PREFIX}Will checkout")
        result = await self.compare_remote_revision(baseline, credentials)
        self._current = result.current

        if changelog_path is not None:
            entries = [ChangeEntry(m) for m in result.changes]
            write_changelog(changelog_path, entries, self._sclm.date_format)
        return result.current

    def calc_revision(self) -> RevisionSnapshot:
        """
        Revision to store as the next baseline (deleted members dropped).

        Raises:
            PreconditionError: If checkout() has not run
        """
        if self._current is None:
            raise PreconditionError("No revision checked out yet")
        self._current = remove_deleted(self._current)
        return self._current
