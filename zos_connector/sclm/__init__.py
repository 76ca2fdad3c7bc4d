# zos_connector/sclm/__init__.py
"""
SCLM revision tracking.

Exports:
    - MemberState, RevisionSnapshot, EditType: revision data model
    - diff, changed_only, remove_deleted: revision comparison
    - encode, decode, ChangeEntry: changelog document codec
    - SCLMSource: polling and checkout through listing jobs
"""

from .changelog import ChangeEntry, decode, encode, read_changelog, write_changelog
from .diff import changed_only, diff, remove_deleted
from .listing import build_listing_jcl, parse_listing
from .models import EditType, MemberState, RevisionSnapshot, canonical_order
from .source import PollResult, SCLMSource
from .state import load_snapshot, save_snapshot

__all__ = [
    "EditType",
    "MemberState",
    "RevisionSnapshot",
    "canonical_order",
    "diff",
    "changed_only",
    "remove_deleted",
    "ChangeEntry",
    "encode",
    "decode",
    "read_changelog",
    "write_changelog",
    "build_listing_jcl",
    "parse_listing",
    "PollResult",
    "SCLMSource",
    "load_snapshot",
    "save_snapshot",
]
