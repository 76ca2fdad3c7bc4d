# zos_connector/sclm/diff.py
"""Revision comparison: classify members as added, edited or deleted."""

import logging

from .models import EditType, MemberState, RevisionSnapshot, canonical_order

logger = logging.getLogger(__name__)


def diff(baseline: RevisionSnapshot, current: RevisionSnapshot) -> RevisionSnapshot:
    """
    Annotate current against baseline.

    - in current only: ADD
    - in both, version or change date differs: the edit type reported by the
      listing if any, otherwise EDIT
    - in both, unchanged: no edit type
    - in baseline only: DELETE, carrying the baseline attributes

    Baseline members already marked DELETE count as absent.
    """
    live_baseline = {m.key: m for m in baseline if m.edit_type != EditType.DELETE}
    result: list[MemberState] = []

    for member in current:
        if member.edit_type == EditType.DELETE:
            # Listing reports the deletion itself; keep it only if the member was live
            if member.key in live_baseline:
                result.append(member)
            continue

        previous = live_baseline.get(member.key)
        if previous is None:
            result.append(member.with_edit_type(EditType.ADD))
        elif previous.version != member.version or previous.change_date != member.change_date:
            result.append(member.with_edit_type(member.edit_type or EditType.EDIT))
        else:
            result.append(member.with_edit_type(None))

    for key, previous in live_baseline.items():
        if key not in current:
            result.append(previous.with_edit_type(EditType.DELETE))

    annotated = RevisionSnapshot(result)
    logger.debug(
        f"Compared {len(baseline)} baseline members with {len(current)} current members: "
        f"{len(changed_only(annotated))} changed"
    )
    return annotated


def changed_only(snapshot: RevisionSnapshot) -> list[MemberState]:
    """Members with an edit type, in canonical order."""
    return canonical_order(m for m in snapshot if m.edit_type is not None)


def remove_deleted(snapshot: RevisionSnapshot) -> RevisionSnapshot:
    """Snapshot without DELETE members, ready to serve as the next baseline."""
    return RevisionSnapshot(m for m in snapshot if m.edit_type != EditType.DELETE)
