# zos_connector/sclm/models.py
"""
SCLM member state and revision snapshots.

A RevisionSnapshot is an immutable, canonically ordered set of MemberState
entries keyed by (project, alternate, group, type, name).
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator

MemberKey = tuple[str, str, str, str, str]

SAME = "SAME"


class EditType(Enum):
    """Edit classification of a member between two revisions."""

    ADD = "ADD"
    EDIT = "EDIT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class MemberState:
    """One SCLM member as listed at a point in time."""

    project: str
    alternate: str
    group: str
    type: str
    name: str
    version: int
    change_user_id: str
    change_group: str
    change_date: datetime
    edit_type: EditType | None = None

    @property
    def key(self) -> MemberKey:
        return (self.project, self.alternate, self.group, self.type, self.name)

    @property
    def path(self) -> str:
        return f"{self.project}.{self.alternate}.{self.group}.{self.type}({self.name})"

    def with_edit_type(self, edit_type: EditType | None) -> "MemberState":
        return replace(self, edit_type=edit_type)

    def __str__(self) -> str:
        tag = self.edit_type.value if self.edit_type else SAME
        return (
            f"{tag}: {self.path} v{self.version} "
            f"by {self.change_user_id} ({self.change_group}) at {self.change_date}"
        )


def _secondary_key(member: MemberState) -> tuple:
    edit = member.edit_type.value if member.edit_type else ""
    return (
        member.project,
        member.alternate,
        member.group,
        member.type,
        member.name,
        member.version,
        member.change_user_id,
        member.change_group,
        edit,
    )


def canonical_order(members: Iterable[MemberState]) -> list[MemberState]:
    """
    Sort members most recent first.

    Ties on change_date are broken by project, alternate, group, type, name,
    version (and the remaining fields), so any permutation of the same input
    sorts to the same sequence.
    """
    by_secondary = sorted(members, key=_secondary_key)
    return sorted(by_secondary, key=lambda m: m.change_date, reverse=True)


class RevisionSnapshot:
    """Immutable listing of SCLM members in canonical order."""

    __slots__ = ("_members", "_by_key")

    def __init__(self, members: Iterable[MemberState] = ()) -> None:
        """
        Build a snapshot.

        Raises:
            ValueError: If two members share the same key
        """
        ordered = canonical_order(members)
        by_key: dict[MemberKey, MemberState] = {}
        for member in ordered:
            if member.key in by_key:
                raise ValueError(f"Duplicate member in snapshot: {member.path}")
            by_key[member.key] = member
        self._members = tuple(ordered)
        self._by_key = by_key

    @classmethod
    def empty(cls) -> "RevisionSnapshot":
        return cls()

    @property
    def members(self) -> tuple[MemberState, ...]:
        return self._members

    def get(self, key: MemberKey) -> MemberState | None:
        return self._by_key.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __iter__(self) -> Iterator[MemberState]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RevisionSnapshot):
            return NotImplemented
        return self._members == other._members

    def __hash__(self) -> int:
        return hash(self._members)

    def __repr__(self) -> str:
        return f"RevisionSnapshot({len(self._members)} members)"
