# zos_connector/sclm/state.py
"""JSON persistence of revision snapshots (the CLI's baseline store)."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from zos_connector.errors import SchemaError

from .models import EditType, MemberState, RevisionSnapshot

logger = logging.getLogger(__name__)


def member_to_dict(member: MemberState) -> dict[str, Any]:
    return {
        "project": member.project,
        "alternate": member.alternate,
        "group": member.group,
        "type": member.type,
        "name": member.name,
        "version": member.version,
        "change_user_id": member.change_user_id,
        "change_group": member.change_group,
        "change_date": member.change_date.isoformat(),
        "edit_type": member.edit_type.value if member.edit_type else None,
    }


def member_from_dict(data: dict[str, Any]) -> MemberState:
    edit_type = data.get("edit_type")
    return MemberState(
        project=data["project"],
        alternate=data["alternate"],
        group=data["group"],
        type=data["type"],
        name=data["name"],
        version=int(data["version"]),
        change_user_id=data["change_user_id"],
        change_group=data["change_group"],
        change_date=datetime.fromisoformat(data["change_date"]),
        edit_type=EditType(edit_type) if edit_type else None,
    )


def save_snapshot(path: Path, snapshot: RevisionSnapshot) -> None:
    """Write snapshot JSON atomically to avoid partial reads."""
    payload = {"members": [member_to_dict(m) for m in snapshot]}
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    tmp.replace(path)
    logger.info(f"Saved {len(snapshot)} members to {path}")


def load_snapshot(path: Path) -> RevisionSnapshot | None:
    """
    Read a snapshot saved by save_snapshot().

    Returns:
        The snapshot, or None if the file does not exist

    Raises:
        SchemaError: If the file is not a valid snapshot
    """
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return RevisionSnapshot(member_from_dict(m) for m in payload["members"])
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise SchemaError(f"File {path} is not a valid snapshot: {e}") from e
