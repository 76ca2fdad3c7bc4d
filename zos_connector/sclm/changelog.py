# zos_connector/sclm/changelog.py
"""
Changelog document codec.

The document is the XML contract read back later for display only:

    <?xml version="1.0" encoding="UTF-8"?>
    <changelog>
        <entry>
            <date/> <project/> <alternate/> <group/> <type/> <name/>
            <version/> <userID/> <changeGroup/> <editType/>
        </entry>
    </changelog>

Decoding fails closed: unknown fields inside an entry are errors.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable
from xml.sax.saxutils import escape

from zos_connector.config.schema import DEFAULT_DATE_FORMAT
from zos_connector.errors import SchemaError

from .models import SAME, EditType, MemberState

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

ENTRY_FIELDS = (
    "date",
    "project",
    "alternate",
    "group",
    "type",
    "name",
    "version",
    "userID",
    "changeGroup",
    "editType",
)


@dataclass(frozen=True)
class ChangeEntry:
    """A member as written to the changelog; a missing edit type reads as SAME."""

    member: MemberState

    @property
    def edit_tag(self) -> str:
        return self.member.edit_type.value if self.member.edit_type else SAME


def encode(entries: Iterable[ChangeEntry], date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Render entries, in the given order, as a changelog document."""
    lines = [XML_DECLARATION, "<changelog>"]
    for entry in entries:
        m = entry.member
        values = (
            m.change_date.strftime(date_format),
            m.project,
            m.alternate,
            m.group,
            m.type,
            m.name,
            str(m.version),
            m.change_user_id,
            m.change_group,
            entry.edit_tag,
        )
        lines.append("\t<entry>")
        for tag, value in zip(ENTRY_FIELDS, values):
            lines.append(f"\t\t<{tag}>{escape(value)}</{tag}>")
        lines.append("\t</entry>")
    lines.append("</changelog>")
    return "\n".join(lines) + "\n"


def decode(
    document: str | bytes,
    date_format: str = DEFAULT_DATE_FORMAT,
    source: str = "<string>",
) -> list[ChangeEntry]:
    """
    Parse a changelog document.

    Args:
        document: XML text
        date_format: strptime format of the <date> field
        source: Name of the document used in error messages

    Raises:
        SchemaError: Malformed XML, no changelog element, unknown entry field
            or an invalid field value
    """
    if isinstance(document, str):
        document = document.encode("utf-8")
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise SchemaError(f"Failed to parse {source}: {e}") from e

    changelog = root if root.tag == "changelog" else root.find("changelog")
    if changelog is None:
        raise SchemaError(f"File {source} is not a valid changelog file")

    entries = []
    for element in changelog:
        if element.tag != "entry":
            continue
        entries.append(ChangeEntry(_decode_entry(element, date_format, source)))
    return entries


def _decode_entry(element: ET.Element, date_format: str, source: str) -> MemberState:
    fields = dict.fromkeys(ENTRY_FIELDS, "")
    for child in element:
        if child.tag not in fields:
            raise SchemaError(f"Unexpected node {child.tag} in {source}")
        fields[child.tag] = child.text or ""

    try:
        change_date = datetime.strptime(fields["date"].strip(), date_format)
    except ValueError as e:
        raise SchemaError(f"Invalid date '{fields['date']}' in {source}") from e

    try:
        version = int(fields["version"].strip())
    except ValueError as e:
        raise SchemaError(f"Invalid version '{fields['version']}' in {source}") from e

    tag = fields["editType"].strip() or SAME
    if tag == SAME:
        edit_type = None
    else:
        try:
            edit_type = EditType(tag)
        except ValueError as e:
            raise SchemaError(f"Invalid editType '{tag}' in {source}") from e

    return MemberState(
        project=fields["project"],
        alternate=fields["alternate"],
        group=fields["group"],
        type=fields["type"],
        name=fields["name"],
        version=version,
        change_user_id=fields["userID"],
        change_group=fields["changeGroup"],
        change_date=change_date,
        edit_type=edit_type,
    )


def write_changelog(
    path: Path, entries: Iterable[ChangeEntry], date_format: str = DEFAULT_DATE_FORMAT
) -> None:
    """Write a changelog document as UTF-8."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(encode(entries, date_format), encoding="utf-8")
    logger.info(f"Wrote changelog {path}")


def read_changelog(path: Path, date_format: str = DEFAULT_DATE_FORMAT) -> list[ChangeEntry]:
    """Read a changelog document; errors name the file."""
    return decode(path.read_bytes(), date_format, source=str(path))
