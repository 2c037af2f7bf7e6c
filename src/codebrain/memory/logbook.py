"""Append-only Markdown logs (changelog.md, decisions.log).

Each entry is a block that starts with ``## <timestamp>`` followed by
``**Key**: value`` lines. The file is the source of truth; the in-memory
sequence is always re-derived by parse_log(). Entries are never rewritten.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from codebrain.errors import ValidationError
from codebrain.storage import append_text, read_text
from codebrain.timestamps import Clock, format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

ENTRY_MARKER = "## "

_MARKER_RE = re.compile(rf"^{re.escape(ENTRY_MARKER)}", re.MULTILINE)
_FIELD_RE = re.compile(r"^(?:- )?\*\*(?P<key>[^*\n]+)\*\*:[ \t]?(?P<value>.*)$")
_LIST_SEPARATOR = ", "

FieldValue = str | Iterable[str]


@dataclass
class LogEntry:
    """One parsed block of a log file."""

    timestamp: str
    fields: dict[str, str] = field(default_factory=dict)
    content: str = ""

    def get(self, key: str, default: str = "") -> str:
        return self.fields.get(key, default)

    def get_list(self, key: str) -> list[str]:
        raw = self.fields.get(key, "")
        return [item.strip() for item in raw.split(_LIST_SEPARATOR.strip()) if item.strip()]

    @property
    def moment(self) -> datetime | None:
        """Timestamp as datetime, or None for hand-written headings."""
        return parse_timestamp(self.timestamp)


def _field_text(key: str, value: FieldValue) -> str:
    if isinstance(value, str):
        text = value
    else:
        items = [str(item) for item in value]
        for item in items:
            if _LIST_SEPARATOR.strip() in item:
                raise ValidationError(
                    f"Items of log field '{key}' must not contain '{_LIST_SEPARATOR.strip()}'",
                    {"item": item[:80]},
                )
        text = _LIST_SEPARATOR.join(items)
    if "\n" in text or "\r" in text:
        raise ValidationError(f"Log field '{key}' must be a single line", {"value": text[:80]})
    return text.strip()


def render_entry(timestamp: str, fields: Mapping[str, FieldValue], *, bullet: str = "") -> str:
    """Render one entry block, including its leading blank line."""
    if not timestamp.strip() or "\n" in timestamp:
        raise ValidationError("Log timestamp must be a non-empty single line")
    lines = [f"{ENTRY_MARKER}{timestamp}"]
    for key, value in fields.items():
        if not key or "*" in key or "\n" in key:
            raise ValidationError(f"Invalid log field name: {key!r}")
        lines.append(f"{bullet}**{key}**: {_field_text(key, value)}")
    return "\n" + "\n".join(lines) + "\n"


def parse_log(text: str) -> list[LogEntry]:
    """Split text on the entry marker and re-derive entries in file order.

    Anything before the first marker (the ``# Title`` preamble) is not an
    entry. Blocks that are empty after trimming are dropped.
    """
    entries: list[LogEntry] = []
    blocks = _MARKER_RE.split(text)
    for block in blocks[1:]:
        block = block.strip()
        if not block:
            continue
        lines = block.split("\n")
        body = [line.rstrip() for line in lines[1:]]
        fields: dict[str, str] = {}
        for line in body:
            m = _FIELD_RE.match(line.strip())
            if m:
                fields[m.group("key").strip()] = m.group("value").strip()
        entries.append(
            LogEntry(timestamp=lines[0].strip(), fields=fields, content="\n".join(body).strip())
        )
    return entries


class LogBook:
    """Repository for one append-only log file."""

    def __init__(
        self,
        path: Path,
        *,
        title: str = "",
        bullet: str = "",
        clock: Clock = utc_now,
    ) -> None:
        self.path = path
        self.title = title
        self.bullet = bullet
        self._clock = clock
        self._last: datetime | None = None

    def load(self) -> list[LogEntry]:
        """Parse the whole log. A missing or unreadable file means "nothing logged yet"."""
        try:
            content = read_text(self.path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s, treating as empty: %s", self.path, e)
            return []
        if content is None:
            return []
        entries = parse_log(content)
        for entry in entries:
            moment = entry.moment
            if moment and (self._last is None or moment > self._last):
                self._last = moment
        logger.debug("Loaded %d entries from %s", len(entries), self.path.name)
        return entries

    def append(self, fields: Mapping[str, FieldValue]) -> LogEntry:
        """Write a new entry at the end of the file. Durable on return."""
        now = self._clock()
        if self._last is not None and now < self._last:
            now = self._last
        block = render_entry(format_timestamp(now), fields, bullet=self.bullet)

        payload = block
        if self.title and (not self.path.exists() or self.path.stat().st_size == 0):
            payload = f"# {self.title}\n{block}"
        append_text(self.path, payload)
        self._last = now
        return parse_log(block)[0]
