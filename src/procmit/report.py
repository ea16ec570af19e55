"""
report.py – Text and JSON rendering of selected processes.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Iterable, List, Mapping, Sequence

from procmit.records import ProcessEntry
from procmit.schema import SCHEMA, MitigationAttribute

NAME_WIDTH = 45
PID_WIDTH = 8


def select_attributes(
    mitigation_names: Iterable[str],
    show_all: bool,
    schema: Mapping[str, MitigationAttribute] = SCHEMA,
) -> List[MitigationAttribute]:
    """
    Attributes to display, sorted by display name: the whole schema when
    *show_all*, otherwise only the known names in *mitigation_names*.
    """
    if show_all:
        attrs = list(schema.values())
    else:
        wanted = {n.lower() for n in mitigation_names}
        attrs = [attr for key, attr in schema.items() if key in wanted]
    return sorted(attrs, key=lambda a: a.name)


def format_line(name: str, value: object) -> str:
    return f"- {name:<{NAME_WIDTH}}: {value}"


def render_entry(
    entry: ProcessEntry,
    mitigation_names: Iterable[str],
    show_all: bool,
    schema: Mapping[str, MitigationAttribute] = SCHEMA,
) -> str:
    lines = [f"Process Mitigations: {entry.pid:>{PID_WIDTH}} - {entry.name}"]
    for attr in select_attributes(mitigation_names, show_all, schema):
        lines.append(format_line(attr.name, attr(entry.mitigations)))
    lines.append("")
    return "\n".join(lines) + "\n"


def render_report_text(
    entries: Sequence[ProcessEntry],
    mitigation_names: Iterable[str],
    show_all: bool,
    schema: Mapping[str, MitigationAttribute] = SCHEMA,
) -> str:
    names = list(mitigation_names)
    return "".join(render_entry(e, names, show_all, schema) for e in entries)


def render_report_json(
    entries: Sequence[ProcessEntry],
    mitigation_names: Iterable[str],
    show_all: bool,
    schema: Mapping[str, MitigationAttribute] = SCHEMA,
) -> str:
    ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    attrs = select_attributes(mitigation_names, show_all, schema)
    data = {
        "timestamp": ts,
        "process_count": len(entries),
        "processes": [
            {
                "pid": e.pid,
                "name": e.name,
                "mitigations": {a.name: a(e.mitigations) for a in attrs},
            }
            for e in entries
        ],
    }
    return json.dumps(data, indent=2)
