"""
selector.py – Narrows the process snapshot down to the requested entries.

Stages run in a fixed order and only when their criterion set is non-empty:

  1.  command-line substrings  -> resolved to PIDs, unioned into the PID set
  2.  PID set
  3.  process name set         (case-insensitive)
  4.  mitigation name set      (entry kept if ANY named flag is set)

Across stages the criteria combine with AND; within a set they combine
with OR.  Each stage keeps the relative order of its input.
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from procmit.records import FilterCriteria, ProcessEntry
from procmit.schema import SCHEMA, MitigationAttribute, has_any_mitigation_set

log = logging.getLogger("procmit.selector")

CommandLineSource = Callable[[], Dict[int, str]]


def resolve_command_lines(
    command_lines: Mapping[int, str],
    substrings: Iterable[str],
    own_pid: Optional[int] = None,
) -> Set[int]:
    """
    Return the PIDs whose lower-cased command line contains any of
    *substrings*.  The PID of this tool is never returned.
    """
    if own_pid is None:
        own_pid = os.getpid()
    wanted = [s.lower() for s in substrings]
    matched: Set[int] = set()
    for pid, cmdline in command_lines.items():
        if pid == own_pid:
            continue
        lowered = (cmdline or "").lower()
        if any(s in lowered for s in wanted):
            matched.add(pid)
    return matched


def select(
    processes: Sequence[ProcessEntry],
    criteria: FilterCriteria,
    command_lines: Optional[CommandLineSource] = None,
    own_pid: Optional[int] = None,
    schema: Mapping[str, MitigationAttribute] = SCHEMA,
) -> List[ProcessEntry]:
    """Apply every non-empty filter stage to *processes*."""
    selected = list(processes)
    if criteria.is_empty():
        return selected
    pids = set(criteria.pids)

    # ── 1. Command-line resolution ────────────────────────────────────────────
    if criteria.command_lines:
        if command_lines is None:
            raise ValueError("a command-line source is required to filter on command lines")
        resolved = resolve_command_lines(command_lines(), criteria.command_lines, own_pid)
        log.debug("command-line filter resolved PIDs %s", sorted(resolved))
        pids |= resolved

    # ── 2. PID ────────────────────────────────────────────────────────────────
    if pids:
        selected = [e for e in selected if e.pid in pids]
        log.debug("%d process(es) left after PID filter", len(selected))

    # ── 3. Name ───────────────────────────────────────────────────────────────
    if criteria.names:
        selected = [e for e in selected if criteria.has_name(e.name)]
        log.debug("%d process(es) left after name filter", len(selected))

    # ── 4. Mitigation ─────────────────────────────────────────────────────────
    if criteria.mitigations:
        selected = [
            e for e in selected
            if has_any_mitigation_set(e.mitigations, criteria.mitigations, schema)
        ]
        log.debug("%d process(es) left after mitigation filter", len(selected))

    return selected


def effective_show_all(criteria: FilterCriteria, show_all: bool) -> bool:
    """With no mitigation filter there is nothing to narrow: show everything."""
    return show_all or not criteria.mitigations
