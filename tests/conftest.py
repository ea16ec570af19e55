"""
Pytest configuration and shared fixtures for procmit tests.

None of the fixtures touch the real process table: the snapshot comes from
a FakeDirectory that hands back prepared entries and command lines.
"""

from typing import Dict, List

import pytest

from procmit.directory import ProcessDirectory
from procmit.records import MitigationRecord, ProcessEntry
from procmit.schema import build_schema


class FakeDirectory(ProcessDirectory):
    """In-memory ProcessDirectory that counts how often it is queried."""

    def __init__(self, processes: List[ProcessEntry], command_lines: Dict[int, str] = None):
        self.processes = list(processes)
        self.command_lines = dict(command_lines or {})
        self.process_calls = 0
        self.command_line_calls = 0

    def get_processes(self) -> List[ProcessEntry]:
        self.process_calls += 1
        return list(self.processes)

    def get_command_lines(self) -> Dict[int, str]:
        self.command_line_calls += 1
        return dict(self.command_lines)


# ===========================================================================
# Record / entry fixtures
# ===========================================================================

@pytest.fixture
def dep_only() -> MitigationRecord:
    return MitigationRecord(dep_enabled=True, dep_permanent=True)


@pytest.fixture
def aslr_only() -> MitigationRecord:
    return MitigationRecord(enable_bottom_up_randomization=True, enable_high_entropy=True)


@pytest.fixture
def entries(dep_only, aslr_only) -> List[ProcessEntry]:
    """Two processes: pid 1 has DEP, pid 2 has ASLR."""
    return [
        ProcessEntry(pid=1, name="a", mitigations=dep_only),
        ProcessEntry(pid=2, name="b", mitigations=aslr_only),
    ]


@pytest.fixture
def command_lines() -> Dict[int, str]:
    return {1: "C:\\win\\notepad.exe", 2: "cmd.exe"}


@pytest.fixture
def directory(entries, command_lines) -> FakeDirectory:
    return FakeDirectory(entries, command_lines)


@pytest.fixture
def fake_directory_cls():
    return FakeDirectory


# ===========================================================================
# Two-flag schema mirroring the DEP / ASLR example
# ===========================================================================

@pytest.fixture
def small_schema():
    return build_schema({
        "DEP": lambda m: m.dep_enabled,
        "ASLR": lambda m: m.enable_bottom_up_randomization,
    })
