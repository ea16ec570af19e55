"""
records.py – Shared data structures for procmit.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Set


@dataclass(frozen=True)
class MitigationRecord:
    """Mitigation policy flags of one process, as reported at snapshot time."""

    # ── DEP ───────────────────────────────────────────────────────────────────
    dep_enabled: bool = False
    disable_atl_thunk_emulation: bool = False
    dep_permanent: bool = False
    # ── ASLR ──────────────────────────────────────────────────────────────────
    enable_bottom_up_randomization: bool = False
    enable_force_relocate_images: bool = False
    enable_high_entropy: bool = False
    disallow_stripped_images: bool = False
    # ── Dynamic code ──────────────────────────────────────────────────────────
    prohibit_dynamic_code: bool = False
    allow_thread_opt_out: bool = False
    allow_remote_downgrade: bool = False
    audit_prohibit_dynamic_code: bool = False
    # ── Strict handle checks ──────────────────────────────────────────────────
    raise_exception_on_invalid_handle_reference: bool = False
    handle_exceptions_permanently_enabled: bool = False
    # ── Win32k system calls ───────────────────────────────────────────────────
    disallow_win32k_system_calls: bool = False
    audit_disallow_win32k_system_calls: bool = False
    # ── Extension points ──────────────────────────────────────────────────────
    disable_extension_points: bool = False
    # ── Control flow guard ────────────────────────────────────────────────────
    enable_control_flow_guard: bool = False
    enable_export_suppression: bool = False
    strict_mode: bool = False
    # ── Binary signature ──────────────────────────────────────────────────────
    microsoft_signed_only: bool = False
    store_signed_only: bool = False
    mitigation_opt_in: bool = False
    audit_microsoft_signed_only: bool = False
    audit_store_signed_only: bool = False
    # ── Fonts ─────────────────────────────────────────────────────────────────
    disable_non_system_fonts: bool = False
    audit_non_system_font_loading: bool = False
    # ── Image load ────────────────────────────────────────────────────────────
    no_remote_images: bool = False
    no_low_mandatory_label_images: bool = False
    prefer_system32_images: bool = False
    audit_no_remote_images: bool = False
    audit_no_low_mandatory_label_images: bool = False
    # ── Child processes ───────────────────────────────────────────────────────
    no_child_process_creation: bool = False
    audit_no_child_process_creation: bool = False
    allow_secure_process_creation: bool = False


@dataclass(frozen=True)
class ProcessEntry:
    """A single process taken from the snapshot."""

    pid: int
    name: str
    mitigations: MitigationRecord = field(default_factory=MitigationRecord)


def _normalise(value: str) -> str:
    return value.strip().lower()


@dataclass
class FilterCriteria:
    """Selection criteria collected from the command line.

    String sets hold lower-cased values so membership tests are
    case-insensitive as long as probes are lower-cased too.
    """

    pids: Set[int] = field(default_factory=set)
    names: Set[str] = field(default_factory=set)
    mitigations: Set[str] = field(default_factory=set)
    command_lines: Set[str] = field(default_factory=set)

    # ------------------------------------------------------------------ helpers
    def add_pid(self, pid: int) -> None:
        self.pids.add(int(pid))

    def add_name(self, name: str) -> None:
        self.names.add(_normalise(name))

    def add_mitigation(self, name: str) -> None:
        self.mitigations.add(_normalise(name))

    def add_command_line(self, substring: str) -> None:
        self.command_lines.add(_normalise(substring))

    def has_name(self, name: str) -> bool:
        return name.lower() in self.names

    def is_empty(self) -> bool:
        return not (self.pids or self.names or self.mitigations or self.command_lines)

    @classmethod
    def build(
        cls,
        pids: Iterable[int] = (),
        names: Iterable[str] = (),
        mitigations: Iterable[str] = (),
        command_lines: Iterable[str] = (),
    ) -> "FilterCriteria":
        criteria = cls()
        for pid in pids:
            criteria.add_pid(pid)
        for name in names:
            criteria.add_name(name)
        for mitigation in mitigations:
            criteria.add_mitigation(mitigation)
        for substring in command_lines:
            criteria.add_command_line(substring)
        return criteria
