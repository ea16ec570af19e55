"""
directory/windows.py – Process enumeration and mitigation policies on Windows.

Processes are listed with psutil.  Each one is opened with
PROCESS_QUERY_LIMITED_INFORMATION and every policy below is read with
kernel32!GetProcessMitigationPolicy:

   0  DEP                      7  ControlFlowGuard
   1  ASLR                     8  Signature
   2  DynamicCode              9  FontDisable
   3  StrictHandleCheck       10  ImageLoad
   4  SystemCallDisable       13  ChildProcess
   6  ExtensionPointDisable

Processes that cannot be opened are not part of the snapshot.  A policy
query that fails on an open handle aborts the whole run.
"""
from __future__ import annotations

import ctypes
import logging
from ctypes import wintypes
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple

import psutil

from procmit.directory import ProcessDirectory
from procmit.errors import ProviderError
from procmit.records import MitigationRecord, ProcessEntry

log = logging.getLogger("procmit.directory.windows")

PROCESS_QUERY_LIMITED_INFORMATION = 0x1000


class Policy(NamedTuple):
    policy_id: int
    name: str
    size: int
    bits: Tuple[Tuple[int, str], ...]   # (bit index in Flags, MitigationRecord field)


POLICIES: Tuple[Policy, ...] = (
    # PROCESS_MITIGATION_DEP_POLICY is { DWORD Flags; BOOLEAN Permanent; }
    Policy(0, "DEP", 8, (
        (0, "dep_enabled"),
        (1, "disable_atl_thunk_emulation"),
    )),
    Policy(1, "ASLR", 4, (
        (0, "enable_bottom_up_randomization"),
        (1, "enable_force_relocate_images"),
        (2, "enable_high_entropy"),
        (3, "disallow_stripped_images"),
    )),
    Policy(2, "DynamicCode", 4, (
        (0, "prohibit_dynamic_code"),
        (1, "allow_thread_opt_out"),
        (2, "allow_remote_downgrade"),
        (3, "audit_prohibit_dynamic_code"),
    )),
    Policy(3, "StrictHandleCheck", 4, (
        (0, "raise_exception_on_invalid_handle_reference"),
        (1, "handle_exceptions_permanently_enabled"),
    )),
    Policy(4, "SystemCallDisable", 4, (
        (0, "disallow_win32k_system_calls"),
        (1, "audit_disallow_win32k_system_calls"),
    )),
    Policy(6, "ExtensionPointDisable", 4, (
        (0, "disable_extension_points"),
    )),
    Policy(7, "ControlFlowGuard", 4, (
        (0, "enable_control_flow_guard"),
        (1, "enable_export_suppression"),
        (2, "strict_mode"),
    )),
    Policy(8, "Signature", 4, (
        (0, "microsoft_signed_only"),
        (1, "store_signed_only"),
        (2, "mitigation_opt_in"),
        (3, "audit_microsoft_signed_only"),
        (4, "audit_store_signed_only"),
    )),
    Policy(9, "FontDisable", 4, (
        (0, "disable_non_system_fonts"),
        (1, "audit_non_system_font_loading"),
    )),
    Policy(10, "ImageLoad", 4, (
        (0, "no_remote_images"),
        (1, "no_low_mandatory_label_images"),
        (2, "prefer_system32_images"),
        (3, "audit_no_remote_images"),
        (4, "audit_no_low_mandatory_label_images"),
    )),
    Policy(13, "ChildProcess", 4, (
        (0, "no_child_process_creation"),
        (1, "audit_no_child_process_creation"),
        (2, "allow_secure_process_creation"),
    )),
)

DEP_POLICY_ID = 0


def decode_policies(raw: Mapping[int, bytes]) -> MitigationRecord:
    """
    Build a MitigationRecord from raw policy buffers keyed by policy id.
    Policies missing from *raw* leave their flags False.
    """
    values: Dict[str, bool] = {}
    for policy in POLICIES:
        buf = raw.get(policy.policy_id)
        if buf is None:
            continue
        flags = int.from_bytes(buf[:4], "little")
        for bit, field_name in policy.bits:
            values[field_name] = bool(flags >> bit & 1)
        if policy.policy_id == DEP_POLICY_ID and len(buf) > 4:
            values["dep_permanent"] = buf[4] != 0
    return MitigationRecord(**values)


# ── kernel32 bindings ─────────────────────────────────────────────────────────

_KERNEL32: Optional[ctypes.WinDLL] = None


def _kernel32() -> "ctypes.WinDLL":
    global _KERNEL32
    if _KERNEL32 is not None:
        return _KERNEL32

    k32 = ctypes.WinDLL("kernel32", use_last_error=True)

    k32.OpenProcess.argtypes = [wintypes.DWORD, wintypes.BOOL, wintypes.DWORD]
    k32.OpenProcess.restype = wintypes.HANDLE

    k32.CloseHandle.argtypes = [wintypes.HANDLE]
    k32.CloseHandle.restype = wintypes.BOOL

    k32.GetProcessMitigationPolicy.argtypes = [
        wintypes.HANDLE,
        ctypes.c_int,
        ctypes.c_void_p,
        ctypes.c_size_t,
    ]
    k32.GetProcessMitigationPolicy.restype = wintypes.BOOL

    _KERNEL32 = k32
    return k32


def open_process(pid: int) -> Optional[int]:
    """Open *pid* for limited query access; None if it cannot be opened."""
    handle = _kernel32().OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
    if not handle:
        log.debug("cannot open PID %d (error %d), skipping", pid, ctypes.get_last_error())
        return None
    return handle


def close_handle(handle: int) -> None:
    _kernel32().CloseHandle(handle)


def query_policy(handle: int, policy: Policy, pid: int) -> bytes:
    buf = ctypes.create_string_buffer(policy.size)
    ok = _kernel32().GetProcessMitigationPolicy(handle, policy.policy_id, buf, policy.size)
    if not ok:
        err = ctypes.get_last_error()
        raise ProviderError(
            f"GetProcessMitigationPolicy({policy.name}) failed for PID {pid} (error {err})"
        )
    return buf.raw


def query_mitigations(handle: int, pid: int) -> MitigationRecord:
    raw = {p.policy_id: query_policy(handle, p, pid) for p in POLICIES}
    return decode_policies(raw)


class WindowsProcessDirectory(ProcessDirectory):
    """Snapshot of every process this user can open for query."""

    def get_processes(self) -> List[ProcessEntry]:
        entries: List[ProcessEntry] = []
        for proc in psutil.process_iter(["pid", "name"]):
            pid = int(proc.info["pid"])
            handle = open_process(pid)
            if handle is None:
                continue
            try:
                name = proc.info.get("name")
                if name is None:
                    raise ProviderError(f"cannot read the image name of PID {pid}")
                record = query_mitigations(handle, pid)
            finally:
                close_handle(handle)
            entries.append(ProcessEntry(pid=pid, name=name, mitigations=record))
        log.debug("enumerated %d process(es)", len(entries))
        return entries
