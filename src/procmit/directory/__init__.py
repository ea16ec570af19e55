"""
directory – Enumerates live processes together with their mitigation records.

The concrete directory is chosen from the running platform.  Mitigation
policies are a Windows facility; elsewhere the directory can still resolve
command lines but refuses to enumerate processes.
"""
from __future__ import annotations

import logging
import platform
from typing import Dict, List, Optional

import psutil

from procmit.errors import ProviderError
from procmit.records import ProcessEntry

log = logging.getLogger("procmit.directory")


def get_command_lines() -> Dict[int, str]:
    """
    Map every live PID to its command line.  Unreadable command lines map
    to "" and processes that exit mid-iteration are left out.
    """
    cmdlines: Dict[int, str] = {}
    for proc in psutil.process_iter(["pid", "cmdline"]):
        cmdlines[int(proc.info["pid"])] = " ".join(proc.info.get("cmdline") or [])
    log.debug("collected %d command line(s)", len(cmdlines))
    return cmdlines


class ProcessDirectory:
    """Snapshot source for ProcessEntry objects and command lines."""

    def get_processes(self) -> List[ProcessEntry]:
        raise NotImplementedError

    def get_command_lines(self) -> Dict[int, str]:
        return get_command_lines()


class UnsupportedProcessDirectory(ProcessDirectory):
    def __init__(self, system: str) -> None:
        self.system = system or "this platform"

    def get_processes(self) -> List[ProcessEntry]:
        raise ProviderError(
            f"Process mitigation policies cannot be queried on {self.system}; "
            f"they are only available on Windows."
        )


def get_directory(system: Optional[str] = None) -> ProcessDirectory:
    """Return the ProcessDirectory for *system* (default: the running one)."""
    if system is None:
        system = platform.system()
    if system == "Windows":
        from procmit.directory.windows import WindowsProcessDirectory
        return WindowsProcessDirectory()
    return UnsupportedProcessDirectory(system)
