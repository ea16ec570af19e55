"""
cli.py – Command-line interface for procmit.

Usage:
    python -m procmit [OPTIONS]

Options:
    -t, --type NAME    Only show processes with mitigation NAME set (repeatable).
    -f, --filter NAME  Only show processes named NAME (repeatable).
    -p, --pid PID      Only show process PID (repeatable).
    -c, --cmd TEXT     Only show processes whose command line contains TEXT (repeatable).
    -a, --all          Show every mitigation even when filtering with --type.
    -j, --json         Emit the report as JSON.
    -v, --verbose      Debug logging on stderr.
    -h, --help         Show this message and exit.
"""
from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from typing import IO, List, Optional

import psutil

from procmit.directory import ProcessDirectory, get_directory
from procmit.errors import OptionError, ProcmitError, RunResult
from procmit.records import FilterCriteria
from procmit.report import render_report_json, render_report_text
from procmit.selector import effective_show_all, select

log = logging.getLogger("procmit.cli")


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing to stderr and exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise OptionError(message)


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="procmit",
        usage="%(prog)s [options]",
        description="Dump the exploit mitigation policies of running processes.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
        epilog=textwrap.dedent("""\
        Examples:
          python -m procmit                            # every process, every mitigation
          python -m procmit -t EnableControlFlowGuard  # processes with CFG enabled
          python -m procmit -f notepad.exe -a          # all mitigations of notepad.exe
          python -m procmit -c chrome -t prohibitdynamiccode
        """),
    )
    p.add_argument("-t", "--type", dest="types", metavar="NAME", action="append", default=[],
                   help="A filter for processes with a specific mitigation to display")
    p.add_argument("-f", "--filter", dest="names", metavar="NAME", action="append", default=[],
                   help="A filter for the name of a process to display")
    p.add_argument("-p", "--pid", dest="pids", metavar="PID", action="append", default=[], type=int,
                   help="A filter for a specific PID to display")
    p.add_argument("-c", "--cmd", dest="cmds", metavar="TEXT", action="append", default=[],
                   help="A filter for the command line of a process to display")
    p.add_argument("-a", "--all", action="store_true",
                   help="When filtering on mitigation show all process mitigations")
    p.add_argument("-j", "--json", action="store_true", help="Output report as JSON")
    p.add_argument("-v", "--verbose", action="store_true", help="Extra debug output")
    p.add_argument("-h", "--help", action="store_true", help="Show this message and exit")
    return p


def criteria_from_args(args: argparse.Namespace) -> FilterCriteria:
    return FilterCriteria.build(
        pids=args.pids,
        names=args.names,
        mitigations=args.types,
        command_lines=args.cmds,
    )


def run(
    argv: Optional[List[str]] = None,
    directory: Optional[ProcessDirectory] = None,
    out: Optional[IO[str]] = None,
) -> RunResult:
    """Parse *argv*, take the snapshot, filter it and write the report to *out*."""
    if out is None:
        out = sys.stdout
    parser = build_parser()

    try:
        args = parser.parse_args(argv)

        if args.help:
            out.write(parser.format_help())
            return RunResult.success()

        if args.verbose:
            logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s %(message)s")

        criteria = criteria_from_args(args)
        show_all = effective_show_all(criteria, args.all)

        if directory is None:
            directory = get_directory()
        processes = directory.get_processes()
        selected = select(processes, criteria, command_lines=directory.get_command_lines)
        log.debug("%d of %d process(es) selected", len(selected), len(processes))

        if args.json:
            out.write(render_report_json(selected, criteria.mitigations, show_all) + "\n")
        else:
            out.write(render_report_text(selected, criteria.mitigations, show_all))
    except ProcmitError as exc:
        return RunResult.failure(str(exc))
    except (psutil.Error, OSError) as exc:
        return RunResult.failure(str(exc))
    except Exception as exc:
        log.debug("run aborted", exc_info=True)
        return RunResult.failure(str(exc))

    return RunResult.success()


def main(argv: Optional[List[str]] = None) -> int:
    result = run(argv)
    if not result.ok:
        print(result.error)
    return 0


if __name__ == "__main__":
    sys.exit(main())
