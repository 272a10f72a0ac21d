#!/usr/bin/env python3
"""Command-line dashboard for ASHA workers.

Usage:
    asha-dashboard roster                   # Assigned mothers
    asha-dashboard flagged                  # Mothers needing follow-up
    asha-dashboard call-logs                # Recent IVR call logs
    asha-dashboard show m-001               # One mother's profile
    asha-dashboard visit m-001              # Mark visited (clears flag)
    asha-dashboard toggle-flag m-001        # Flag / unflag
    asha-dashboard call m-001               # Single IVR call
    asha-dashboard call-all                 # IVR call to the whole roster
    asha-dashboard export --output out/     # Roster CSV
    asha-dashboard serve                    # Run the HTTP API

Credentials default to the demo account, which only the mock backend knows.

Each invocation builds its own backend. With ``backend.provider: mock`` the
demo roster lives in memory for that one command, so ``visit`` followed by
``roster`` shows the original roster again. To try changes across several
actions against the mock backend, run ``serve`` and use the HTTP API or
``streamlit run scripts/dashboard.py``.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable

from asha_dashboard.calls.workflow import CallReport
from asha_dashboard.clients.factory import create_backend
from asha_dashboard.clients.sample_data import DEMO_ASHA, DEMO_PASSWORD
from asha_dashboard.config import get_settings
from asha_dashboard.core.exceptions import CallError, DashboardError
from asha_dashboard.core.log import get_logger, setup_logging
from asha_dashboard.models import CallOutcome, Patient
from asha_dashboard.services.export import write_roster_csv
from asha_dashboard.services.formatting import (
    format_anc_date,
    notes_text,
    visit_status,
    yes_no,
)
from asha_dashboard.services.roster import RosterService
from asha_dashboard.services.session import login

log = get_logger(__name__)

RosterAction = Callable[[RosterService, argparse.Namespace], Awaitable[int]]


# =============================================================================
# Output helpers
# =============================================================================


def _print_roster(mothers: list[Patient]) -> None:
    if not mothers:
        print("  (none)")
        return
    for m in mothers:
        flag = "FLAG" if m.flagged else "    "
        print(
            f"  {flag}  {m.id:<8} {m.name:<22} {m.age:>3}y  {m.phone:<14} "
            f"{m.gestation_weeks:>2}w  {visit_status(m.visited)}"
        )


def _print_profile(m: Patient) -> None:
    print(f"\n=== {m.name} ({m.id}) ===\n")
    print(f"Age:              {m.age}")
    print(f"Phone:            {m.phone}")
    print(f"Address:          {m.address}")
    print(f"Last ANC Date:    {format_anc_date(m.last_anc_date)}")
    print(f"Gestation Weeks:  {m.gestation_weeks}")
    print(f"Flagged:          {yes_no(m.flagged)}")
    print(f"Status:           {visit_status(m.visited)}")
    print(f"Notes:            {notes_text(m.notes)}")


def _print_progress(patient_id: str, outcome: CallOutcome | CallError) -> None:
    if isinstance(outcome, CallOutcome):
        print(f"  {patient_id:<8} {outcome.value}")
    else:
        print(f"  {patient_id:<8} FAILED ({outcome.error_code}: {outcome.message})")


def _print_report(report: CallReport) -> None:
    print(f"\nDialed: {report.calls.dialed}")
    if report.calls.duplicates:
        print(f"Skipped duplicates: {', '.join(report.calls.duplicates)}")
    if report.to_flag:
        print(f"Flagged for follow-up: {', '.join(sorted(report.to_flag))}")
    else:
        print("No follow-up needed")
    if report.flags.failed:
        print(f"Flag updates failed: {', '.join(sorted(report.flags.failed))}")


# =============================================================================
# Commands
# =============================================================================


async def show_roster(roster: RosterService, args: argparse.Namespace) -> int:
    print(f"\n{roster.session.header(len(roster.state.mothers))}\n")
    _print_roster(roster.state.mothers)
    return 0


async def show_flagged(roster: RosterService, args: argparse.Namespace) -> int:
    print(f"\nFlagged Mothers ({len(roster.state.flagged)})\n")
    _print_roster(roster.state.flagged)
    return 0


async def show_call_logs(roster: RosterService, args: argparse.Namespace) -> int:
    print("\nRecent IVR Call Logs\n")
    if not roster.state.call_logs:
        print("  (none)")
    for entry in roster.state.call_logs:
        name = roster.state.mother_name(entry.mother_id) or entry.mother_id
        print(f"  {entry.timestamp:%Y-%m-%d %H:%M}  {name:<22} {entry.outcome.value}")
    return 0


async def show_mother(roster: RosterService, args: argparse.Namespace) -> int:
    mother = await roster.get_mother(args.mother_id)
    if mother is None:
        print(f"Mother not found: {args.mother_id}", file=sys.stderr)
        return 1
    _print_profile(mother)
    return 0


async def mark_visited(roster: RosterService, args: argparse.Namespace) -> int:
    updated = await roster.mark_visited(args.mother_id)
    if updated is None:
        print(f"Could not mark {args.mother_id} as visited", file=sys.stderr)
        return 1
    print(f"[OK] {updated.name} marked as visited")
    return 0


async def toggle_flag(roster: RosterService, args: argparse.Namespace) -> int:
    updated = await roster.toggle_flag(args.mother_id)
    if updated is None:
        print(f"Could not toggle flag for {args.mother_id}", file=sys.stderr)
        return 1
    state = "flagged" if updated.flagged else "unflagged"
    print(f"[OK] {updated.name} {state}")
    return 0


async def call_mother(roster: RosterService, args: argparse.Namespace) -> int:
    print(f"\nCalling {args.mother_id}...\n")
    report = await roster.call_one(args.mother_id)
    if report is None:
        print(f"Mother not found: {args.mother_id}", file=sys.stderr)
        return 1

    outcome = report.outcome_for(args.mother_id)
    if outcome is None:
        error = report.calls.failures.get(args.mother_id)
        print(f"Call failed: {error.message if error else 'no outcome'}")
        return 1

    print(f"Outcome: {outcome.value}")
    _print_report(report)
    return 0


async def call_all(roster: RosterService, args: argparse.Namespace) -> int:
    print(f"\nCalling {len(roster.state.mothers)} mothers...\n")
    report = await roster.call_all(on_outcome=_print_progress)
    if report is None:
        print("No mothers to call")
        return 0
    _print_report(report)
    return 0


async def export_roster(roster: RosterService, args: argparse.Namespace) -> int:
    directory = args.output or get_settings().export.directory
    path = write_roster_csv(roster.state.mothers, directory)
    print(f"[OK] Exported {len(roster.state.mothers)} mothers to {path}")
    return 0


async def _with_roster(action: RosterAction, args: argparse.Namespace) -> int:
    """Log in, load the dashboard, run one action, close the backend."""
    settings = get_settings()
    backend = create_backend(settings)
    try:
        try:
            session = await login(backend.auth, args.asha_id, args.password)
        except DashboardError as e:
            print(f"Login failed: {e.message}", file=sys.stderr)
            return 1

        roster = RosterService(backend, session, settings)
        await roster.load()
        return await action(roster, args)
    finally:
        await backend.aclose()


def serve(args: argparse.Namespace) -> int:
    """Run the HTTP API."""
    from asha_dashboard.main import run

    run()
    return 0


# =============================================================================
# Entry point
# =============================================================================


ROSTER_COMMANDS: dict[str, RosterAction] = {
    "roster": show_roster,
    "flagged": show_flagged,
    "call-logs": show_call_logs,
    "show": show_mother,
    "visit": mark_visited,
    "toggle-flag": toggle_flag,
    "call": call_mother,
    "call-all": call_all,
    "export": export_roster,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asha-dashboard",
        description="ASHA Dashboard CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--asha-id", default=DEMO_ASHA.id, help="ASHA ID to log in as")
    parser.add_argument("--password", default=DEMO_PASSWORD, help="ASHA password")
    parser.add_argument(
        "--log-level", default="WARNING", type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level for structured logs (default: WARNING)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("roster", help="List assigned mothers")
    subparsers.add_parser("flagged", help="List flagged mothers")
    subparsers.add_parser("call-logs", help="Show recent IVR call logs")

    for name, help_text in (
        ("show", "Show a mother's profile"),
        ("visit", "Mark a mother as visited"),
        ("toggle-flag", "Flag or unflag a mother"),
        ("call", "Place one IVR call"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("mother_id", help="Mother ID")

    subparsers.add_parser("call-all", help="IVR call every mother on the roster")

    export_parser = subparsers.add_parser("export", help="Export the roster as CSV")
    export_parser.add_argument(
        "--output", type=str, default=None,
        help="Output directory (default: export.directory setting)"
    )

    subparsers.add_parser("serve", help="Run the HTTP API server")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(level=args.log_level)

    if args.command == "serve":
        return serve(args)

    return asyncio.run(_with_roster(ROSTER_COMMANDS[args.command], args))


if __name__ == "__main__":
    sys.exit(main())
