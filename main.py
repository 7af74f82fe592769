#!/usr/bin/env python3
"""Apply the baseline checklist to this machine and every user profile."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from baseline_config.checklist import CHECKLIST, ChecklistStep, load_checklist_file
from baseline_config.user_settings import SettingsStore, UserSettings
from services.checklist_service import ChecklistService
from services.commands import CommandRunner
from services.privilege import is_admin, relaunch_as_admin
from services.registry import RegistryAccessor
from services.run_context import RunContext


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apply registry checklist steps machine-wide and to every user profile.")
    parser.add_argument("--list", action="store_true", help="List checklist steps and exit")
    parser.add_argument("--check", action="store_true", help="Report compliance instead of applying")
    parser.add_argument("--step", action="append", default=[], metavar="TITLE", help="Only run this step (repeatable)")
    parser.add_argument("--log-path", help="Run log file (default: temp directory)")
    parser.add_argument("--output-dir", help="Directory for run output (default: next to the log)")
    parser.add_argument("--checklist", help="JSON file with extra checklist steps")
    parser.add_argument("--settings", help="Settings JSON file (default: application data directory)")
    parser.add_argument("--gui", action="store_true", help="Open the checklist window")
    parser.add_argument("--no-elevate", action="store_true", help="Do not relaunch elevated when not running as admin")
    return parser


def load_steps(settings: UserSettings, checklist_path: str | None = None) -> tuple[ChecklistStep, ...]:
    steps = tuple(CHECKLIST)
    extra = checklist_path or settings.checklist_path
    if extra:
        steps += load_checklist_file(extra)
    return steps


def main(
    argv: Sequence[str] | None = None,
    *,
    registry: RegistryAccessor | None = None,
    command_runner: CommandRunner | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    store = SettingsStore(Path(args.settings) if args.settings else None)
    settings = store.load()
    if args.log_path:
        settings.log_path = args.log_path
    if args.output_dir:
        settings.output_directory = args.output_dir

    try:
        steps = load_steps(settings, args.checklist)
    except (OSError, ValueError, KeyError) as exc:
        print(f"Unable to load checklist: {exc}", file=sys.stderr)
        return 2

    if args.list:
        for step in steps:
            print(f"{step.title}: {step.description} ({len(step.entries)} setting(s))")
        return 0

    if not args.no_elevate and not is_admin():
        if relaunch_as_admin(argv):
            return 0
        print("Not running as administrator; hive loading and HKLM writes will fail.", file=sys.stderr)

    context = RunContext.create(settings.log_path or None, settings.output_directory or None)
    service = ChecklistService(
        steps,
        context=context,
        settings=settings,
        registry=registry,
        command_runner=command_runner,
    )

    if args.gui:
        return run_gui(service, settings, store)

    selected = args.step or None
    if args.check:
        results = service.check(selected)
        for result in results:
            status = "OK" if result.in_desired_state else "DIFFERS"
            print(f"[{status}] {result.name}: {result.actual}")
        return 0 if all(result.in_desired_state for result in results) else 1

    results = service.apply_with_results(selected)
    failures = [result.name for result in results if not result.success]
    if failures:
        context.warning(f"{len(failures)} of {len(results)} step(s) had failures: {', '.join(failures)}")
    context.info(f"Run complete after {context.step_number} step(s); log: {context.log_path}")
    return 0


def run_gui(service: ChecklistService, settings: UserSettings, store: SettingsStore) -> int:
    from PySide6.QtWidgets import QApplication

    from ui.main_window import MainWindow, apply_dark_theme

    app = QApplication.instance() or QApplication(sys.argv)
    apply_dark_theme(app)
    window = MainWindow(service, settings, store)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
