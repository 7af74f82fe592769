"""Applies the checklist table: machine-wide writes and all-user propagation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from baseline_config.checklist import CHECKLIST, ChecklistStep, SettingEntry
from baseline_config.registry_types import EditAction, SettingScope
from baseline_config.user_settings import UserSettings
from services.commands import CommandRunner
from services.profiles import HiveMounter
from services.propagation import AllPrincipalsPropagator
from services.registry import (
    DRIVE_MARKER,
    HKCU_PREFIX,
    RegistryAccessor,
    SettingEdit,
    WindowsRegistryAccessor,
    apply_edit,
    normalize_value,
    read_setting,
)
from services.run_context import RunContext


@dataclass
class ConfigCheckResult:
    name: str
    expected: str
    actual: str
    in_desired_state: bool


@dataclass
class ApplyStepResult:
    name: str
    success: bool
    detail: str = ""


def validate_entry(entry: SettingEntry) -> list[str]:
    """Return the problems that make ``entry`` unsafe to apply."""
    problems: list[str] = []
    path = entry.path.strip() if isinstance(entry.path, str) else ""
    if not path or DRIVE_MARKER not in path:
        problems.append(f"path {entry.path!r} is not a registry drive path")
    elif entry.scope is SettingScope.ALL_USERS and not path.upper().startswith(HKCU_PREFIX):
        problems.append("all-users entries must target HKCU")
    elif entry.scope is SettingScope.MACHINE and path.upper().startswith(HKCU_PREFIX):
        problems.append("machine entries must not target HKCU")
    if not isinstance(entry.name, str):
        problems.append(f"value name {entry.name!r} is not text")
    elif not entry.name.strip():
        problems.append("value name is blank")
    if entry.action is not EditAction.REMOVE:
        if entry.value_type is None:
            problems.append("value type is missing")
        else:
            try:
                normalize_value(entry.value, entry.value_type)
            except ValueError as exc:
                problems.append(str(exc))
    return problems


def entry_to_edit(entry: SettingEntry) -> SettingEdit:
    return SettingEdit(entry.path, entry.name, entry.value, entry.value_type, entry.action)


class ChecklistService:
    def __init__(
        self,
        steps: Sequence[ChecklistStep] = CHECKLIST,
        *,
        context: RunContext | None = None,
        settings: UserSettings | None = None,
        registry: RegistryAccessor | None = None,
        command_runner: CommandRunner | None = None,
        propagator: AllPrincipalsPropagator | None = None,
    ) -> None:
        self._steps = tuple(steps)
        self._settings = settings or UserSettings()
        self._context = context or RunContext.create(
            self._settings.log_path or None,
            self._settings.output_directory or None,
        )
        self._registry = registry or WindowsRegistryAccessor()
        if propagator is None:
            mounter = HiveMounter(
                self._registry,
                command_runner,
                settle_seconds=self._settings.unmount_delay_seconds,
            )
            propagator = AllPrincipalsPropagator(self._registry, mounter=mounter)
        self._propagator = propagator

    @property
    def context(self) -> RunContext:
        return self._context

    def available_apply_steps(self) -> list[str]:
        return [step.title for step in self._steps]

    def describe_step(self, title: str) -> str:
        return next((step.description for step in self._steps if step.title == title), title)

    def check(self, selected: Iterable[str] | None = None) -> list[ConfigCheckResult]:
        """Compare machine entries and the current user's values for per-user entries."""
        return [self._check_step(step) for step in self._select(selected, honor_skips=False)]

    def apply(self, selected: Iterable[str] | None = None) -> None:
        self.apply_with_results(selected)

    def apply_with_results(self, selected: Iterable[str] | None = None) -> list[ApplyStepResult]:
        results: list[ApplyStepResult] = []
        for step in self._select(selected, honor_skips=selected is None):
            with self._context.step(step.title) as ctx:
                try:
                    result = self._apply_step(step)
                except Exception as exc:  # pragma: no cover - a broken step must not stop the run
                    result = ApplyStepResult(step.title, False, f"unexpected error: {exc}")
                if result.success:
                    ctx.info(f"OK - {result.detail}")
                else:
                    ctx.error(f"FAILED - {result.detail}")
            results.append(result)
        return results

    def _select(self, selected: Iterable[str] | None, *, honor_skips: bool) -> list[ChecklistStep]:
        if selected is None:
            if not honor_skips:
                return list(self._steps)
            chosen = []
            for step in self._steps:
                if self._settings.is_skipped(step.title):
                    self._context.info(f"Skipping {step.title} (disabled in settings)")
                    continue
                chosen.append(step)
            return chosen
        wanted = {title.lower() for title in selected}
        unknown = wanted - {step.title.lower() for step in self._steps}
        for title in sorted(unknown):
            self._context.warning(f"Unknown checklist step requested: {title}")
        return [step for step in self._steps if step.title.lower() in wanted]

    def _apply_step(self, step: ChecklistStep) -> ApplyStepResult:
        failures = 0
        detail_parts: list[str] = []
        for entry in step.entries:
            ok, detail = self._apply_entry(entry)
            detail_parts.append(f"{entry.label}: {detail}")
            if not ok:
                failures += 1
        if failures:
            detail_parts.append(f"{failures} of {len(step.entries)} setting(s) failed")
        return ApplyStepResult(step.title, failures == 0, "; ".join(detail_parts))

    def _apply_entry(self, entry: SettingEntry) -> tuple[bool, str]:
        problems = validate_entry(entry)
        if problems:
            detail = "invalid entry skipped (" + ", ".join(problems) + ")"
            self._context.error(f"{entry.label}: {detail}")
            return False, detail
        edit = entry_to_edit(entry)
        if entry.scope is SettingScope.ALL_USERS:
            report = self._propagator.propagate(edit)
            return report.success, report.summary()
        try:
            result = apply_edit(self._registry, edit)
        except OSError as exc:
            self._context.error(f"{entry.label}: {edit.describe()} failed: {exc}")
            return False, str(exc)
        self._context.info(f"{entry.label}: {edit.describe()} {result.detail}")
        return True, result.detail

    def _check_step(self, step: ChecklistStep) -> ConfigCheckResult:
        compliant = 0
        mismatches: list[str] = []
        for entry in step.entries:
            ok, actual = self._check_entry(entry)
            if ok:
                compliant += 1
            else:
                owner = " (current user)" if entry.scope is SettingScope.ALL_USERS else ""
                mismatches.append(f"{entry.label}={actual}{owner}")
        actual = f"{compliant}/{len(step.entries)} compliant"
        if mismatches:
            actual = f"{actual} ({', '.join(mismatches)})"
        return ConfigCheckResult(step.title, step.description, actual, not mismatches)

    def _check_entry(self, entry: SettingEntry) -> tuple[bool, str]:
        if validate_entry(entry):
            return False, "Invalid"
        edit = entry_to_edit(entry)
        try:
            current = read_setting(self._registry, edit.path, edit.name)
        except OSError as exc:
            return False, f"Error: {exc}"
        if edit.action is EditAction.REMOVE:
            return current is None, "Not Set" if current is None else str(current[0])
        if current is None:
            return False, "Not Set"
        return current == (edit.value, edit.value_type), str(current[0])
