"""Replicates a per-user registry edit into every profile hive on the machine."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from services.commands import CommandRunner
from services.profiles import HiveMounter, HiveMountError, Principal, enumerate_principals
from services.registry import (
    EditAction,
    EditResult,
    RegistryAccessor,
    RegistryData,
    SettingEdit,
    ValueType,
    apply_edit,
    user_relative_path,
)

_LOGGER = logging.getLogger(__name__)


@dataclass
class PrincipalOutcome:
    principal: Principal
    success: bool
    detail: str
    mounted_here: bool = False
    unmounted: bool = False
    result: EditResult | None = None


@dataclass
class PropagationReport:
    edit: SettingEdit
    outcomes: list[PrincipalOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(outcome.success for outcome in self.outcomes)

    @property
    def failures(self) -> list[PrincipalOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    def summary(self) -> str:
        failed = len(self.failures)
        total = len(self.outcomes)
        if not failed:
            return f"applied to {total} profile(s)"
        names = ", ".join(outcome.principal.sid for outcome in self.failures)
        return f"applied to {total - failed}/{total} profile(s); failed: {names}"


class AllPrincipalsPropagator:
    """Applies one HKCU-relative edit to each user hive and the default profile.

    Principals are processed one at a time. Failures are logged and recorded
    per principal; nothing raised while handling one profile stops the next.
    """

    def __init__(
        self,
        registry: RegistryAccessor,
        *,
        command_runner: CommandRunner | None = None,
        mounter: HiveMounter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._registry = registry
        self._log = logger or _LOGGER
        self._mounter = mounter or HiveMounter(registry, command_runner, logger=self._log)

    def propagate(self, edit: SettingEdit) -> PropagationReport:
        # Machine paths are rejected before any hive is loaded.
        user_relative_path(edit.path)
        report = PropagationReport(edit)
        for principal in enumerate_principals(self._registry, logger=self._log):
            report.outcomes.append(self._apply_to_principal(principal, edit))
        if report.failures:
            self._log.warning("%s %s: %s", edit.action.value.capitalize(), edit.describe(), report.summary())
        return report

    def propagate_to_all_principals(
        self,
        path: str,
        name: str,
        value: RegistryData | None,
        value_type: ValueType | None,
        action: EditAction,
    ) -> PropagationReport:
        return self.propagate(SettingEdit(path, name, value, value_type, action))

    def _apply_to_principal(self, principal: Principal, edit: SettingEdit) -> PrincipalOutcome:
        try:
            with self._mounter.mount(principal) as hive:
                target = edit.relocated(hive.translate(edit.path))
                try:
                    result = apply_edit(self._registry, target, logger=self._log)
                except OSError as exc:
                    self._log.error("%s %s for %s failed: %s", edit.action.value.capitalize(), target.describe(), principal.sid, exc)
                    outcome = PrincipalOutcome(principal, False, str(exc), mounted_here=hive.mounted_here)
                else:
                    self._log.info("%s %s for %s: %s", edit.action.value.capitalize(), target.describe(), principal.sid, result.detail)
                    outcome = PrincipalOutcome(principal, True, result.detail, mounted_here=hive.mounted_here, result=result)
        except HiveMountError as exc:
            self._log.error("%s", exc)
            return PrincipalOutcome(principal, False, exc.detail)
        except OSError as exc:
            self._log.error("Registry access for %s failed: %s", principal.sid, exc)
            return PrincipalOutcome(principal, False, str(exc))
        outcome.unmounted = hive.released
        if hive.unmount_error:
            outcome.detail = f"{outcome.detail}; unload failed: {hive.unmount_error}"
        return outcome


def propagate_to_all_principals(
    registry: RegistryAccessor,
    path: str,
    name: str,
    value: RegistryData | None,
    value_type: ValueType | None,
    action: EditAction,
    *,
    command_runner: CommandRunner | None = None,
) -> PropagationReport:
    propagator = AllPrincipalsPropagator(registry, command_runner=command_runner)
    return propagator.propagate_to_all_principals(path, name, value, value_type, action)
