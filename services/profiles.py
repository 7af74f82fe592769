"""User profile enumeration and registry hive mounting."""
from __future__ import annotations

import gc
import logging
import os
import re
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import PureWindowsPath
from typing import Callable, Iterator

from baseline_config.constants import IMMUTABLE_CONFIG, USER_SID_PATTERN, MountSetting, ProfileHiveSetting
from services.commands import CommandRunner, SubprocessRunner, format_command_detail
from services.registry import RegistryAccessor, user_relative_path

_LOGGER = logging.getLogger(__name__)
_ENV_TOKEN = re.compile(r"%([^%]+)%")


class HiveMountError(RuntimeError):
    def __init__(self, principal: "Principal", detail: str) -> None:
        super().__init__(f"Loading hive for {principal.sid} from {principal.hive_path} failed: {detail}")
        self.principal = principal
        self.detail = detail


@dataclass(frozen=True)
class Principal:
    sid: str
    hive_path: str
    mount_name: str
    is_default: bool = False

    @property
    def registry_root(self) -> str:
        return f"{IMMUTABLE_CONFIG.profiles.users_root}:\\{self.mount_name}"

    @property
    def reg_key(self) -> str:
        return f"{IMMUTABLE_CONFIG.profiles.users_root}\\{self.mount_name}"


@dataclass
class MountedHive:
    principal: Principal
    mounted_here: bool
    released: bool = False
    unmount_error: str | None = None

    @property
    def root(self) -> str:
        return self.principal.registry_root

    def translate(self, path: str) -> str:
        relative = user_relative_path(path)
        return f"{self.root}\\{relative}" if relative else self.root


def expand_environment(text: str) -> str:
    return _ENV_TOKEN.sub(lambda match: os.environ.get(match.group(1), match.group(0)), text)


def hive_file_for(profile_directory: str, settings: ProfileHiveSetting = IMMUTABLE_CONFIG.profiles) -> str:
    return str(PureWindowsPath(expand_environment(profile_directory.strip())) / settings.hive_file_name)


def default_principal(
    registry: RegistryAccessor,
    settings: ProfileHiveSetting = IMMUTABLE_CONFIG.profiles,
    mount: MountSetting = IMMUTABLE_CONFIG.mount,
) -> Principal:
    directory = settings.fallback_default_profile
    try:
        configured = registry.get_value(settings.profile_list_path, settings.default_profile_value)
    except OSError:
        configured = None
    if isinstance(configured, str) and configured.strip():
        directory = configured
    return Principal(
        sid=mount.default_principal_id,
        hive_path=hive_file_for(directory, settings),
        mount_name=mount.default_mount_name,
        is_default=True,
    )


def enumerate_principals(
    registry: RegistryAccessor,
    settings: ProfileHiveSetting = IMMUTABLE_CONFIG.profiles,
    mount: MountSetting = IMMUTABLE_CONFIG.mount,
    *,
    logger: logging.Logger | None = None,
) -> list[Principal]:
    """List every user profile with a hive on disk, followed by the default profile."""
    logger = logger or _LOGGER
    principals: list[Principal] = []
    try:
        sids = registry.list_subkeys(settings.profile_list_path)
    except OSError as exc:
        logger.error("Unable to read profile list %s: %s", settings.profile_list_path, exc)
        sids = []
    for sid in sids:
        if not USER_SID_PATTERN.match(sid):
            logger.debug("Skipping non-user profile entry %s", sid)
            continue
        profile_key = f"{settings.profile_list_path}\\{sid}"
        try:
            image_path = registry.get_value(profile_key, settings.profile_image_value)
        except OSError as exc:
            logger.warning("Unable to read profile path for %s: %s", sid, exc)
            continue
        if not isinstance(image_path, str) or not image_path.strip():
            logger.warning("Profile %s has no %s; skipped", sid, settings.profile_image_value)
            continue
        principals.append(Principal(sid=sid, hive_path=hive_file_for(image_path, settings), mount_name=sid))
    principals.append(default_principal(registry, settings, mount))
    return principals


class HiveMounter:
    """Loads user hives under HKU and unloads the ones it loaded."""

    def __init__(
        self,
        registry: RegistryAccessor,
        command_runner: CommandRunner | None = None,
        *,
        settle_seconds: float = IMMUTABLE_CONFIG.mount.unmount_settle_seconds,
        sleep: Callable[[float], None] = time.sleep,
        collect: Callable[[], object] = gc.collect,
        logger: logging.Logger | None = None,
    ) -> None:
        self._registry = registry
        self._runner = command_runner or SubprocessRunner()
        self._settle_seconds = settle_seconds
        self._sleep = sleep
        self._collect = collect
        self._log = logger or _LOGGER

    def is_mounted(self, principal: Principal) -> bool:
        return self._registry.key_exists(principal.registry_root)

    @contextmanager
    def mount(self, principal: Principal) -> Iterator[MountedHive]:
        hive = self._acquire(principal)
        try:
            yield hive
        finally:
            self._release(hive)

    def _acquire(self, principal: Principal) -> MountedHive:
        if self.is_mounted(principal):
            if principal.is_default:
                # Nothing but this tool loads the default profile under its mount name.
                self._log.warning("Taking over stale mount %s left by an earlier run", principal.reg_key)
                return MountedHive(principal, mounted_here=True)
            self._log.debug("Hive for %s is already loaded; leaving it mounted", principal.sid)
            return MountedHive(principal, mounted_here=False)
        completed = self._runner.run(["reg", "load", principal.reg_key, principal.hive_path])
        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip() or f"exit code {completed.returncode}"
            raise HiveMountError(principal, detail)
        self._log.debug("Loaded %s at %s", principal.hive_path, principal.reg_key)
        return MountedHive(principal, mounted_here=True)

    def _release(self, hive: MountedHive) -> None:
        if not hive.mounted_here:
            return
        # Open key handles keep the hive file locked until they are collected.
        self._collect()
        self._sleep(self._settle_seconds)
        try:
            completed = self._runner.run(["reg", "unload", hive.principal.reg_key])
        except OSError as exc:
            hive.unmount_error = str(exc)
        else:
            if completed.returncode != 0:
                hive.unmount_error = format_command_detail(completed)
        if hive.unmount_error:
            self._log.error("Unloading hive %s for %s failed: %s", hive.principal.reg_key, hive.principal.sid, hive.unmount_error)
            return
        hive.released = True
        self._log.debug("Unloaded %s", hive.principal.reg_key)
