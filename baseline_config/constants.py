"""Immutable settings for hive propagation and checklist runs."""
from __future__ import annotations

import re
import tempfile
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ProfileHiveSetting:
    profile_list_path: str
    default_profile_value: str
    profile_image_value: str
    fallback_default_profile: str
    hive_file_name: str
    users_root: str


@dataclass(frozen=True)
class MountSetting:
    default_principal_id: str
    default_mount_name: str
    unmount_settle_seconds: float


@dataclass(frozen=True)
class LoggingSetting:
    log_file_name: str
    date_format: str
    line_format: str


@dataclass(frozen=True)
class ImmutableConfig:
    profiles: ProfileHiveSetting
    mount: MountSetting
    logging: LoggingSetting


# Local and domain accounts only; rejects S-1-5-18/19/20 and "<sid>.bak" leftovers.
USER_SID_PATTERN = re.compile(r"^S-1-5-21-\d+-\d+-\d+-\d+$", re.IGNORECASE)

IMMUTABLE_CONFIG = ImmutableConfig(
    profiles=ProfileHiveSetting(
        profile_list_path=r"HKLM:\SOFTWARE\Microsoft\Windows NT\CurrentVersion\ProfileList",
        default_profile_value="Default",
        profile_image_value="ProfileImagePath",
        fallback_default_profile=r"C:\Users\Default",
        hive_file_name="NTUSER.DAT",
        users_root="HKU",
    ),
    mount=MountSetting(
        default_principal_id=".DEFAULT",
        default_mount_name="Baseline_DefaultUser",
        unmount_settle_seconds=1.0,
    ),
    logging=LoggingSetting(
        log_file_name="baseline-configurator.log",
        date_format="%Y-%m-%dT%H:%M:%S%z",
        line_format="%(asctime)s %(levelname)s: %(message)s",
    ),
)


def default_log_path() -> Path:
    return Path(tempfile.gettempdir()) / IMMUTABLE_CONFIG.logging.log_file_name
