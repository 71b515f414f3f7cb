"""Distribution channels: which packages and binaries each toolchain channel publishes."""

from __future__ import annotations

import datetime
import tomllib
from dataclasses import dataclass, field

from fueltools.constants import (
    CHANNEL_BETA_1_FILE_NAME,
    CHANNEL_BETA_2_FILE_NAME,
    CHANNEL_BETA_3_FILE_NAME,
    CHANNEL_BETA_4_FILE_NAME,
    CHANNEL_BETA_5_FILE_NAME,
    CHANNEL_DEVNET_FILE_NAME,
    CHANNEL_LATEST_FILE_NAME,
    CHANNEL_NIGHTLY_FILE_NAME,
    CHANNEL_TESTNET_FILE_NAME,
    DATE_FORMAT,
    DATE_FORMAT_URL_FRIENDLY,
    FUELUP_GH_PAGES,
)
from fueltools.net import DownloadError, download
from fueltools.version import Version

LATEST = "latest"
STABLE = "stable"
BETA_1 = "beta-1"
BETA_2 = "beta-2"
BETA_3 = "beta-3"
BETA_4 = "beta-4"
BETA_5 = "beta-5"
DEVNET = "devnet"
TESTNET = "testnet"
NIGHTLY = "nightly"

CHANNELS = (LATEST, NIGHTLY, BETA_1, BETA_2, BETA_3, BETA_4, BETA_5, DEVNET, TESTNET)

_BETA_TOOLCHAINS = frozenset({BETA_1, BETA_2, BETA_3, BETA_4, BETA_5, DEVNET, TESTNET})

_FIXED_CHANNEL_FILES = {
    BETA_1: CHANNEL_BETA_1_FILE_NAME,
    BETA_2: CHANNEL_BETA_2_FILE_NAME,
    BETA_3: CHANNEL_BETA_3_FILE_NAME,
    BETA_4: CHANNEL_BETA_4_FILE_NAME,
    BETA_5: CHANNEL_BETA_5_FILE_NAME,
    DEVNET: CHANNEL_DEVNET_FILE_NAME,
    TESTNET: CHANNEL_TESTNET_FILE_NAME,
}


def is_beta_toolchain(name: str) -> bool:
    """True for the beta, devnet and testnet channel names."""
    return name in _BETA_TOOLCHAINS


def channel_url(name: str, date: datetime.date | None = None) -> str:
    """URL of the channel file for a distributable toolchain, optionally at a date."""
    if name == LATEST:
        if date is not None:
            path = f"channels/latest/channel-fuel-latest-{date.strftime(DATE_FORMAT)}.toml"
        else:
            path = CHANNEL_LATEST_FILE_NAME
    elif name == NIGHTLY:
        prefix = (
            f"channels/nightly/{date.strftime(DATE_FORMAT_URL_FRIENDLY)}/"
            if date is not None
            else ""
        )
        path = prefix + CHANNEL_NIGHTLY_FILE_NAME
    else:
        try:
            path = _FIXED_CHANNEL_FILES[name]
        except KeyError:
            raise ValueError(f"Unknown name for toolchain: {name}") from None
    return FUELUP_GH_PAGES + path


@dataclass(frozen=True)
class HashedBinary:
    """Where a binary tarball lives and its sha256 hash."""

    url: str
    hash: str


@dataclass
class Package:
    """A package in a channel: its version and the tarball for each target."""

    target: dict[str, HashedBinary]
    version: Version
    fuels_version: str | None = None


def _require_str(table: dict, key: str, where: str) -> str:
    value = table.get(key)
    if not isinstance(value, str):
        raise ValueError(f"{where}: missing or invalid field '{key}'")
    return value


def _require_table(table: dict, key: str, where: str) -> dict:
    value = table.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{where}: missing or invalid field '{key}'")
    return value


def _package_from_table(name: str, table: object) -> Package:
    where = f"pkg.{name}"
    if not isinstance(table, dict):
        raise ValueError(f"{where} must be a table")
    targets = {}
    for target, binary in sorted(_require_table(table, "target", where).items()):
        target_where = f"{where}.target.{target}"
        if not isinstance(binary, dict):
            raise ValueError(f"{target_where} must be a table")
        targets[target] = HashedBinary(
            url=_require_str(binary, "url", target_where),
            hash=_require_str(binary, "hash", target_where),
        )
    fuels_version = table.get("fuels_version")
    if fuels_version is not None and not isinstance(fuels_version, str):
        raise ValueError(f"{where}: field 'fuels_version' must be a string")
    return Package(
        target=targets,
        version=Version.parse(_require_str(table, "version", where)),
        fuels_version=fuels_version,
    )


@dataclass
class Channel:
    """A channel's packages, keyed and ordered by package name."""

    pkg: dict[str, Package] = field(default_factory=dict)

    @classmethod
    def from_toml(cls, text: str) -> Channel:
        """Parse a channel TOML document."""
        data = tomllib.loads(text)
        packages = _require_table(data, "pkg", "channel")
        return cls({name: _package_from_table(name, table) for name, table in sorted(packages.items())})

    @classmethod
    def from_dist_channel(cls, name: str, date: datetime.date | None = None) -> Channel:
        """Download and parse the channel for a distributable toolchain."""
        url = channel_url(name, date)
        try:
            data = download(url)
        except DownloadError as exc:
            raise DownloadError(f"Could not read {url}") from exc
        return cls.from_toml(data.decode("utf-8"))