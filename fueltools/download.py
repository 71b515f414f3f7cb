"""Download configurations for components and fetching, unpacking and installing their binaries."""

from __future__ import annotations

import logging
import shutil
import tarfile
import zlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

import requests
import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import InlineTable

from fueltools.channel import LATEST, Channel, Package
from fueltools.component import FUELUP, ComponentError, Components
from fueltools.constants import CHANNEL_LATEST_URL
from fueltools.net import DownloadError, build_session, download_file
from fueltools.version import Version

logger = logging.getLogger(__name__)

StrPath = str | PathLike[str]
TargetSpec = str | Callable[[str], str]

_FUELUP_RELEASES_API_URL = "https://api.github.com/repos/FuelLabs/fuelup/releases/latest"
_TIMEOUT_SECS = 60


def github_releases_download_url(repo: str, tag: Version, tarball: str) -> str:
    """URL of a release asset on GitHub for the given repository and version tag."""
    return f"https://github.com/FuelLabs/{repo}/releases/download/v{tag}/{tarball}"


def tarball_name(tarball_prefix: str, version: Version, target: str) -> str:
    """File name of a release tarball; forc-binaries tarballs carry no version."""
    if tarball_prefix == "forc-binaries":
        return f"{tarball_prefix}-{target}.tar.gz"
    return f"{tarball_prefix}-{version}-{target}.tar.gz"


def _resolve_target(target: TargetSpec, name: str) -> str:
    return target(name) if callable(target) else target


@dataclass(frozen=True)
class DownloadCfg:
    """Everything needed to download one component's tarball."""

    name: str
    target: str
    version: Version
    tarball_name: str
    tarball_url: str
    hash: str | None = None

    @classmethod
    def new(
        cls,
        name: str,
        target: str,
        version: Version | None = None,
        components: Components | None = None,
    ) -> DownloadCfg:
        """Build a config from GitHub releases; look up the latest version if none is given."""
        if version is None:
            try:
                version = get_latest_version(name)
            except (DownloadError, ValueError, requests.RequestException) as exc:
                raise DownloadError(f"Error getting latest tag for '{name}': {exc}") from exc

        if name == FUELUP:
            tarball = tarball_name(FUELUP, version, target)
            url = github_releases_download_url(FUELUP, version, tarball)
        else:
            if components is None:
                raise ValueError(f"Unrecognized component: {name}")
            try:
                component = components.from_name(name)
            except ComponentError:
                raise ValueError(f"Unrecognized component: {name}") from None
            tarball = tarball_name(component.tarball_prefix, version, target)
            url = github_releases_download_url(component.repository_name, version, tarball)

        return cls(
            name=name,
            target=target,
            version=version,
            tarball_name=tarball,
            tarball_url=url,
        )

    @classmethod
    def from_package(cls, name: str, package: Package, target: TargetSpec) -> DownloadCfg:
        """Build a config from a channel package, taking url and hash for the target."""
        resolved = _resolve_target(target, name)
        try:
            binary = package.target[resolved]
        except KeyError:
            raise ValueError(f"target '{resolved}' is not available for '{name}'") from None
        return cls(
            name=name,
            target=resolved,
            version=package.version,
            tarball_name=tarball_name(name, package.version, resolved),
            tarball_url=binary.url,
            hash=binary.hash,
        )


def build_download_configs(
    channel: Channel, components: Components, target: TargetSpec
) -> list[DownloadCfg]:
    """Download configs for every published component in the channel, sorted by name."""
    cfgs = []
    for name, package in channel.pkg.items():
        if not components.contains_published(name):
            continue
        try:
            cfgs.append(DownloadCfg.from_package(name, package, target))
        except ValueError:
            logger.warning(
                "Failed to recognize component: '%s'.\n"
                "If this component should be downloadable, try running "
                "`fuelup self update` and re-run the installation.",
                name,
            )
    return sorted(cfgs, key=lambda cfg: cfg.name)


def get_latest_version(name: str) -> Version:
    """Latest released version of fuelup, or of a package in the 'latest' channel."""
    with build_session() as session:
        if name == FUELUP:
            try:
                response = session.get(_FUELUP_RELEASES_API_URL, timeout=_TIMEOUT_SECS)
                response.raise_for_status()
                data = response.json()
            except requests.RequestException as exc:
                raise DownloadError(str(exc)) from exc
            return Version.parse(data["tag_name"][len("v"):])

        try:
            response = session.get(CHANNEL_LATEST_URL, timeout=_TIMEOUT_SECS)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DownloadError(str(exc)) from exc

    try:
        channel = Channel.from_dist_channel(LATEST)
    except (DownloadError, ValueError) as exc:
        raise DownloadError("Failed to get 'latest' channel") from exc
    package = channel.pkg.get(name)
    if package is None:
        raise ValueError(f"'{name}' is not a valid, downloadable package in the 'latest' channel.")
    return package.version


def unpack(tar_path: StrPath, dst: StrPath) -> None:
    """Extract a .tar.gz into `dst`, then delete the tarball; extraction errors are logged."""
    tar_path = Path(tar_path)
    extract_options = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}
    with open(tar_path, "rb") as handle:
        try:
            with tarfile.open(fileobj=handle, mode="r:gz") as archive:
                archive.extractall(dst, **extract_options)
        except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
            logger.error(
                "%s. The archive could be corrupted or the release may not be ready yet", exc
            )
    tar_path.unlink()


def download_file_and_unpack(download_cfg: DownloadCfg, dst_dir_path: StrPath) -> None:
    """Download the configured tarball into `dst_dir_path` and unpack it there."""
    logger.info("Fetching binary from %s", download_cfg.tarball_url)
    if download_cfg.hash is None:
        logger.warning(
            "Downloading component %s without verifying checksum", download_cfg.name
        )
    dst_dir_path = Path(dst_dir_path)
    tarball_path = dst_dir_path / download_cfg.tarball_name
    try:
        download_file(download_cfg.tarball_url, tarball_path)
    except (DownloadError, OSError) as exc:
        raise DownloadError(
            f"Failed to download {download_cfg.tarball_name} - {exc}. "
            "The release may not be ready yet."
        ) from exc
    unpack(tarball_path, dst_dir_path)


def unpack_bins(dir: StrPath, dst_dir: StrPath) -> list[Path]:
    """Move files out of each subdirectory of `dir` into `dir`, removing the subdirectories.

    Returns the paths the binaries will have under `dst_dir`.
    """
    dir = Path(dir)
    dst_dir = Path(dst_dir)
    downloaded: list[Path] = []
    for sub_path in sorted(dir.iterdir()):
        if not sub_path.is_dir():
            continue
        for bin_file in sorted(sub_path.iterdir()):
            logger.info("Unpacking and moving %s to %s", bin_file.name, dir)
            dst_bin_file = dir / bin_file.name
            if dst_bin_file.exists():
                dst_bin_file.unlink()
            shutil.copy(bin_file, dst_bin_file)
            downloaded.append(dst_dir / bin_file.name)
        shutil.rmtree(sub_path)
    return downloaded


def fuels_version_from_toml(text: str) -> str:
    """Version of the `fuels` dependency in a Cargo.toml, or "" if it names none."""
    try:
        document = tomlkit.parse(text)
    except TOMLKitError as exc:
        raise ValueError(f"invalid toml: {exc}") from exc

    dependencies = document.get("dependencies")
    if dependencies is None:
        raise ValueError("the table 'dependencies' does not exist")
    fuels = dependencies.get("fuels") if isinstance(dependencies, Mapping) else None
    if fuels is None:
        raise ValueError("'fuels' dependency does not exist")

    if isinstance(fuels, str):
        return str(fuels)
    if isinstance(fuels, InlineTable):
        version = fuels.get("version")
        return str(version) if isinstance(version, str) else ""
    return ""


def fetch_fuels_version(cfg: DownloadCfg) -> str:
    """Fetch a component's Cargo.toml from its repository and read its `fuels` version."""
    if cfg.name == "forc":
        url = (
            "https://raw.githubusercontent.com/FuelLabs/sway/"
            f"v{cfg.version}/test/src/sdk-harness/Cargo.toml"
        )
    elif cfg.name == "forc-wallet":
        url = f"https://raw.githubusercontent.com/FuelLabs/forc-wallet/v{cfg.version}/Cargo.toml"
    else:
        raise ValueError("invalid component to fetch fuels version for")

    with requests.Session() as session:
        session.headers["User-Agent"] = "fuelup"
        proxy = _http_proxy()
        if proxy is not None:
            session.proxies = {"http": proxy, "https": proxy}
        try:
            response = session.get(url, timeout=_TIMEOUT_SECS)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DownloadError("Failed to get fuels version") from exc
        return fuels_version_from_toml(response.text)


def _http_proxy() -> str | None:
    import os

    return os.environ.get("http_proxy")