"""Find forc and fuel-core releases newer than the published channel, and pick version pairs to test.

The selected pairs are printed one per line as ``forc-<v>@fuel-core-<v>``, ready to feed a
compatibility workflow. The ``rest`` mode republishes the channel through ``build-channel``
when any other published component has a newer release.
"""

from __future__ import annotations

import datetime
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

import requests
import tomlkit
from tomlkit.exceptions import TOMLKitError

from fueltools.component import ComponentError, Components
from fueltools.version import Version, VersionError

GITHUB_API_REPOS_BASE_URL = "https://api.github.com/repos/FuelLabs/"
ACTIONS_RUNS = "actions/runs"
SWAY_REPO = "sway"
FUEL_CORE_REPO = "fuel-core"
CHANNEL_FUEL_LATEST_TOML_URL = (
    "https://raw.githubusercontent.com/FuelLabs/fuelup/gh-pages/channel-fuel-latest.toml"
)
MAX_VERSIONS = 3
USAGE = "Usage: compare-versions [compatibility|rest]"

_USER_AGENT = "fuelup"
_TIMEOUT_SECS = 60
_COMPONENTS_TOML = Path("components.toml")
_RUN_FIELDS = ("name", "head_branch", "html_url")


def _session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = _USER_AGENT
    return session


def _version_from_branch(branch: str) -> Version:
    """Branches of release runs have the form 'vX.Y.Z'."""
    return Version.parse(branch[1:])


def get_workflow_runs(repo: str) -> list[dict[str, str]]:
    """Successful release workflow runs of a repository, newest first."""
    url = f"{GITHUB_API_REPOS_BASE_URL}{repo}/{ACTIONS_RUNS}?event=release&status=success"
    with _session() as session:
        try:
            response = session.get(url, timeout=_TIMEOUT_SECS)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise RuntimeError(f"Could not get workflow runs for {repo}") from exc
        try:
            data = response.json()
        except ValueError as exc:
            raise ValueError(f"Failed to deserialize a workflow run for repo {repo}") from exc

    runs = data.get("workflow_runs") if isinstance(data, dict) else None
    if not isinstance(runs, list):
        raise ValueError(f"Failed to deserialize a workflow run for repo {repo}")
    result = []
    for run in runs:
        if not isinstance(run, dict) or not all(
            isinstance(run.get(key), str) for key in _RUN_FIELDS
        ):
            raise ValueError(f"Failed to deserialize a workflow run for repo {repo}")
        result.append({key: run[key] for key in _RUN_FIELDS})
    return result


def get_latest_release_version(repo: str) -> Version:
    """Version of the latest GitHub release of a repository."""
    url = f"https://api.github.com/repos/FuelLabs/{repo}/releases/latest"
    with _session() as session:
        try:
            response = session.get(url, timeout=_TIMEOUT_SECS)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise RuntimeError(f"Could not get latest release for {repo}: {exc}") from exc
        data = response.json()
    tag_name = data.get("tag_name") if isinstance(data, dict) else None
    if not isinstance(tag_name, str):
        raise ValueError(f"missing field 'tag_name' in latest release of {repo}")
    return Version.parse(tag_name[len("v"):])


def parse_latest_indexed_version(channel: Mapping, package: str) -> Version:
    """Version of a package as recorded in a channel document."""
    try:
        version_str = channel["pkg"][package]["version"]
    except (KeyError, TypeError):
        version_str = None
    if not isinstance(version_str, str):
        raise ValueError(f"Could not parse {package} version str from channel toml")
    try:
        return Version.parse(str(version_str))
    except VersionError as exc:
        raise ValueError(f"Could not create version from {package}") from exc


def collect_new_versions(channel: Mapping, repo: str) -> list[Version]:
    """Released versions newer than the channel's, newest first, at most MAX_VERSIONS."""
    package_name = "forc" if repo == SWAY_REPO else repo
    latest_indexed = parse_latest_indexed_version(channel, package_name)
    new_versions: list[Version] = []
    for run in get_workflow_runs(repo):
        if run["name"] != "CI":
            continue
        version = _version_from_branch(run["head_branch"])
        if not version > latest_indexed:
            break
        new_versions.append(version)
    return new_versions[:MAX_VERSIONS]


def fmt_versions(forc_version: str, fuel_core_version: str) -> str:
    """Format one forc/fuel-core pair."""
    return f"forc-{forc_version}@fuel-core-{fuel_core_version}"


def print_selected_versions(
    forc_versions: Sequence[Version], fuel_core_versions: Sequence[Version]
) -> str:
    """Print every forc/fuel-core combination, one per line, and return the printed text."""
    output = "".join(
        fmt_versions(str(forc), str(fuel_core)) + "\n"
        for forc in forc_versions
        for fuel_core in fuel_core_versions
    )
    print(output, end="")
    return output


def select_versions(
    channel: Mapping,
    forc_versions: Sequence[Version],
    fuel_core_versions: Sequence[Version],
) -> tuple[list[Version], list[Version]]:
    """Add the channel's published versions to test new releases against them."""
    forc = list(forc_versions)
    fuel_core = list(fuel_core_versions)
    latest_forc = parse_latest_indexed_version(channel, "forc")
    latest_fuel_core = parse_latest_indexed_version(channel, "fuel-core")

    if forc or fuel_core:
        if not forc or fuel_core:
            forc.append(latest_forc)
        if not fuel_core or forc[:-1]:
            fuel_core.append(latest_fuel_core)
    return forc, fuel_core


def get_latest_version(repo: str) -> Version:
    """Latest version from successful release runs, falling back to the releases API."""
    runs = get_workflow_runs(repo)
    if runs:
        return _version_from_branch(runs[0]["head_branch"])
    return get_latest_release_version(repo)


def _parse_channel(text: str) -> tomlkit.TOMLDocument:
    try:
        return tomlkit.parse(text)
    except TOMLKitError as exc:
        raise ValueError("invalid channel.toml parsed") from exc


def _unexpected_fetch_error(exc: Exception) -> RuntimeError:
    return RuntimeError(
        f"Unexpected error trying to fetch channel: {exc} - retrying at the next scheduled time"
    )


def compare_rest(components: Components | None = None) -> None:
    """Rebuild the latest channel via build-channel if any other published component is outdated."""
    if components is None:
        components = Components.load(_COMPONENTS_TOML)

    with _session() as session:
        try:
            response = session.get(CHANNEL_FUEL_LATEST_TOML_URL, timeout=_TIMEOUT_SECS)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise _unexpected_fetch_error(exc) from exc
        channel_doc = _parse_channel(response.text)

    for component in components.collect_publishables():
        if component.name in ("forc", "fuel-core"):
            continue
        latest_actual = get_latest_version(component.repository_name)
        latest_indexed = parse_latest_indexed_version(channel_doc, component.name)
        if latest_indexed < latest_actual:
            forc = parse_latest_indexed_version(channel_doc, "forc")
            fuel_core = parse_latest_indexed_version(channel_doc, "fuel-core")
            date_now = datetime.datetime.now(datetime.timezone.utc).date().isoformat()
            print(
                f"Running build-channel with inputs: date={date_now}, "
                f"forc={forc}, fuel-core={fuel_core}"
            )
            args = [
                "build-channel",
                "channel-fuel-latest.toml",
                date_now,
                f"forc={forc}",
                f"fuel-core={fuel_core}",
            ]
            try:
                os.execvp("build-channel", args)
            except OSError as exc:
                print(f"Failed to run build-channel: {exc}", file=sys.stderr)
            break


def compare_compatibility() -> None:
    """Print the forc/fuel-core pairs whose compatibility should be tested."""
    with _session() as session:
        try:
            response = session.get(CHANNEL_FUEL_LATEST_TOML_URL, timeout=_TIMEOUT_SECS)
        except requests.RequestException as exc:
            raise _unexpected_fetch_error(exc) from exc
        if response.status_code == 404:
            print(
                f"Error {response.status_code}: Could not download channel-fuel-latest.toml "
                f"from {CHANNEL_FUEL_LATEST_TOML_URL}; re-generating channel.",
                file=sys.stderr,
            )
            sway_runs = get_workflow_runs(SWAY_REPO)
            fuel_core_runs = get_workflow_runs(FUEL_CORE_REPO)
            if not sway_runs or not fuel_core_runs:
                raise ValueError("no successful release runs to select versions from")
            print_selected_versions(
                [_version_from_branch(sway_runs[0]["head_branch"])],
                [_version_from_branch(fuel_core_runs[0]["head_branch"])],
            )
            raise SystemExit(0)
        try:
            response.raise_for_status()
        except requests.RequestException as exc:
            raise _unexpected_fetch_error(exc) from exc
        channel_doc = _parse_channel(response.text)

    forc_versions = collect_new_versions(channel_doc, SWAY_REPO)
    fuel_core_versions = collect_new_versions(channel_doc, FUEL_CORE_REPO)
    forc, fuel_core = select_versions(channel_doc, forc_versions, fuel_core_versions)
    print_selected_versions(forc, fuel_core)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: `compare-versions compatibility` or `compare-versions rest`."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        if len(args) != 1:
            raise ValueError(f"Incorrect number of args.\n{USAGE}")
        mode = args[0]
        if mode == "compatibility":
            compare_compatibility()
        elif mode == "rest":
            compare_rest()
        else:
            raise ValueError(f"Unrecognized arg '{mode}'.\n{USAGE}")
    except (RuntimeError, ValueError, OSError, ComponentError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0