"""Generate a channel TOML listing the published components, their versions and tarballs.

Usage::

    build-channel my-channel.toml 2023-02-13
    build-channel my-channel.toml 2023-02-13 forc=0.35.0
    build-channel my-channel.toml 2023-02-13 --github-run-id 123456789 forc=0.35.0
    build-channel --nightly my-channel.toml 2023-02-13
"""

from __future__ import annotations

import argparse
import datetime
import hashlib
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

import requests
import tomlkit
from tomlkit.items import Table

from fueltools.component import Component, ComponentError, Components
from fueltools.version import Version

USER_AGENT = "fuelup"
NIGHTLY_RELEASES_URL = (
    "https://api.github.com/repos/FuelLabs/sway-nightly-binaries/releases/tags/nightly-"
)

_TIMEOUT_SECS = 60
_COMPONENTS_TOML = Path("components.toml")


def _today() -> str:
    return datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d")


def _implicit_table() -> Table:
    """A table whose header is left out when it only holds other tables."""
    return tomlkit.table(is_super_table=True)


def _get(url: str) -> requests.Response:
    response = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=_TIMEOUT_SECS)
    response.raise_for_status()
    return response


def parse_key_val(s: str) -> tuple[str, Version]:
    """Parse a 'component=version' pair."""
    key, sep, value = s.partition("=")
    if not sep:
        raise ValueError(f"invalid KEY=value: no `=` found in `{s}`")
    return key, Version.parse(value)


def _package_arg(s: str) -> tuple[str, Version]:
    try:
        return parse_key_val(s)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def components_exists(components: Mapping[str, Version]) -> bool:
    """True when versions are given for both forc and fuel-core."""
    return "forc" in components and "fuel-core" in components


def validate_components(nightly: bool, components: Mapping[str, Version]) -> None:
    """Reject versions for nightly channels; warn when forc or fuel-core is left unpinned."""
    if nightly and components:
        raise ValueError("Cannot specify versions when building 'nightly' channel")
    if not nightly and not components_exists(components):
        print(
            "warning: You are not specifying versions for 'forc' and 'fuel-core' when "
            "building a channel.\n"
            "This could result in incompatibility between forc and fuel-core."
        )


def get_version(component: Component) -> Version:
    """Version of the latest GitHub release of the component's repository."""
    url = f"https://api.github.com/repos/FuelLabs/{component.repository_name}/releases/latest"
    data = _get(url).json()
    tag_name = data.get("tag_name") if isinstance(data, dict) else None
    if not isinstance(tag_name, str):
        raise ValueError(f"missing field 'tag_name' in latest release of {component.name}")
    return Version.parse(tag_name[len("v"):])


def _assets(release: object) -> list[tuple[str, str]]:
    assets = release.get("assets") if isinstance(release, dict) else None
    if not isinstance(assets, list):
        raise ValueError("missing field 'assets' in nightly release")
    result = []
    for asset in assets:
        if not isinstance(asset, dict):
            raise ValueError("invalid asset in nightly release")
        name = asset.get("name")
        url = asset.get("browser_download_url")
        if not isinstance(name, str) or not isinstance(url, str):
            raise ValueError("invalid asset in nightly release")
        result.append((name, url))
    return result


def _split_version(rest: str) -> tuple[str, str]:
    """Split '<version>[-rcN]-<target>.tar.gz' into version and tarball name."""
    parts = rest.split("-")
    version, remaining = parts[0], parts[1:]
    if remaining and remaining[0].startswith("rc"):
        version = f"{version}-{remaining[0]}"
        remaining = remaining[1:]
    return version, "-".join(remaining)


def write_nightly_document(document: tomlkit.TOMLDocument, components: Sequence[Component]) -> None:
    """Fill the document's 'pkg' table from today's nightly binaries release."""
    release = _get(f"{NIGHTLY_RELEASES_URL}{_today()}").json()

    for asset_name, download_url in _assets(release):
        for component in components:
            # e.g. fuel-core-0.15.1+nightly.20230111.a5514420e5-x86_64-unknown-linux-gnu.tar.gz
            if not asset_name.startswith(component.tarball_prefix):
                continue
            stripped = asset_name[len(component.tarball_prefix):]
            print(f"\nWriting package info for component '{component.name}'")

            if "pkg" in document and component.name not in document["pkg"]:
                document["pkg"][component.name] = tomlkit.table()
                document["pkg"][component.name]["target"] = _implicit_table()

            version, tarball = _split_version(stripped[1:])
            document["pkg"][component.name]["version"] = version

            target, sep, _ = tarball.partition(".")
            if not sep:
                continue
            entry = tomlkit.table()
            entry["url"] = download_url
            document["pkg"][component.name]["target"][target] = entry

            try:
                response = _get(download_url)
            except requests.RequestException:
                continue
            actual_hash = hashlib.sha256(response.content).hexdigest()
            print(f"url: {download_url}\nhash: {actual_hash}")
            document["pkg"][component.name]["target"][target]["hash"] = actual_hash


def _tag_prefix(name: str) -> str:
    if name == "forc":
        return "forc-binaries"
    if name in ("fuel-core", "fuel-core-keygen"):
        return "fuel-core"
    return name


def write_document(
    document: tomlkit.TOMLDocument,
    components: Sequence[Component],
    component_versions: Mapping[str, Version],
) -> None:
    """Fill the document's 'pkg' table from GitHub releases, pinning the given versions."""
    for component in components:
        print(f"\nWriting package info for component '{component.name}'")
        tag_prefix = _tag_prefix(component.name)
        if component.name in component_versions:
            version = component_versions[component.name]
        else:
            version = get_version(component)

        tarball_prefix = (
            tag_prefix if tag_prefix == "forc-binaries" else f"{tag_prefix}-{version}"
        )
        tag = f"v{version}"

        package = tomlkit.table()
        package["version"] = str(version)
        package["target"] = _implicit_table()
        document["pkg"][component.name] = package

        for target in component.targets:
            print(f"Adding url and hash for target '{target}'")
            url = (
                f"https://github.com/FuelLabs/{component.repository_name}/releases/download/"
                f"{tag}/{tarball_prefix}-{target}.tar.gz"
            )
            try:
                response = _get(url)
            except requests.RequestException as exc:
                print(f"Error adding url and hash for target '{target}':\n{exc}", file=sys.stderr)
                continue
            actual_hash = hashlib.sha256(response.content).hexdigest()
            print(f"url: {url}\nhash: {actual_hash}")
            entry = tomlkit.table()
            entry["url"] = url
            entry["hash"] = actual_hash
            document["pkg"][component.name]["target"][target] = entry


def render_channel(
    document: tomlkit.TOMLDocument, publish_date: str, github_run_id: str | None = None
) -> str:
    """The channel file text: optional publisher, publish date, then the packages."""
    header = ""
    if github_run_id is not None:
        header += (
            f'published_by = "https://github.com/FuelLabs/fuelup/actions/runs/{github_run_id}"\n'
        )
    header += f'date = "{publish_date}"\n'
    return header + tomlkit.dumps(document)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="build-channel",
        description="Generate a channel TOML file of published components.",
    )
    parser.add_argument(
        "-n", "--nightly", action="store_true", help="build a nightly channel"
    )
    parser.add_argument("out_file", help="the TOML file name")
    parser.add_argument("publish_date", help="the publish date")
    parser.add_argument("--github-run-id", default=None, help="the GitHub run ID")
    parser.add_argument(
        "packages",
        nargs="*",
        type=_package_arg,
        help="components and their versions to include, eg. forc=0.35.0",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the build-channel command."""
    args = _parser().parse_args(argv)
    component_versions = dict(args.packages)
    try:
        validate_components(args.nightly, component_versions)
        components = Components.load(_COMPONENTS_TOML).collect_publishables()

        document = tomlkit.document()
        document["pkg"] = _implicit_table()
        if args.nightly:
            write_nightly_document(document, components)
        else:
            write_document(document, components, component_versions)

        print(f"writing channel: '{args.out_file}'")
        text = render_channel(document, args.publish_date, args.github_run_id)
        Path(args.out_file).write_text(text, encoding="utf-8")
    except (ValueError, OSError, ComponentError, requests.RequestException) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())