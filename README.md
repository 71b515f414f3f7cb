# fueltools

Library pieces for managing Fuel toolchains, plus two release commands.
It reads component manifests (`components.toml`) and distribution channel
files, builds download configurations, fetches and unpacks release
tarballs, lists installed toolchains, and generates and compares channel
files.

## Installation

```sh
pip install .
```

For running the tests:

```sh
pip install ".[test]"
pytest
```

## Library overview

- `fueltools.version` – `Version`, a semantic version. `Version.parse`
  accepts strict `major.minor.patch[-pre][+build]` strings and raises
  `VersionError` otherwise; versions compare in semver order.
- `fueltools.component` – `Components.from_toml` / `Components.load` read a
  components manifest. A `Components` object answers `from_name`,
  `collect_publishables`, `collect_exclude_plugins`,
  `collect_show_fuels_versions`, `collect_plugins`,
  `collect_plugin_executables`, `contains_published`,
  `is_distributed_by_forc` and `is_default_forc_plugin`. Unknown names and
  malformed manifests raise `ComponentError`.
- `fueltools.channel` – `Channel.from_toml` parses a channel file into
  `Package` entries (version, optional `fuels_version`, and a `HashedBinary`
  url/hash per target). `channel_url(name, date=None)` gives the URL of a
  distributable channel (`latest`, `nightly`, `beta-1` … `beta-5`, `devnet`,
  `testnet`), and `Channel.from_dist_channel` downloads and parses it.
  `is_beta_toolchain` tells beta, devnet and testnet names apart.
- `fueltools.download` – `DownloadCfg` describes one component tarball
  (`DownloadCfg.new`, `DownloadCfg.from_package`);
  `build_download_configs(channel, components, target)` returns the configs
  for every published package in a channel, sorted by name.
  `download_file_and_unpack`, `unpack` and `unpack_bins` fetch, extract and
  lay out binaries; `fuels_version_from_toml` and `fetch_fuels_version` read
  the `fuels` dependency version from a Cargo manifest; `get_latest_version`
  looks up the newest released version.
- `fueltools.net` – `download(url)` and `download_file(url, path)` with up to
  three attempts on HTTP 404 (honouring `retry-after`), a progress bar, and
  proxies taken from `http_proxy`, `HTTPS_PROXY`, `all_proxy` and the like.
  Failures raise `DownloadError`.
- `fueltools.config` – `Config(toolchains_dir, target)` lists installed
  toolchains with `list_toolchains` (distributable first, then custom, each
  sorted) and `list_dist_toolchains`.
- `fueltools.file` – executable checks, `get_bin_version` (runs
  `<binary> --version`), hard/symbolic linking, `read_file` and `write_file`.
- `fueltools.fmt` – ANSI `bold` / `colored_bold`, logged `println_*`
  messages and headers, and `ask_user_yes_no_question`.

Example:

```python
from fueltools.channel import Channel
from fueltools.component import Components
from fueltools.download import build_download_configs

components = Components.load("components.toml")
print([c.name for c in components.collect_publishables()])

with open("channel-fuel-latest.toml", encoding="utf-8") as fh:
    channel = Channel.from_toml(fh.read())

for cfg in build_download_configs(channel, components, "x86_64-unknown-linux-gnu"):
    print(cfg.name, cfg.version, cfg.tarball_url)
```

## Commands

Both commands read `components.toml` from the current directory and print
`Error: ...` and exit with status 1 on failure.

### build-channel

Writes a channel TOML listing the latest release of every publishable
component, with a url and sha256 hash per target:

```sh
build-channel my-channel.toml 2023-02-13
```

Pin component versions with `name=version` pairs (a warning is printed
unless both `forc` and `fuel-core` are pinned):

```sh
build-channel my-channel.toml 2023-02-13 forc=0.35.0 fuel-core=0.17.0
```

Record the CI run that produced the channel, or build a nightly channel
from today's nightly binaries release (versions may not be pinned then):

```sh
build-channel --github-run-id 123456789 my-channel.toml 2023-02-13
build-channel --nightly my-channel.toml 2023-02-13
```

### compare-versions

Print the `forc`/`fuel-core` version pairs, one per line as
`forc-<v>@fuel-core-<v>`, that need compatibility testing against the
currently published latest channel:

```sh
compare-versions compatibility
```

Check the remaining published components for newer releases; when one is
found, `build-channel` is run to regenerate `channel-fuel-latest.toml`
with the currently published `forc` and `fuel-core` versions:

```sh
compare-versions rest
```

## What this package does not do

There is no command for installing, updating, switching or removing
toolchains, no record of a default toolchain or per-project override, and
no detection of the host target: functions that need a target take it as
an argument.