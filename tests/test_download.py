import io
import tarfile
from unittest import mock

import pytest
import requests

from fueltools.channel import Channel
from fueltools.component import Components
from fueltools.download import (
    DownloadCfg,
    build_download_configs,
    download_file_and_unpack,
    fetch_fuels_version,
    fuels_version_from_toml,
    get_latest_version,
    github_releases_download_url,
    tarball_name,
    unpack,
    unpack_bins,
)
from fueltools.net import DownloadError
from fueltools.version import Version

COMPONENTS_TOML = """
[component.forc]
name = "forc"
tarball_prefix = "forc-binaries"
executables = ["forc", "forc-fmt"]
repository_name = "sway"
targets = ["linux_amd64", "darwin_arm64"]
publish = true

[component.fuel-core]
name = "fuel-core"
tarball_prefix = "fuel-core"
executables = ["fuel-core"]
repository_name = "fuel-core"
targets = ["x86_64-unknown-linux-gnu"]
publish = true

[component.forc-fmt]
name = "forc-fmt"
is_plugin = true
tarball_prefix = "forc-binaries"
executables = ["forc-fmt"]
repository_name = "sway"
targets = ["linux_amd64"]
"""

CHANNEL_TOML = """
[pkg.forc]
version = "0.17.0"
fuels_version = "0.36"
[pkg.forc.target.darwin_amd64]
url = "https://example.com/forc-binaries-darwin_amd64.tar.gz"
hash = "aaaa"
[pkg.forc.target.darwin_arm64]
url = "https://example.com/forc-binaries-darwin_arm64.tar.gz"
hash = "bbbb"
[pkg.forc.target.linux_amd64]
url = "https://example.com/forc-binaries-linux_amd64.tar.gz"
hash = "cccc"
[pkg.forc.target.linux_arm64]
url = "https://example.com/forc-binaries-linux_arm64.tar.gz"
hash = "dddd"

[pkg.fuel-core]
version = "0.9.4"
[pkg.fuel-core.target.aarch64-apple-darwin]
url = "https://example.com/fuel-core-0.9.4-aarch64-apple-darwin.tar.gz"
hash = "eeee"
[pkg.fuel-core.target.aarch64-unknown-linux-gnu]
url = "https://example.com/fuel-core-0.9.4-aarch64-unknown-linux-gnu.tar.gz"
hash = "ffff"
[pkg.fuel-core.target.x86_64-apple-darwin]
url = "https://example.com/fuel-core-0.9.4-x86_64-apple-darwin.tar.gz"
hash = "0000"
[pkg.fuel-core.target.x86_64-unknown-linux-gnu]
url = "https://example.com/fuel-core-0.9.4-x86_64-unknown-linux-gnu.tar.gz"
hash = "1111"

[pkg.unknown-thing]
version = "1.0.0"
[pkg.unknown-thing.target.linux_amd64]
url = "https://example.com/unknown.tar.gz"
hash = "2222"
"""


class FakeResponse:
    def __init__(self, status_code=200, body=b"", text=""):
        self.status_code = status_code
        self.headers = {"Content-Length": str(len(body))}
        self._body = body
        self.text = text

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start:start + chunk_size]

    def json(self):
        import json

        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}")

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture(autouse=True)
def _no_proxy(monkeypatch):
    for var in ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def components():
    return Components.from_toml(COMPONENTS_TOML)


def _target_for(name):
    return "linux_amd64" if name == "forc" else "x86_64-unknown-linux-gnu"


def _tarball_bytes(files):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def test_fuels_version_from_toml_string():
    toml = '\n[package]        \nname = "forc"\n\n[dependencies]\nfuels = "0.1"\n'
    assert fuels_version_from_toml(toml) == "0.1"


def test_fuels_version_from_toml_inline_table():
    toml = (
        '\n[package]        \nname = "forc"\n\n[dependencies]\n'
        'fuels = { version = "0.1", features = ["some-feature"] }\n'
    )
    assert fuels_version_from_toml(toml) == "0.1"


def test_fuels_version_from_toml_standard_table_is_empty():
    toml = '[dependencies.fuels]\nversion = "0.1"\n'
    assert fuels_version_from_toml(toml) == ""


def test_fuels_version_from_toml_missing_dependencies():
    with pytest.raises(ValueError, match="the table 'dependencies' does not exist"):
        fuels_version_from_toml('[package]\nname = "forc"\n')


def test_fuels_version_from_toml_missing_fuels():
    with pytest.raises(ValueError, match="'fuels' dependency does not exist"):
        fuels_version_from_toml('[dependencies]\nserde = "1"\n')


def test_unpack_and_link_bins(tmp_path):
    mock_bin_dir = tmp_path / "bins"
    extracted_bins_dir = mock_bin_dir / "forc-binaries"
    extracted_bins_dir.mkdir(parents=True)
    mock_fuelup_dir = tmp_path / "fuelup"
    (extracted_bins_dir / "forc-mock-exec-1").touch()
    (extracted_bins_dir / "forc-mock-exec-2").touch()

    assert extracted_bins_dir.exists()
    assert not (tmp_path / "forc-mock-exec-1").exists()
    assert not (tmp_path / "forc-mock-exec-2").exists()

    result = unpack_bins(mock_bin_dir, mock_fuelup_dir)

    assert not extracted_bins_dir.exists()
    assert (mock_bin_dir / "forc-mock-exec-1").exists()
    assert (mock_bin_dir / "forc-mock-exec-2").exists()
    assert result == [
        mock_fuelup_dir / "forc-mock-exec-1",
        mock_fuelup_dir / "forc-mock-exec-2",
    ]


def test_tarball_name_forc_binaries_has_no_version():
    assert tarball_name("forc-binaries", Version.parse("0.16.2"), "darwin_amd64") == (
        "forc-binaries-darwin_amd64.tar.gz"
    )


def test_tarball_name_with_version():
    assert tarball_name("fuel-core", Version.parse("0.9.4"), "aarch64-apple-darwin") == (
        "fuel-core-0.9.4-aarch64-apple-darwin.tar.gz"
    )


def test_github_releases_download_url():
    url = github_releases_download_url(
        "sway", Version.parse("0.16.2"), "forc-binaries-darwin_amd64.tar.gz"
    )
    assert url == (
        "https://github.com/FuelLabs/sway/releases/download/v0.16.2/"
        "forc-binaries-darwin_amd64.tar.gz"
    )


def test_download_cfg_new_for_component(components):
    cfg = DownloadCfg.new("forc", "linux_amd64", Version.parse("0.17.0"), components)
    assert cfg.tarball_name == "forc-binaries-linux_amd64.tar.gz"
    assert cfg.tarball_url == (
        "https://github.com/FuelLabs/sway/releases/download/v0.17.0/"
        "forc-binaries-linux_amd64.tar.gz"
    )
    assert cfg.hash is None


def test_download_cfg_new_for_fuelup():
    cfg = DownloadCfg.new("fuelup", "x86_64-unknown-linux-gnu", Version.parse("0.20.0"))
    assert cfg.tarball_name == "fuelup-0.20.0-x86_64-unknown-linux-gnu.tar.gz"
    assert cfg.tarball_url.startswith("https://github.com/FuelLabs/fuelup/releases/download/v0.20.0/")


def test_download_cfg_new_unrecognized(components):
    with pytest.raises(ValueError, match="Unrecognized component: nope"):
        DownloadCfg.new("nope", "linux_amd64", Version.parse("1.0.0"), components)


def test_download_cfg_new_without_version_wraps_errors(components):
    with mock.patch("requests.Session.get", return_value=FakeResponse(status_code=500)):
        with pytest.raises(DownloadError, match="Error getting latest tag for 'forc'"):
            DownloadCfg.new("forc", "linux_amd64", None, components)


def test_get_latest_version_fuelup():
    body = '{"url": "https://example.com/r", "tag_name": "v0.20.0", "name": "v0.20.0"}'
    with mock.patch("requests.Session.get", return_value=FakeResponse(text=body)):
        assert get_latest_version("fuelup") == Version.parse("0.20.0")


def test_download_cfgs_from_channel(components):
    channel = Channel.from_toml(CHANNEL_TOML)
    cfgs = build_download_configs(channel, components, _target_for)
    assert len(cfgs) == 2
    assert cfgs[0].name == "forc"
    assert cfgs[0].version == Version.parse("0.17.0")
    assert cfgs[0].hash == "cccc"
    assert cfgs[1].name == "fuel-core"
    assert cfgs[1].version == Version.parse("0.9.4")
    assert cfgs[1].tarball_url == (
        "https://example.com/fuel-core-0.9.4-x86_64-unknown-linux-gnu.tar.gz"
    )


def test_download_cfgs_skip_unknown_target(components):
    channel = Channel.from_toml(CHANNEL_TOML)
    assert build_download_configs(channel, components, "riscv-unknown") == []


def test_from_package_missing_target():
    channel = Channel.from_toml(CHANNEL_TOML)
    with pytest.raises(ValueError, match="riscv"):
        DownloadCfg.from_package("forc", channel.pkg["forc"], "riscv")


def test_unpack_extracts_and_removes(tmp_path):
    tar_path = tmp_path / "a.tar.gz"
    tar_path.write_bytes(_tarball_bytes({"dir/bin": b"binary"}))
    unpack(tar_path, tmp_path)
    assert (tmp_path / "dir" / "bin").read_bytes() == b"binary"
    assert not tar_path.exists()


def test_unpack_corrupted_still_removes(tmp_path):
    tar_path = tmp_path / "broken.tar.gz"
    tar_path.write_bytes(b"not a tarball at all")
    unpack(tar_path, tmp_path)
    assert not tar_path.exists()
    assert list(tmp_path.iterdir()) == []


def test_download_file_and_unpack(tmp_path, components):
    cfg = DownloadCfg.new("forc", "linux_amd64", Version.parse("0.17.0"), components)
    body = _tarball_bytes({"forc-binaries/forc": b"exe"})
    with mock.patch("requests.Session.get", return_value=FakeResponse(body=body)):
        download_file_and_unpack(cfg, tmp_path)
    assert (tmp_path / "forc-binaries" / "forc").read_bytes() == b"exe"
    assert not (tmp_path / cfg.tarball_name).exists()


def test_download_file_and_unpack_failure(tmp_path, components):
    cfg = DownloadCfg.new("forc", "linux_amd64", Version.parse("0.17.0"), components)
    with mock.patch("requests.Session.get", return_value=FakeResponse(status_code=500)):
        with pytest.raises(DownloadError, match="Failed to download forc-binaries-linux_amd64.tar.gz"):
            download_file_and_unpack(cfg, tmp_path)
    assert not (tmp_path / cfg.tarball_name).exists()


def test_fetch_fuels_version(components):
    cfg = DownloadCfg.new("forc", "linux_amd64", Version.parse("0.17.0"), components)
    response = FakeResponse(text='[dependencies]\nfuels = "0.36"\n')
    with mock.patch("requests.Session.get", return_value=response) as get:
        assert fetch_fuels_version(cfg) == "0.36"
    assert get.call_args[0][0] == (
        "https://raw.githubusercontent.com/FuelLabs/sway/v0.17.0/test/src/sdk-harness/Cargo.toml"
    )


def test_fetch_fuels_version_failure(components):
    cfg = DownloadCfg.new("forc", "linux_amd64", Version.parse("0.17.0"), components)
    with mock.patch("requests.Session.get", return_value=FakeResponse(status_code=404)):
        with pytest.raises(DownloadError, match="Failed to get fuels version"):
            fetch_fuels_version(cfg)


def test_fetch_fuels_version_invalid_component(components):
    cfg = DownloadCfg.new("fuel-core", "x86_64-unknown-linux-gnu", Version.parse("0.9.4"), components)
    with pytest.raises(ValueError, match="invalid component to fetch fuels version for"):
        fetch_fuels_version(cfg)