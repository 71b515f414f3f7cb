"""File helpers: executables, links and whole-file reads and writes."""

from __future__ import annotations

import os
import subprocess
from os import PathLike
from pathlib import Path

from fueltools.version import Version, VersionError

StrPath = str | PathLike[str]


class BinError(Exception):
    """Raised when a binary's version cannot be determined."""


def is_executable(path: StrPath) -> bool:
    """True if the path is a regular file with any execute bit set."""
    path = Path(path)
    return path.is_file() and path.stat().st_mode & 0o111 != 0


def get_bin_version(exec_path: StrPath) -> Version:
    """Run `<exec_path> --version` and parse the last word of its output."""
    exec_path = Path(exec_path)
    if not exec_path.is_file():
        raise BinError("not found")
    try:
        result = subprocess.run([str(exec_path), "--version"], capture_output=True, check=False)
    except OSError as exc:
        raise BinError(str(exc)) from exc
    words = result.stdout.decode("utf-8", errors="replace").split()
    try:
        return Version.parse(words[-1] if words else "")
    except VersionError as exc:
        raise BinError(f"Could not parse version ({exc})") from exc


def hardlink(original: StrPath, link: StrPath) -> None:
    """Replace `link` with a hard link to `original`."""
    try:
        os.remove(link)
    except OSError:
        pass
    os.link(original, link)


def _link_failure(original: StrPath, link: StrPath) -> str:
    return f"Could not create link: {original}->{link}"


def hardlink_file(original: StrPath, link: StrPath) -> None:
    """Hard link `link` to `original`, raising OSError with context on failure."""
    try:
        hardlink(original, link)
    except OSError as exc:
        raise OSError(_link_failure(original, link)) from exc


def symlink_file(original: StrPath, link: StrPath) -> None:
    """Create `link` as a symbolic link to `original` (Unix only)."""
    if os.name != "posix":
        raise OSError("Symbolic link currently only supported on Unix")
    try:
        os.symlink(original, link)
    except OSError as exc:
        raise OSError(_link_failure(original, link)) from exc


def hard_or_symlink_file(original: StrPath, link: StrPath) -> None:
    """Hard link if possible, otherwise fall back to a symbolic link."""
    try:
        hardlink_file(original, link)
    except OSError:
        symlink_file(original, link)


def read_file(name: str, path: StrPath) -> str:
    """Read a whole text file, naming it in the error if that fails."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise OSError(f"Failed to read {name}") from exc


def write_file(path: StrPath, contents: str) -> None:
    """Write `contents` to `path`, truncating it, and flush the data to disk."""
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(contents)
        handle.flush()
        sync = getattr(os, "fdatasync", os.fsync)
        sync(handle.fileno())