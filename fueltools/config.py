"""Installed toolchains under the toolchains directory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from fueltools.channel import CHANNELS


@dataclass
class Config:
    """Where toolchains live, the host target and the distributable toolchain names."""

    toolchains_dir: Path
    target: str
    reserved_names: tuple[str, ...] = CHANNELS

    def __post_init__(self) -> None:
        self.toolchains_dir = Path(self.toolchains_dir)

    def _with_target(self, name: str) -> str:
        return f"{name}-{self.target}"

    def _installed(self) -> list[str]:
        with os.scandir(self.toolchains_dir) as entries:
            return [entry.name for entry in entries if entry.is_dir(follow_symlinks=False)]

    def list_toolchains(self) -> list[str]:
        """Installed toolchains: distributable ones sorted, then custom ones sorted."""
        if not self.toolchains_dir.is_dir():
            return []
        reserved = {self._with_target(name) for name in self.reserved_names}
        installed = self._installed()
        dist = sorted(name for name in installed if name in reserved)
        custom = sorted(name for name in installed if name not in reserved)
        return dist + custom

    def list_dist_toolchains(self) -> list[str]:
        """Names (without target) of installed distributable toolchains, in reserved order."""
        if not self.toolchains_dir.is_dir():
            return []
        installed = set(self._installed())
        return [name for name in self.reserved_names if self._with_target(name) in installed]