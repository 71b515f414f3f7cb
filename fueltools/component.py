"""The catalogue of components that can be installed, read from components.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path

# forc gets slightly different handling from the other components.
FORC = "forc"
FUELUP = "fuelup"
# forc-client ships the binaries 'forc-run' and 'forc-deploy'.
FORC_CLIENT = "forc-client"


class ComponentError(Exception):
    """Raised when the component catalogue is malformed or a component is unknown."""


@dataclass(frozen=True)
class Component:
    """A distributable component as declared in components.toml."""

    name: str
    tarball_prefix: str
    executables: tuple[str, ...]
    repository_name: str
    targets: tuple[str, ...]
    is_plugin: bool | None = None
    publish: bool | None = None
    show_fuels_version: bool | None = None


@dataclass
class Plugin:
    """A forc plugin and the executables it provides."""

    name: str
    executables: list[str]
    publish: bool | None = None

    def is_main_executable(self) -> bool:
        """True when the plugin ships exactly one executable named after itself."""
        return len(self.executables) == 1 and self.name == self.executables[0]


_REQUIRED_STR = ("name", "tarball_prefix", "repository_name")
_REQUIRED_LIST = ("executables", "targets")
_OPTIONAL_BOOL = ("is_plugin", "publish", "show_fuels_version")


def _component_from_table(key: str, table: object) -> Component:
    if not isinstance(table, dict):
        raise ComponentError(f"component '{key}' must be a table")
    values: dict[str, object] = {}
    for name in _REQUIRED_STR:
        value = table.get(name)
        if not isinstance(value, str):
            raise ComponentError(f"component '{key}': missing or invalid field '{name}'")
        values[name] = value
    for name in _REQUIRED_LIST:
        value = table.get(name)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ComponentError(f"component '{key}': missing or invalid field '{name}'")
        values[name] = tuple(value)
    for name in _OPTIONAL_BOOL:
        value = table.get(name)
        if value is not None and not isinstance(value, bool):
            raise ComponentError(f"component '{key}': field '{name}' must be a boolean")
        values[name] = value
    return Component(**values)


@dataclass
class Components:
    """All components, keyed by their table name."""

    component: dict[str, Component] = field(default_factory=dict)

    @classmethod
    def from_toml(cls, text: str) -> Components:
        """Parse a components.toml document."""
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ComponentError(f"invalid components toml: {exc}") from exc
        tables = data.get("component")
        if not isinstance(tables, dict):
            raise ComponentError("missing field 'component'")
        return cls({key: _component_from_table(key, value) for key, value in tables.items()})

    @classmethod
    def load(cls, path: str | PathLike[str]) -> Components:
        """Read and parse a components.toml file."""
        return cls.from_toml(Path(path).read_text(encoding="utf-8"))

    def from_name(self, name: str) -> Component:
        """Look up a component by name; fuelup itself is always known."""
        if name == FUELUP:
            return Component(
                name=FUELUP,
                tarball_prefix=FUELUP,
                executables=(FUELUP,),
                repository_name=FUELUP,
                targets=(FUELUP,),
                is_plugin=False,
                publish=True,
                show_fuels_version=False,
            )
        try:
            return self.component[name]
        except KeyError:
            raise ComponentError(f"component with name '{name}' does not exist") from None

    def is_default_forc_plugin(self, name: str) -> bool:
        """True for executables shipped with forc itself, and for forc-client."""
        forc = self.from_name(FORC)
        return (name in forc.executables and name != FORC) or name == FORC_CLIENT

    def contains_published(self, name: str) -> bool:
        """True if the name occurs within the concatenated names of publishable components."""
        return name in "".join(c.name for c in self.collect_publishables())

    def collect_publishables(self) -> list[Component]:
        """Components that declare a 'publish' field, sorted by name."""
        return sorted(
            (c for c in self.component.values() if c.publish is not None),
            key=lambda c: c.name,
        )

    def collect_exclude_plugins(self) -> list[Component]:
        """Components that do not declare 'is_plugin', sorted by name."""
        return sorted(
            (c for c in self.component.values() if c.is_plugin is None),
            key=lambda c: c.name,
        )

    def collect_show_fuels_versions(self) -> list[Component]:
        """Components whose fuels version should be shown, sorted by name."""
        return sorted(
            (c for c in self.component.values() if c.show_fuels_version is True),
            key=lambda c: c.name,
        )

    def collect_plugins(self) -> list[Plugin]:
        """Plugins, sorted by name."""
        plugins = [
            Plugin(name=c.name, executables=list(c.executables), publish=c.publish)
            for c in self.component.values()
            if c.is_plugin
        ]
        return sorted(plugins, key=lambda p: p.name)

    def collect_plugin_executables(self) -> list[str]:
        """All executables of all plugins, in plugin name order."""
        return [exe for plugin in self.collect_plugins() for exe in plugin.executables]

    def is_distributed_by_forc(self, plugin_name: str) -> bool:
        """True if the forc component ships an executable of this name."""
        forc = self.component.get(FORC)
        return forc is not None and plugin_name in forc.executables