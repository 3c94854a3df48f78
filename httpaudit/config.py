"""
Audit Configuration
===================
Dispatch options for the audit pipeline. Every route is disabled unless it
is switched on explicitly.
"""

import os
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Mapping, Optional

from .exceptions import ConfigurationError

# Nothing is excluded unless configured
DEFAULT_EXCLUDED_PATHS: FrozenSet[str] = frozenset()

ENV_PREFIX = "HTTPAUDIT_"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class RawDumpOptions:
    """Wire-format dump of the request to an auxiliary stream."""
    enable: bool = False
    include_body: bool = False


@dataclass(frozen=True)
class ConsoleOptions:
    """Structured console log entry per request."""
    enable: bool = False
    include_header: bool = False
    include_body: bool = False


@dataclass(frozen=True)
class AuditOptions:
    """Configuration tree for the dispatch policy."""
    raw_dump: RawDumpOptions = field(default_factory=RawDumpOptions)
    console: ConsoleOptions = field(default_factory=ConsoleOptions)
    exclude_paths: FrozenSet[str] = DEFAULT_EXCLUDED_PATHS

    @classmethod
    def from_mapping(cls, tree: Optional[Mapping[str, Any]]) -> "AuditOptions":
        """
        Build options from a nested mapping.

        Accepts ``rawDump``/``raw_dump`` and ``console`` sections with
        camelCase or snake_case keys. Missing keys mean disabled.

        Raises:
            ConfigurationError: a section is not a mapping or a flag is not a bool
        """
        tree = tree or {}
        raw_dump = _section(tree, "rawDump", "raw_dump")
        console = _section(tree, "console")

        exclude_paths = tree.get("excludePaths", tree.get("exclude_paths"))
        return cls(
            raw_dump=RawDumpOptions(
                enable=_flag(raw_dump, "rawDump", "enable"),
                include_body=_flag(raw_dump, "rawDump", "includeBody", "include_body"),
            ),
            console=ConsoleOptions(
                enable=_flag(console, "console", "enable"),
                include_header=_flag(console, "console", "includeHeader", "include_header"),
                include_body=_flag(console, "console", "includeBody", "include_body"),
            ),
            exclude_paths=(
                DEFAULT_EXCLUDED_PATHS if exclude_paths is None
                else _paths(exclude_paths)
            ),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AuditOptions":
        """
        Build options from ``HTTPAUDIT_*`` environment variables.

        Raises:
            ConfigurationError: a flag holds something other than a boolean word
        """
        env = os.environ if environ is None else environ
        exclude_paths = env.get(f"{ENV_PREFIX}EXCLUDE_PATHS")
        return cls(
            raw_dump=RawDumpOptions(
                enable=_env_flag(env, "RAW_DUMP_ENABLE"),
                include_body=_env_flag(env, "RAW_DUMP_INCLUDE_BODY"),
            ),
            console=ConsoleOptions(
                enable=_env_flag(env, "CONSOLE_ENABLE"),
                include_header=_env_flag(env, "CONSOLE_INCLUDE_HEADER"),
                include_body=_env_flag(env, "CONSOLE_INCLUDE_BODY"),
            ),
            exclude_paths=(
                DEFAULT_EXCLUDED_PATHS if exclude_paths is None
                else _paths(exclude_paths.split(","))
            ),
        )

    @property
    def any_enabled(self) -> bool:
        return self.raw_dump.enable or self.console.enable


def _section(tree: Mapping[str, Any], *names: str) -> Mapping[str, Any]:
    for name in names:
        if name in tree:
            section = tree[name]
            if section is None:
                return {}
            if not isinstance(section, Mapping):
                raise ConfigurationError(f"'{name}' must be a mapping")
            return section
    return {}


def _flag(section: Mapping[str, Any], section_name: str, *keys: str) -> bool:
    for key in keys:
        if key in section:
            value = section[key]
            if not isinstance(value, bool):
                raise ConfigurationError(
                    f"'{section_name}.{key}' must be a bool, got {type(value).__name__}"
                )
            return value
    return False


def _env_flag(env: Mapping[str, str], name: str) -> bool:
    raw = env.get(f"{ENV_PREFIX}{name}", "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def _paths(paths: Iterable[str]) -> FrozenSet[str]:
    if isinstance(paths, str):
        paths = paths.split(",")
    return frozenset(p.strip() for p in paths if p and p.strip())
