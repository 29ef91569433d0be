"""Build options and loading of the ``.ko`` configuration file."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from kotool.reference import ReferenceError, parse_reference

CONFIG_DEFAULT_BASE_IMAGE = "gcr.io/distroless/static:nonroot"
_CONFIG_NAME = ".ko"
_CONFIG_EXTENSIONS = ("json", "yaml", "yml")
_ENV_PREFIX = "KO_"
_MODULE_RE = re.compile(r'^\s*module\s+"?([^\s"]+)"?', re.MULTILINE)


class ConfigError(ValueError):
    """Raised when build configuration cannot be loaded."""


@dataclass
class BuildConfig:
    """Per-image build settings from the ``builds`` section."""

    id: str = ""
    dir: str = ""
    main: str = ""
    flags: list[str] = field(default_factory=list)


@dataclass
class BuildOptions:
    """Options for building images."""

    base_image: str = ""
    base_image_overrides: dict[str, str] = field(default_factory=dict)
    working_directory: str = ""
    concurrent_builds: int = 0
    disable_optimizations: bool = False
    sbom: str = "spdx"
    platform: str = ""
    labels: list[str] = field(default_factory=list)
    user_agent: str = ""
    insecure_registry: bool = False
    trimpath: bool = True
    build_configs: dict[str, BuildConfig] = field(default_factory=dict)

    def load_config(self) -> None:
        """Fill unset options from the environment and the ``.ko`` config file."""
        if not self.working_directory:
            self.working_directory = "."
        settings = _read_config(self.working_directory)

        if not self.base_image:
            ref = _setting(settings, "defaultBaseImage", CONFIG_DEFAULT_BASE_IMAGE)
            try:
                parse_reference(ref)
            except ReferenceError as exc:
                raise ConfigError(
                    f"'defaultBaseImage': error parsing \"{ref}\" as image reference: {exc}"
                ) from exc
            self.base_image = ref

        if not self.base_image_overrides:
            overrides = settings.get("baseimageoverrides")
            result: dict[str, str] = {}
            if isinstance(overrides, dict):
                for key, value in overrides.items():
                    value = "" if value is None else str(value)
                    try:
                        parse_reference(value)
                    except ReferenceError as exc:
                        raise ConfigError(
                            f"'baseImageOverrides': error parsing \"{value}\" "
                            f"as image reference: {exc}"
                        ) from exc
                    result[str(key).lower()] = value
            self.base_image_overrides = result

        if not self.build_configs:
            builds = _parse_builds(settings.get("builds"))
            try:
                self.build_configs = create_build_config_map(self.working_directory, builds)
            except (OSError, ConfigError) as exc:
                raise ConfigError(f"could not create build config map: {exc}") from exc


def _insensitive(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _insensitive(v) for k, v in value.items()}
    return value


def _read_config(working_directory: str) -> dict[str, Any]:
    search = []
    override = os.environ.get("KO_CONFIG_PATH")
    if override:
        search.append(override)
    search.append(working_directory)
    for directory in search:
        for ext in _CONFIG_EXTENSIONS:
            candidate = os.path.join(directory, f"{_CONFIG_NAME}.{ext}")
            if os.path.isfile(candidate):
                return _load_config_file(candidate, ext)
    return {}


def _load_config_file(path: str, ext: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle) if ext == "json" else yaml.safe_load(handle)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"error reading config file: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"error reading config file: {path} does not hold a mapping")
    return _insensitive(data)


def _setting(settings: dict[str, Any], key: str, default: str) -> str:
    env = os.environ.get(_ENV_PREFIX + key.upper())
    if env:
        return env
    lowered = key.lower()
    if lowered in settings and settings[lowered] is not None:
        return str(settings[lowered])
    return default


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value]
    raise TypeError(f"expected a list of strings, got {value!r}")


def _parse_builds(raw: Any) -> list[BuildConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("configuration section 'builds' cannot be parsed")
    configs = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ConfigError("configuration section 'builds' cannot be parsed")
        fields = {str(k).lower(): v for k, v in entry.items()}
        try:
            configs.append(
                BuildConfig(
                    id=str(fields.get("id") or ""),
                    dir=str(fields.get("dir") or ""),
                    main=str(fields.get("main") or ""),
                    flags=_as_str_list(fields.get("flags")),
                )
            )
        except TypeError as exc:
            raise ConfigError("configuration section 'builds' cannot be parsed") from exc
    return configs


def _find_module(directory: Path) -> tuple[Path, str] | None:
    for candidate in (directory, *directory.parents):
        gomod = candidate / "go.mod"
        if gomod.is_file():
            match = _MODULE_RE.search(gomod.read_text(encoding="utf-8"))
            if match is None:
                return None
            return candidate, match.group(1)
    return None


def _import_path(base_dir: str, path: str, index: int) -> str:
    local = f".{os.sep}{path}"
    target = Path(os.path.abspath(os.path.join(base_dir, path)))
    found = _find_module(target) if target.is_dir() else None
    if found is None:
        raise ConfigError(
            f"'builds': entry #{index} does not contain a valid local import path "
            f"({local}) for directory ({os.path.normpath(base_dir)}): no module found"
        )
    root, module = found
    relative = target.relative_to(root)
    if not relative.parts:
        return module
    return "/".join((module, *relative.parts))


def create_build_config_map(
    working_directory: str, configs: list[BuildConfig]
) -> dict[str, BuildConfig]:
    """Key build configs by the import path of the package each one builds."""
    by_import_path: dict[str, BuildConfig] = {}
    for index, config in enumerate(configs):
        config = replace(
            config,
            id=config.id or f"#{index}",
            dir=config.dir or ".",
            main=config.main or ".",
        )
        base_dir = os.path.join(working_directory, config.dir)

        path = config.main
        if os.path.isfile(os.path.join(base_dir, config.main)):
            path = os.path.dirname(config.main) or "."

        os.stat(os.path.join(base_dir, path))

        by_import_path[_import_path(base_dir, path, index)] = config
    return by_import_path