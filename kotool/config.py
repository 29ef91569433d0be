"""Build settings derived from build options and the environment."""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _distribution_version

from kotool.buildopts import BuildConfig, BuildOptions
from kotool.reference import Reference, ReferenceError, parse_reference

STRICT_SCHEME = "ko://"
DEFAULT_PLATFORM = "linux/amd64"
_PLATFORM_ENV = ("GOOS", "GOARCH", "GOARM")
_INT64_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# Set at release time; when empty the installed distribution's version is used.
VERSION = ""


class SettingsError(ValueError):
    """Raised when build settings cannot be derived from options or environment."""


@dataclass(frozen=True)
class Platform:
    """A target platform: operating system, architecture and optional variant."""

    os: str = ""
    architecture: str = ""
    variant: str = ""

    def __str__(self) -> str:
        return "/".join(p for p in (self.os, self.architecture, self.variant) if p)


@dataclass
class BuildSettings:
    """Everything a builder needs that is derived from :class:`BuildOptions`."""

    platform: str
    creation_time: datetime | None = None
    kodata_creation_time: datetime | None = None
    disable_optimizations: bool = False
    sbom: str = "spdx"
    spdx_version: str = ""
    trimpath: bool = True
    labels: dict[str, str] = field(default_factory=dict)
    build_configs: dict[str, BuildConfig] = field(default_factory=dict)
    jobs: int = 1


def get_time_from_env(env: str) -> datetime | None:
    """Read a Unix timestamp in seconds from ``env``; ``None`` when unset or empty."""
    epoch = os.environ.get(env, "")
    if not epoch:
        return None
    problem = (
        f"the environment variable {env} should be the number of seconds "
        f"since January 1st 1970, 00:00 UTC, got: {epoch!r}"
    )
    if not _INT64_RE.fullmatch(epoch):
        raise SettingsError(f"{problem}: invalid syntax")
    seconds = int(epoch)
    if not _INT64_MIN <= seconds <= _INT64_MAX:
        raise SettingsError(f"{problem}: value out of range")
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise SettingsError(f"{problem}: {exc}") from exc


def get_creation_time() -> datetime | None:
    """The image creation time from ``SOURCE_DATE_EPOCH``."""
    return get_time_from_env("SOURCE_DATE_EPOCH")


def get_ko_data_creation_time() -> datetime | None:
    """The creation time of static data files from ``KO_DATA_DATE_EPOCH``."""
    return get_time_from_env("KO_DATA_DATE_EPOCH")


def is_multiplatform(platform: str) -> bool:
    """Whether the spec selects all platforms or a comma-separated list."""
    return platform == "all" or "," in platform


def parse_platform(platform: str) -> Platform:
    """Parse ``os[/arch[/variant]]`` into a :class:`Platform`."""
    parts = platform.split("/")
    if len(parts) > 3:
        raise SettingsError(f"too many slashes in platform spec: {platform}")
    parts += [""] * (3 - len(parts))
    return Platform(os=parts[0], architecture=parts[1], variant=parts[2])


def _join(*parts: str) -> str:
    joined = "/".join(p for p in parts if p)
    return posixpath.normpath(joined) if joined else ""


def default_platform(platform: str) -> str:
    """Resolve the platform spec, falling back to ``GOOS``/``GOARCH``/``GOARM``.

    An explicit platform may not be combined with any of those variables.
    """
    if platform:
        for env in _PLATFORM_ENV:
            value = os.environ.get(env)
            if value is not None:
                raise SettingsError(f'cannot use --platform with {env}="{value}"')
        return platform

    goos = os.environ.get("GOOS", "")
    goarch = os.environ.get("GOARCH", "")
    goarm = os.environ.get("GOARM", "")
    result = DEFAULT_PLATFORM
    if goos and goarch:
        result = _join(goos, goarch)
    if "arm" in goarch and goarm:
        result = _join(result, "v" + goarm)
    return result


def select_base_image(importpath: str, bo: BuildOptions) -> Reference:
    """Pick and parse the base image for ``importpath``.

    Overrides are matched case-insensitively, since configuration keys are
    lower-cased; an empty override falls back to the default base image.
    """
    path = importpath.removeprefix(STRICT_SCHEME)
    base_image = bo.base_image_overrides.get(path.lower(), "") or bo.base_image
    try:
        return parse_reference(base_image, insecure=bo.insecure_registry)
    except ReferenceError as exc:
        raise SettingsError(f'parsing base image ("{base_image}"): {exc}') from exc


def parse_labels(labels: list[str]) -> dict[str, str]:
    """Split ``key=value`` label flags into a mapping."""
    result: dict[str, str] = {}
    for flag in labels:
        key, sep, value = flag.partition("=")
        if not sep:
            raise SettingsError(f"invalid label flag: {flag}")
        result[key] = value
    return result


@lru_cache(maxsize=None)
def _installed_version() -> str:
    try:
        return _distribution_version("kotool")
    except PackageNotFoundError:
        return ""


def version() -> str:
    """The tool's version, or an empty string when it cannot be determined."""
    return VERSION or _installed_version()


def user_agent() -> str:
    """The User-Agent sent to registries."""
    current = version()
    return f"ko/{current}" if current else "ko"


def build_settings(bo: BuildOptions) -> BuildSettings:
    """Derive builder settings from ``bo`` and the environment."""
    creation_time = get_creation_time()
    kodata_creation_time = get_ko_data_creation_time()
    platform = default_platform(bo.platform)

    if bo.sbom == "none":
        sbom, spdx_version = "none", ""
    elif bo.sbom == "go.version-m":
        sbom, spdx_version = "go.version-m", ""
    else:
        sbom, spdx_version = "spdx", version()

    return BuildSettings(
        platform=platform,
        creation_time=creation_time,
        kodata_creation_time=kodata_creation_time,
        disable_optimizations=bo.disable_optimizations,
        sbom=sbom,
        spdx_version=spdx_version,
        trimpath=bo.trimpath,
        labels=parse_labels(bo.labels),
        build_configs=dict(bo.build_configs),
        jobs=bo.concurrent_builds or os.cpu_count() or 1,
    )