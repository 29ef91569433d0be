"""Publish options and the strategies for naming published images."""

from __future__ import annotations

import hashlib
import os
import posixpath
from collections.abc import Callable
from dataclasses import dataclass, field

Namer = Callable[[str, str], str]


def _clean_join(*parts: str) -> str:
    joined = "/".join(p for p in parts if p)
    if not joined:
        return ""
    cleaned = posixpath.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


@dataclass
class PublishOptions:
    """Options controlling where and how built images are published."""

    docker_repo: str = ""
    local_domain: str = ""
    user_agent: str = ""
    tags: list[str] = field(default_factory=lambda: ["latest"])
    tag_only: bool = False
    push: bool = True
    local: bool = False
    insecure_registry: bool = False
    oci_layout_path: str = ""
    tarball_file: str = ""
    preserve_import_paths: bool = False
    base_import_paths: bool = False
    bare: bool = False

    @classmethod
    def from_env(cls) -> PublishOptions:
        """Create options with the repository taken from ``KO_DOCKER_REPO``."""
        options = cls()
        repo = os.environ.get("KO_DOCKER_REPO")
        if repo is not None:
            options.docker_repo = repo
        return options


def package_with_md5(base: str, importpath: str) -> str:
    """Name an image by the package's last element plus an MD5 of its path."""
    digest = hashlib.md5(importpath.encode(), usedforsecurity=False).hexdigest()
    return _clean_join(base, f"{_base(importpath)}-{digest}")


def preserve_import_path(base: str, importpath: str) -> str:
    """Name an image by the full import path under the repository."""
    return _clean_join(base, importpath)


def base_import_paths(base: str, importpath: str) -> str:
    """Name an image by the last element of the import path."""
    return _clean_join(base, _base(importpath))


def bare_docker_repo(base: str, importpath: str) -> str:
    """Use the repository itself as the image name."""
    return base


def make_namer(po: PublishOptions) -> Namer:
    """Choose the naming strategy selected by the options."""
    if po.preserve_import_paths:
        return preserve_import_path
    if po.base_import_paths:
        return base_import_paths
    if po.bare:
        return bare_docker_repo
    return package_with_md5