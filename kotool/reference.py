"""Parsing of container image references."""

from __future__ import annotations

import ipaddress
import re
import string
from dataclasses import dataclass

DEFAULT_REGISTRY = "index.docker.io"
DEFAULT_TAG = "latest"
_DOCKER_HUB_ALIAS = "docker.io"
_DEFAULT_NAMESPACE = "library"

_REPOSITORY_CHARS = frozenset(string.ascii_lowercase + string.digits + "_-./")
_TAG_CHARS = frozenset(string.ascii_letters + string.digits + "_-.")
_DIGEST_RE = re.compile(r"sha256:[0-9a-f]{64}")
_REGISTRY_RE = re.compile(
    r"(\[[0-9A-Fa-f:.]+\]|[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?)(:[0-9]+)?"
)
_PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(net) for net in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16")
)


class ReferenceError(ValueError):
    """Raised when a string is not a valid image reference."""


@dataclass(frozen=True)
class Reference:
    """A fully qualified image reference, by tag or by digest."""

    registry: str
    repository: str
    tag: str | None = None
    digest: str | None = None
    insecure: bool = False

    @property
    def name(self) -> str:
        """The repository name including its registry."""
        return f"{self.registry}/{self.repository}"

    @property
    def identifier(self) -> str:
        """The digest if there is one, otherwise the tag."""
        return self.digest or self.tag or DEFAULT_TAG

    @property
    def scheme(self) -> str:
        """The URL scheme used to talk to the registry."""
        if self.insecure or self.registry.startswith("localhost:"):
            return "http"
        host = self.registry
        if host.startswith("["):
            host = host[1:].split("]", 1)[0]
        else:
            host = host.rsplit(":", 1)[0]
        try:
            address = ipaddress.ip_address(host)
        except ValueError:
            return "https"
        if address.is_loopback:
            return "http"
        if address.version == 4 and any(address in net for net in _PRIVATE_NETWORKS):
            return "http"
        return "https"

    def __str__(self) -> str:
        if self.digest:
            return f"{self.name}@{self.digest}"
        return f"{self.name}:{self.tag}"


def _check_element(kind: str, value: str, allowed: frozenset[str], low: int, high: int) -> None:
    if not low <= len(value) <= high:
        raise ReferenceError(
            f"{kind} must be between {low} and {high} characters in length: {value}"
        )
    bad = set(value) - allowed
    if bad:
        raise ReferenceError(
            f"{kind} can only contain the characters `{''.join(sorted(allowed))}`: {value}"
        )


def _check_registry(registry: str) -> str:
    if not registry or registry == _DOCKER_HUB_ALIAS:
        return DEFAULT_REGISTRY
    if not _REGISTRY_RE.fullmatch(registry):
        raise ReferenceError(f"registries must be valid RFC 3986 URI authorities: {registry}")
    return registry


def _split_repository(name: str) -> tuple[str, str]:
    parts = name.split("/", 1)
    if len(parts) == 2 and ("." in parts[0] or ":" in parts[0]):
        registry, repository = parts
    else:
        registry, repository = "", name
    _check_element("repository", repository, _REPOSITORY_CHARS, 2, 255)
    registry = _check_registry(registry)
    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = f"{_DEFAULT_NAMESPACE}/{repository}"
    return registry, repository


def _parse_tag(s: str, insecure: bool) -> Reference:
    base, tag = s, DEFAULT_TAG
    head, sep, last = s.rpartition(":")
    if sep and "/" not in last:
        base, tag = head, last
    _check_element("tag", tag, _TAG_CHARS, 1, 128)
    registry, repository = _split_repository(base)
    return Reference(registry=registry, repository=repository, tag=tag, insecure=insecure)


def _parse_digest(s: str, insecure: bool) -> Reference:
    parts = s.split("@")
    if len(parts) != 2:
        raise ReferenceError(f"a digest must contain exactly one '@' separator: {s}")
    base, digest = parts
    if not _DIGEST_RE.fullmatch(digest):
        raise ReferenceError(f"unsupported digest: {digest}")
    try:
        base = _parse_tag(base, insecure).name
    except ReferenceError:
        pass
    registry, repository = _split_repository(base)
    return Reference(registry=registry, repository=repository, digest=digest, insecure=insecure)


def parse_reference(s: str, insecure: bool = False) -> Reference:
    """Parse ``s`` as a tag reference or, failing that, a digest reference."""
    for parse in (_parse_tag, _parse_digest):
        try:
            return parse(s, insecure)
        except ReferenceError:
            continue
    raise ReferenceError(f"could not parse reference: {s}")