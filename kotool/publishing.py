"""Publishing built images and writing resolved manifests."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import IO, Any, Protocol, runtime_checkable

from kotool.config import STRICT_SCHEME
from kotool.naming import Namer
from kotool.reference import Reference, parse_reference

DOCUMENT_SEPARATOR = b"\n---\n"


class PublishError(RuntimeError):
    """Raised when an import path cannot be built or published."""


@runtime_checkable
class Builder(Protocol):
    """Turns import paths into built image results."""

    def qualify_import(self, importpath: str) -> str:
        """Return the fully qualified form of ``importpath``."""

    def is_supported_reference(self, importpath: str) -> None:
        """Raise if ``importpath`` cannot be built."""

    def build(self, importpath: str) -> Any:
        """Build ``importpath`` and return the result."""


@runtime_checkable
class Publisher(Protocol):
    """Publishes build results and names the published images."""

    def publish(self, result: Any, importpath: str) -> Reference:
        """Publish ``result`` built from ``importpath``."""

    def close(self) -> None:
        """Release any resources held by the publisher."""


def _digest_of(value: Any) -> str:
    if isinstance(value, str):
        return value
    attribute = getattr(value, "digest", None)
    if callable(attribute):
        return str(attribute())
    if attribute is not None:
        return str(attribute)
    return str(value)


@dataclass
class NopPublisher:
    """Names images as if they were published, without publishing anything."""

    repo_name: str
    namer: Namer

    def publish(self, digest: Any, importpath: str) -> Reference:
        """Return the digest reference the image would be published under.

        ``digest`` is a digest string or a build result that provides one.
        """
        path = importpath.removeprefix(STRICT_SCHEME)
        name = self.namer(self.repo_name, path)
        return parse_reference(f"{name}@{_digest_of(digest)}")

    def close(self) -> None:
        """Nothing to release."""

    def __enter__(self) -> NopPublisher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def publish_images(
    importpaths: Iterable[str], publisher: Publisher, builder: Builder
) -> dict[str, Reference]:
    """Build and publish each import path, keyed by its qualified form."""
    images: dict[str, Reference] = {}
    for raw in importpaths:
        importpath = builder.qualify_import(raw)
        try:
            builder.is_supported_reference(importpath)
        except Exception as exc:
            raise PublishError(
                f'importpath "{importpath}" is not supported: {exc}'
            ) from exc
        try:
            result = builder.build(importpath)
        except Exception as exc:
            raise PublishError(f'error building "{importpath}": {exc}') from exc
        try:
            ref = publisher.publish(result, importpath)
        except Exception as exc:
            raise PublishError(f"error publishing {importpath}: {exc}") from exc
        images[importpath] = ref
    return images


def write_resolved(documents: Iterable[bytes | str], out: IO[bytes]) -> None:
    """Write each resolved document in order, each followed by a separator.

    The separator comes last so a streaming consumer knows the document is
    complete.
    """
    for document in documents:
        body = document.encode("utf-8") if isinstance(document, str) else bytes(document)
        out.write(body + DOCUMENT_SEPARATOR)