import io

import pytest

from kotool.naming import make_namer, PublishOptions, preserve_import_path
from kotool.publishing import (
    Builder,
    NopPublisher,
    PublishError,
    Publisher,
    publish_images,
    write_resolved,
)
from kotool.reference import ReferenceError

DOCKER_REPO = "registry.example.com/repo"
IMPORTPATH = "github.com/google/ko/test"
DIGEST = "sha256:" + "a" * 64


class FakeResult:
    def __init__(self, digest):
        self._digest = digest

    def digest(self):
        return self._digest


class FakeBuilder:
    def __init__(self, unsupported=(), failing=()):
        self.unsupported = set(unsupported)
        self.failing = set(failing)
        self.built = []

    def qualify_import(self, importpath):
        if importpath.startswith("./"):
            return "ko://github.com/google/ko/" + importpath[2:]
        if importpath.startswith("ko://"):
            return importpath
        return "ko://" + importpath

    def is_supported_reference(self, importpath):
        if importpath in self.unsupported:
            raise ValueError("unsupported")

    def build(self, importpath):
        if importpath in self.failing:
            raise RuntimeError("compile failed")
        self.built.append(importpath)
        return FakeResult(DIGEST)


class FailingPublisher:
    def publish(self, result, importpath):
        raise RuntimeError("push denied")

    def close(self):
        pass


def nop():
    return NopPublisher(repo_name=DOCKER_REPO, namer=preserve_import_path)


def test_nop_publisher_strips_scheme_and_names_by_digest():
    ref = nop().publish(DIGEST, "ko://" + IMPORTPATH)
    assert ref.name == f"{DOCKER_REPO}/{IMPORTPATH}"
    assert ref.digest == DIGEST
    assert str(ref) == f"{DOCKER_REPO}/{IMPORTPATH}@{DIGEST}"


def test_nop_publisher_accepts_build_result():
    ref = nop().publish(FakeResult(DIGEST), IMPORTPATH)
    assert ref.digest == DIGEST


def test_nop_publisher_base_import_path_namer():
    publisher = NopPublisher(
        repo_name=DOCKER_REPO, namer=make_namer(PublishOptions(base_import_paths=True))
    )
    ref = publisher.publish(DIGEST, "ko://" + IMPORTPATH)
    assert ref.name == f"{DOCKER_REPO}/test"


def test_nop_publisher_rejects_bad_digest():
    with pytest.raises(ReferenceError):
        nop().publish("not-a-digest", IMPORTPATH)


def test_nop_publisher_context_manager_and_protocols():
    with nop() as publisher:
        ref = publisher.publish(DIGEST, IMPORTPATH)
    assert ref.repository.endswith(IMPORTPATH)
    assert isinstance(publisher, Publisher)
    assert isinstance(FakeBuilder(), Builder)


@pytest.mark.parametrize(
    "publish_arg",
    ["ko://github.com/google/ko/test", "github.com/google/ko/test", "./test"],
)
def test_publish_images_keys_by_qualified_path(publish_arg):
    refs = publish_images([publish_arg], nop(), FakeBuilder())
    key = "ko://" + IMPORTPATH
    assert list(refs) == [key]
    assert refs[key].name == f"{DOCKER_REPO}/{IMPORTPATH}".lower()


def test_publish_images_preserves_order():
    builder = FakeBuilder()
    refs = publish_images(["example.com/b", "example.com/a"], nop(), builder)
    assert list(refs) == ["ko://example.com/b", "ko://example.com/a"]
    assert builder.built == list(refs)


def test_publish_images_unsupported():
    builder = FakeBuilder(unsupported={"ko://example.com/x"})
    with pytest.raises(PublishError, match='importpath "ko://example.com/x" is not supported'):
        publish_images(["example.com/x"], nop(), builder)


def test_publish_images_build_error():
    builder = FakeBuilder(failing={"ko://example.com/x"})
    with pytest.raises(PublishError, match='error building "ko://example.com/x"') as info:
        publish_images(["example.com/x"], nop(), builder)
    assert isinstance(info.value.__cause__, RuntimeError)


def test_publish_images_publish_error():
    with pytest.raises(PublishError, match="error publishing ko://example.com/x: push denied"):
        publish_images(["example.com/x"], FailingPublisher(), FakeBuilder())


def test_publish_images_empty():
    assert publish_images([], nop(), FakeBuilder()) == {}


def test_write_resolved_appends_separator_after_each_document():
    out = io.BytesIO()
    write_resolved([b"a: 1", "b: 2"], out)
    assert out.getvalue() == b"a: 1\n---\nb: 2\n---\n"


def test_write_resolved_nothing():
    out = io.BytesIO()
    write_resolved([], out)
    assert out.getvalue() == b""