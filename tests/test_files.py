import pytest

from kotool.files import FilenameOptions, SelectorOptions, enumerate_files


@pytest.fixture
def tree(tmp_path):
    config = tmp_path / "config"
    (config / "sub").mkdir(parents=True)
    for name in ("a.yaml", "b.json", "c.txt", "e.yml"):
        (config / name).write_text("kind: Foo\n")
    (config / "sub" / "d.yaml").write_text("kind: Bar\n")
    return config


def test_directory_is_not_recursive_by_default(tree):
    files = list(enumerate_files(FilenameOptions(filenames=[str(tree)])))
    assert files == [str(tree / "a.yaml"), str(tree / "b.json")]


def test_recursive_descends_in_sorted_order(tree):
    files = list(enumerate_files(FilenameOptions(filenames=[str(tree)], recursive=True)))
    assert files == [str(tree / "a.yaml"), str(tree / "b.json"), str(tree / "sub" / "d.yaml")]
    assert all(f.endswith((".yaml", ".json")) for f in files)


def test_explicit_file_ignores_extension(tree):
    target = str(tree / "c.txt")
    assert list(enumerate_files(FilenameOptions(filenames=[target]))) == [target]


def test_stdin_passes_through_in_order(tree):
    target = str(tree / "a.yaml")
    files = list(enumerate_files(FilenameOptions(filenames=["-", target, "-"])))
    assert files == ["-", target, "-"]


def test_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(enumerate_files(FilenameOptions(filenames=[str(tmp_path / "nope")])))


def test_no_filenames_yields_nothing():
    assert list(enumerate_files(FilenameOptions())) == []


def test_watch_yields_initial_files_first(tree):
    gen = enumerate_files(FilenameOptions(filenames=[str(tree)], watch=True))
    try:
        first = next(gen)
        second = next(gen)
    finally:
        gen.close()
    assert [first, second] == [str(tree / "a.yaml"), str(tree / "b.json")]


def test_selector_options_hold_query():
    assert SelectorOptions(selector="qux=baz").selector == "qux=baz"