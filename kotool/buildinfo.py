"""Parsing of the module build information printed by ``go version -m``."""

from __future__ import annotations

from dataclasses import dataclass, field

_PATH = "path\t"
_MOD = "mod\t"
_DEP = "dep\t"
_REPLACE = "=>\t"
_BUILD = "build\t"


class BuildInfoError(ValueError):
    """Raised when build information text cannot be parsed."""

    def __init__(self, line: int, reason: str) -> None:
        super().__init__(f"could not parse Go build info: line {line}: {reason}")
        self.line = line
        self.reason = reason


@dataclass
class Module:
    """A module that took part in a build."""

    path: str = ""
    version: str = ""
    sum: str = ""
    replace: Module | None = None


@dataclass(frozen=True)
class BuildSetting:
    """A key/value setting recorded at build time, such as VCS state."""

    key: str
    value: str


@dataclass
class BuildInfo:
    """Build information read from a compiled binary."""

    go_version: str = ""
    path: str = ""
    main: Module = field(default_factory=Module)
    deps: list[Module] = field(default_factory=list)
    settings: list[BuildSetting] = field(default_factory=list)


def _read_module(columns: list[str], line: int) -> Module:
    if len(columns) not in (2, 3):
        raise BuildInfoError(line, f"expected 2 or 3 columns; got {len(columns)}")
    return Module(
        path=columns[0],
        version=columns[1],
        sum=columns[2] if len(columns) == 3 else "",
    )


def parse_build_info(data: bytes | str) -> BuildInfo:
    """Parse build information text into a :class:`BuildInfo`.

    Only newline-terminated lines are considered; unknown lines are ignored.
    """
    if isinstance(data, (bytes, bytearray)):
        text = bytes(data).decode("utf-8", "surrogateescape")
    else:
        text = data

    info = BuildInfo()
    last: Module | None = None
    # The piece after the final newline is not a complete line.
    *lines, _unterminated = text.split("\n")

    for line_num, raw in enumerate(lines, start=1):
        line = raw.removeprefix("\t")
        if line.startswith(_PATH):
            info.path = line[len(_PATH):]
        elif line.startswith(_MOD):
            info.main = _read_module(line[len(_MOD):].split("\t"), line_num)
            last = info.main
        elif line.startswith(_DEP):
            module = _read_module(line[len(_DEP):].split("\t"), line_num)
            info.deps.append(module)
            last = module
        elif line.startswith(_REPLACE):
            columns = line[len(_REPLACE):].split("\t")
            if len(columns) != 3:
                raise BuildInfoError(
                    line_num,
                    f"expected 3 columns for replacement; got {len(columns)}",
                )
            if last is None:
                raise BuildInfoError(
                    line_num, "replacement with no module on previous line"
                )
            last.replace = Module(path=columns[0], version=columns[1], sum=columns[2])
            last = None
        elif line.startswith(_BUILD):
            columns = line[len(_BUILD):].split("\t")
            if len(columns) != 2:
                raise BuildInfoError(
                    line_num,
                    f"expected 2 columns for build setting; got {len(columns)}",
                )
            if not columns[0]:
                raise BuildInfoError(line_num, "empty key")
            info.settings.append(BuildSetting(key=columns[0], value=columns[1]))
    return info