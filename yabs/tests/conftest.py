import json
import os
import pathlib
import typing

import pytest

from .._typing_compat import override
from ..tools import ToolResult, ToolRunner


class FakeToolRunner(ToolRunner):
    """
    Stands in for the preprocessor and the compiler.

    The preprocessor echoes its parameters followed by the input, and the
    compiler writes ``compiled(<input>)`` to the file given with ``-o``.
    """

    def __init__(self, failing: typing.Collection[str] = ()) -> None:
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.failing = set(failing)

    @override
    async def run(self, command: str, args: typing.Sequence[str]) -> ToolResult:
        self.calls.append((command, tuple(args)))
        if command in self.failing:
            return ToolResult(returncode=1, stderr=b'boom')
        content = pathlib.Path(args[0]).read_text()
        if '-o' in args:
            output = pathlib.Path(args[list(args).index('-o') + 1])
            output.write_text(f'compiled({content})')
            return ToolResult(returncode=0)
        params = ' '.join(args[1:])
        return ToolResult(returncode=0, stdout=f'[{params}]{content}'.encode())


@pytest.fixture
def tool_runner() -> FakeToolRunner:
    return FakeToolRunner()


def write_file(path: pathlib.Path, content: str = '', *, mtime: float | None = None) -> pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def write_build_file(path: pathlib.Path, description: typing.Mapping[str, typing.Any]) -> pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(description))
    return path
