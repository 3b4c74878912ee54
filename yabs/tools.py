"""
Invocation of the external tools used to build sources.

The pipelines never spawn processes themselves: they go through a :class:`ToolRunner`.

"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import shutil
import typing

from ._typing_compat import Protocol, override
from .errors import ToolExecutionError

logger = logging.getLogger(__name__)

DEFAULT_PREPROCESSOR = 'metascript'
DEFAULT_COMPILER = 'uglifyjs'


@dataclasses.dataclass(frozen=True)
class ToolResult:
    returncode: int
    stdout: bytes = b''
    stderr: bytes = b''


class ToolRunner(Protocol):
    async def run(self, command: str, args: typing.Sequence[str]) -> ToolResult:
        """Run ``command`` with ``args``, and wait for it to finish."""
        ...


class SubprocessToolRunner(ToolRunner):
    """Runs tools as child processes of the event loop, capturing their output."""

    @override
    async def run(self, command: str, args: typing.Sequence[str]) -> ToolResult:
        executable = shutil.which(command) or command
        logger.debug(f'Running {executable} {" ".join(args)}')
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as err:
            raise ToolExecutionError([command, *args], 127, str(err))
        stdout, stderr = await process.communicate()
        return ToolResult(returncode=typing.cast(int, process.returncode), stdout=stdout, stderr=stderr)


async def run_checked(
    runner: ToolRunner,
    command: str,
    args: typing.Sequence[str],
) -> ToolResult:
    """Run a tool, raising a :class:`ToolExecutionError` if it exits with a non-zero status."""
    result = await runner.run(command, args)
    if result.returncode != 0:
        raise ToolExecutionError(
            [command, *args],
            result.returncode,
            result.stderr.decode('utf-8', errors='replace'),
        )
    return result


@dataclasses.dataclass(frozen=True)
class Toolchain:
    #: Invoked as ``<preprocessor> <input-file> <param>...``, writing to stdout.
    preprocessor: str = DEFAULT_PREPROCESSOR
    #: Invoked as ``<compiler> <input-file> <options>... -o <output-file>``.
    compiler: str = DEFAULT_COMPILER

    @classmethod
    def from_environ(cls, environ: typing.Mapping[str, str] = os.environ) -> Toolchain:
        return cls(
            preprocessor=environ.get('YABS_PREPROCESSOR') or DEFAULT_PREPROCESSOR,
            compiler=environ.get('YABS_COMPILER') or DEFAULT_COMPILER,
        )
