import sys

import pytest

from ..errors import ToolExecutionError
from ..tools import (
    DEFAULT_COMPILER,
    DEFAULT_PREPROCESSOR,
    SubprocessToolRunner,
    ToolResult,
    Toolchain,
    run_checked,
)
from .conftest import FakeToolRunner


@pytest.mark.asyncio
async def test_subprocess_runner__captures_output() -> None:
    runner = SubprocessToolRunner()
    result = await runner.run(
        sys.executable,
        ['-c', 'import sys; sys.stdout.write("out"); sys.stderr.write("err"); sys.exit(3)'],
    )
    assert result == ToolResult(returncode=3, stdout=b'out', stderr=b'err')


@pytest.mark.asyncio
async def test_subprocess_runner__missing_executable() -> None:
    runner = SubprocessToolRunner()
    with pytest.raises(ToolExecutionError) as err_info:
        await runner.run('yabs-no-such-tool', ['input.js'])
    assert err_info.value.returncode == 127
    assert err_info.value.command == ('yabs-no-such-tool', 'input.js')


@pytest.mark.asyncio
async def test_run_checked(tmp_path) -> None:
    source = tmp_path / 'main.js'
    source.write_text('code')
    runner = FakeToolRunner()
    result = await run_checked(runner, 'metascript', [str(source)])
    assert result.stdout == b'[]code'

    failing = FakeToolRunner(failing={'metascript'})
    with pytest.raises(ToolExecutionError, match='failed with exit code 1: boom'):
        await run_checked(failing, 'metascript', [str(source)])


def test_toolchain__from_environ() -> None:
    assert Toolchain.from_environ({}) == Toolchain(DEFAULT_PREPROCESSOR, DEFAULT_COMPILER)
    assert Toolchain.from_environ({'YABS_COMPILER': 'terser', 'YABS_PREPROCESSOR': ''}) == Toolchain(
        preprocessor=DEFAULT_PREPROCESSOR,
        compiler='terser',
    )
