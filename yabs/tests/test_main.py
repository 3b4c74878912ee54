import argparse
import pathlib

import pytest

from .. import __main__ as yabs_main
from ..__main__ import configure_parser, find_build_file, main, parse_build_parameters
from ..errors import ConfigError
from .conftest import write_build_file, write_file


@pytest.fixture(autouse=True)
def no_logging_config(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    calls: list[dict] = []
    monkeypatch.setattr(yabs_main, 'config_logging', lambda **kwargs: calls.append(kwargs))
    return calls


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='yabs', allow_abbrev=False, add_help=False)
    configure_parser(parser)
    return parser


def test_cli__help(capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit) as err_info:
        main(['--help'])
    assert err_info.value.code == 0
    captured = capsys.readouterr()
    assert len(captured.out.splitlines()) > 1


@pytest.mark.parametrize(
    "argv",
    [
        ['build.json', '-debug', '--strange', '-minify', '--nofail'],
        ['-debug', '--strange', 'build.json', '-minify', '--nofail'],
    ],
)
def test_parse_build_parameters(argv: list[str]) -> None:
    args = parse_build_parameters(_parser(), argv)
    assert args.build_file == pathlib.Path('build.json')
    assert args.variables == ('debug', 'minify')
    assert args.options == ('strange',)
    assert args.nofail is True
    assert args.force is False


def test_parse_build_parameters__defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv('YABS_COMPILER', 'terser')
    monkeypatch.delenv('YABS_PREPROCESSOR', raising=False)
    args = parse_build_parameters(_parser(), [])
    assert args.build_file is None
    assert args.variables == ()
    assert args.compiler == 'terser'
    assert args.preprocessor == 'metascript'


def test_parse_build_parameters__extra_file() -> None:
    with pytest.raises(SystemExit) as err_info:
        parse_build_parameters(_parser(), ['one.json', 'two.json'])
    assert err_info.value.code == 2


def test_find_build_file(tmp_path: pathlib.Path) -> None:
    with pytest.raises(ConfigError, match='Missing input file!'):
        find_build_file(None, cwd=tmp_path)

    build = write_file(tmp_path / 'build.json', '{}')
    assert find_build_file(None, cwd=tmp_path) == build

    build_all = write_file(tmp_path / 'build_all.json', '{}')
    assert find_build_file(None, cwd=tmp_path) == build_all

    assert find_build_file(build, cwd=tmp_path) == build
    with pytest.raises(ConfigError, match='Cannot find file'):
        find_build_file(tmp_path / 'other.json')


def test_main__missing_input(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert main([]) == 1


def test_main__invalid_build_file(tmp_path: pathlib.Path) -> None:
    build_file = write_file(tmp_path / 'build.json', '[]')
    assert main([str(build_file)]) == 1


def test_main__copies_files(
    tmp_path: pathlib.Path,
    monkeypatch: pytest.MonkeyPatch,
    no_logging_config: list[dict],
) -> None:
    write_file(tmp_path / 'src' / 'readme.txt', 'hello')
    write_build_file(
        tmp_path / 'build.json',
        {'source_dir': 'src', 'destination_dir': 'dist', 'files': '*.*'},
    )
    monkeypatch.chdir(tmp_path)

    assert main(['--verbose', '--unknown-option']) == 0
    assert (tmp_path / 'dist' / 'readme.txt').read_text() == 'hello'
    assert no_logging_config == [{'verbose': True, 'log_file': None}]


def test_main__batch(tmp_path: pathlib.Path) -> None:
    write_file(tmp_path / 'app' / 'src' / 'a.txt', 'a')
    write_build_file(
        tmp_path / 'app' / 'build.json',
        {'source_dir': 'src', 'destination_dir': 'dist', 'files': ['a.txt']},
    )
    batch_file = write_build_file(
        tmp_path / 'build_all.json',
        {'batch_build': ['app/build.json', 'missing/build.json']},
    )

    assert main([str(batch_file)]) == 1
    assert (tmp_path / 'app' / 'dist' / 'a.txt').read_text() == 'a'

    (tmp_path / 'app' / 'dist' / 'a.txt').unlink()
    assert main([str(batch_file), '--nofail']) == 0
    assert (tmp_path / 'app' / 'dist' / 'a.txt').exists()


@pytest.mark.parametrize("variable", ['-hd', '-html5', '-headless', '-h'])
def test_parse_build_parameters__variables_starting_with_h(variable: str) -> None:
    args = parse_build_parameters(_parser(), ['build.json', variable])
    assert args.variables == (variable[1:],)
    assert args.build_file == pathlib.Path('build.json')


def test_main__non_utf8_build_file(tmp_path: pathlib.Path) -> None:
    build_file = tmp_path / 'build.json'
    build_file.write_bytes(b'{"source_dir": "\xff"}')
    assert main([str(build_file)]) == 1


def test_main__non_utf8_html(tmp_path: pathlib.Path) -> None:
    (tmp_path / 'src').mkdir()
    (tmp_path / 'src' / 'index.html').write_bytes(b'<p>\xff</p>')
    build_file = write_build_file(
        tmp_path / 'build.json',
        {'source_dir': 'src', 'destination_dir': 'dist', 'html': 'index.html'},
    )
    assert main([str(build_file)]) == 1
