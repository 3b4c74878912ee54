"""
The build pipelines, one for each kind of manifest entry.

Each pipeline consumes one of the manifests built by :mod:`yabs.manifest`, and
returns the number of files it has written.

"""

from __future__ import annotations

import logging
import os
import pathlib
import posixpath
import re
import shlex
import shutil
import typing

from .build_config import Variables
from .errors import SourceDecodeError
from .manifest import CompileEntry, CopyEntry, HTMLEntry, normalize_source_path, uses_preprocessor
from .tools import ToolRunner, Toolchain, run_checked

logger = logging.getLogger(__name__)

PREPROCESS_FILE_EXTENSION = '.pre'
COMPILE_FILE_EXTENSION = '.cmp'

SCRIPT_SRC_PATTERN = re.compile(r'''<script\b[^>]*\bsrc=(["'])(.*?)\1.*?>''')
LINE_SEPARATOR_PATTERN = re.compile(r'\r?\n')


def read_text(path: pathlib.Path) -> str:
    try:
        return path.read_text(encoding='utf-8')
    except UnicodeDecodeError as err:
        raise SourceDecodeError(path, str(err)) from err


def _ensure_parent_dir(path: pathlib.Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _temp_path(destination: pathlib.Path, extension: str) -> pathlib.Path:
    return destination.with_name(destination.name + extension)


def copy_files(entries: typing.Iterable[CopyEntry]) -> int:
    n_updated = 0
    for entry in entries:
        _ensure_parent_dir(entry.destination)
        shutil.copy(entry.source, entry.destination)
        logger.info(f'Updated {entry.destination}')
        n_updated += 1
    return n_updated


def preprocessor_params(
    variables: Variables | None,
    active_variables: typing.Sequence[str],
) -> list[str]:
    """
    Build the ``-key=value`` preprocessor arguments for the active variable selectors.

    Selectors are taken in the order they were given; selectors which are not
    defined in ``variables`` are ignored, as are malformed ``key=value`` strings.
    """
    params: list[str] = []
    if not variables:
        return params
    for name in active_variables:
        for definition in variables.get(name, ()):
            key, _, value = definition.partition('=')
            key, value = key.strip(), value.strip()
            if key and value:
                params.append(f'-{key}={value}')
    return params


async def compile_source(
    entry: CompileEntry,
    *,
    active_variables: typing.Sequence[str],
    runner: ToolRunner,
    toolchain: Toolchain,
) -> None:
    """Preprocess (when needed) and compile a single source, then prepend its header."""
    _ensure_parent_dir(entry.destination)
    compile_input = entry.source
    compile_output = _temp_path(entry.destination, COMPILE_FILE_EXTENSION)
    preprocess_output = None
    try:
        if uses_preprocessor(entry, active_variables):
            preprocess_output = _temp_path(entry.destination, PREPROCESS_FILE_EXTENSION)
            params = preprocessor_params(entry.variables, active_variables)
            result = await run_checked(runner, toolchain.preprocessor, [str(entry.source), *params])
            preprocess_output.write_bytes(result.stdout)
            compile_input = preprocess_output

        await run_checked(
            runner,
            toolchain.compiler,
            [str(compile_input), *shlex.split(entry.compile_options), '-o', str(compile_output)],
        )

        compiled = read_text(compile_output)
        if entry.header:
            compiled = ''.join(line + os.linesep for line in entry.header) + compiled
        entry.destination.write_bytes(compiled.encode('utf-8'))
    finally:
        compile_output.unlink(missing_ok=True)
        if preprocess_output is not None:
            preprocess_output.unlink(missing_ok=True)


async def compile_sources(
    entries: typing.Iterable[CompileEntry],
    *,
    active_variables: typing.Sequence[str],
    runner: ToolRunner,
    toolchain: Toolchain,
) -> int:
    n_updated = 0
    # One at a time: the tools are run sequentially, never in parallel.
    for entry in entries:
        await compile_source(
            entry,
            active_variables=active_variables,
            runner=runner,
            toolchain=toolchain,
        )
        logger.info(f'Updated {entry.destination}')
        n_updated += 1
    return n_updated


def rewrite_script_source(
    line: str,
    source_dir: str,
    compiled_scripts: typing.Mapping[str, str],
) -> str:
    """
    Point the ``<script src>`` of ``line`` at the compiled version of the script.

    Only scripts which are compiled as part of the build are touched; the directory
    part of the reference is kept as it is.
    """
    match = SCRIPT_SRC_PATTERN.search(line)
    if match is None:
        return line
    src = match.group(2)
    compiled_name = compiled_scripts.get(normalize_source_path(source_dir, src))
    if compiled_name is None:
        return line
    new_src = posixpath.join(posixpath.dirname(src), compiled_name)
    return line[:match.start(2)] + new_src + line[match.end(2):]


def write_html_files(
    entries: typing.Iterable[HTMLEntry],
    *,
    source_dir: str,
    compiled_scripts: typing.Mapping[str, str],
) -> int:
    """
    Write the HTML files, pointing their scripts at the compiled sources.

    ``compiled_scripts`` maps the normalized ``source_dir/file`` path of each compiled
    source to the file name of its compiled output.
    """
    n_updated = 0
    for entry in entries:
        _ensure_parent_dir(entry.destination)
        lines = LINE_SEPARATOR_PATTERN.split(read_text(entry.source))
        output = os.linesep.join(
            rewrite_script_source(line, source_dir, compiled_scripts) for line in lines
        )
        entry.destination.write_bytes(output.encode('utf-8'))
        logger.info(f'Updated {entry.destination}')
        n_updated += 1
    return n_updated
