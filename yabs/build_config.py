"""
Parsing and validation of JSON build descriptions.

A build description is either a batch description::

    {"batch_build": ["app/build.json", {"file": "demo/build.json", "options": "-debug"}]}

or a single build description::

    {
        "source_dir": "src",
        "destination_dir": "dist",
        "html": ["index.html"],
        "sources": [{"file": "main.js", "use_header": "license"}],
        "files": ["assets/*"],
        "headers": {"license": ["/* %name% (c) $YEAR$ */"]},
        "variables": {}
    }

"""

from __future__ import annotations

import dataclasses
import json
import logging
import pathlib
import shlex
import typing

from ._typing_compat import TypeAlias
from .errors import ConfigError

logger = logging.getLogger(__name__)

#: The variables of a source entry: a selector name (as given with ``-name`` on the
#: command line) mapping to a list of ``key=value`` strings for the preprocessor.
Variables: TypeAlias = typing.Mapping[str, typing.Tuple[str, ...]]


@dataclasses.dataclass(frozen=True)
class SourceEntry:
    file: str
    output_file: str | None = None
    compile_options: str | None = None
    header: tuple[str, ...] | None = None
    variables: Variables | None = None
    preprocess: bool = False


@dataclasses.dataclass(frozen=True)
class BuildDescription:
    #: The JSON file this description was read from.
    source_file: pathlib.Path
    source_dir: str
    destination_dir: str
    html: tuple[str, ...] = ()
    sources: tuple[SourceEntry, ...] = ()
    files: tuple[str, ...] = ()

    @property
    def base_dir(self) -> pathlib.Path:
        return self.source_file.parent


@dataclasses.dataclass(frozen=True)
class BatchListingEntry:
    file: str
    #: A whitespace separated string of ``-variable`` tokens, replacing those of the invocation.
    options: str | None = None


@dataclasses.dataclass(frozen=True)
class BatchDescription:
    source_file: pathlib.Path
    entries: tuple[BatchListingEntry, ...] = ()

    @property
    def base_dir(self) -> pathlib.Path:
        return self.source_file.parent


BuildConfig: TypeAlias = typing.Union[BuildDescription, BatchDescription]


def load_build_config(path: pathlib.Path) -> BuildConfig:
    """Read and validate the build description stored in ``path``."""
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except OSError as err:
        raise ConfigError(f'Unable to read build instructions file {path} ({err})', path=path)
    except UnicodeDecodeError as err:
        raise ConfigError(f'Build instructions file {path} is not valid UTF-8 ({err})', path=path)
    except json.JSONDecodeError as err:
        raise ConfigError(f'Build instructions file {path} is not valid JSON ({err})', path=path)
    return parse_build_config(data, source_file=path)


def parse_build_config(data: typing.Any, *, source_file: pathlib.Path) -> BuildConfig:
    if not isinstance(data, dict):
        raise ConfigError(
            'Build instructions file has to contain a JSON object!', path=source_file,
        )

    if 'batch_build' in data:
        return BatchDescription(
            source_file=source_file,
            entries=_parse_batch_listing(data['batch_build'], source_file),
        )

    for field in ('source_dir', 'destination_dir'):
        if field not in data:
            raise ConfigError(
                f'Build instructions file is missing the {field} entry!',
                path=source_file,
                field=field,
            )
        if not isinstance(data[field], str):
            raise ConfigError(
                f'The "{field}" entry in build instructions file has to be a String type!',
                path=source_file,
                field=field,
            )

    for field in ('headers', 'variables'):
        if data.get(field) is not None and not isinstance(data[field], dict):
            raise ConfigError(
                f'The "{field}" entry in build instructions file has to be an Object type!',
                path=source_file,
                field=field,
            )

    sources = data.get('sources')
    if sources is None:
        sources = []
    elif not isinstance(sources, list):
        raise ConfigError(
            'The "sources" entry in build instructions file has to be an Array type!',
            path=source_file,
            field='sources',
        )

    return BuildDescription(
        source_file=source_file,
        source_dir=data['source_dir'],
        destination_dir=data['destination_dir'],
        html=_string_listing(data.get('html'), source_file, 'html'),
        sources=tuple(_parse_source_entry(entry, data, source_file) for entry in sources),
        files=_string_listing(data.get('files'), source_file, 'files'),
    )


def _string_listing(value: typing.Any, path: pathlib.Path, field: str) -> tuple[str, ...]:
    """Normalize a string, or a list of strings, into a tuple. A missing value is empty."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        if not all(isinstance(element, str) for element in value):
            raise ConfigError(
                f'Every element in "{field}" entry listing has to be a String type!',
                path=path,
                field=field,
            )
        return tuple(value)
    raise ConfigError(
        f'The "{field}" entry has to be a String or an Array of Strings!',
        path=path,
        field=field,
    )


def _parse_batch_listing(listing: typing.Any, path: pathlib.Path) -> tuple[BatchListingEntry, ...]:
    if not isinstance(listing, list):
        raise ConfigError(
            'The "batch_build" entry in build instructions file has to be an Array type!',
            path=path,
            field='batch_build',
        )
    entries = []
    for entry in listing:
        if isinstance(entry, str):
            entry = {'file': entry}
        if not isinstance(entry, dict):
            raise ConfigError(
                'Every element in "batch_build" has to be a String or an Object!',
                path=path,
                field='batch_build',
            )
        file = entry.get('file')
        options = entry.get('options')
        if not isinstance(file, str):
            raise ConfigError(
                'Every "batch_build" entry needs a "file" String!', path=path, field='file',
            )
        if options is not None and not isinstance(options, str):
            raise ConfigError(
                'The "options" of a "batch_build" entry has to be a String type!',
                path=path,
                field='options',
            )
        if not file:
            continue
        entries.append(BatchListingEntry(file=file, options=options))
    return tuple(entries)


def _optional_string(entry: dict, field: str, path: pathlib.Path) -> str | None:
    value = entry.get(field)
    if value is not None and not isinstance(value, str):
        raise ConfigError(
            f'The "{field}" of a "sources" entry has to be a String type!', path=path, field=field,
        )
    return value


def _parse_variables(value: typing.Any, path: pathlib.Path, field: str) -> dict[str, tuple[str, ...]]:
    if not isinstance(value, dict):
        raise ConfigError(f'The "{field}" entry has to be an Object type!', path=path, field=field)
    return {
        name: _string_listing(variable_data, path, field)
        for name, variable_data in value.items()
    }


def _resolve_reference(
    document: dict,
    collection: str,
    name: typing.Any,
    path: pathlib.Path,
    field: str,
) -> typing.Any:
    if not isinstance(name, str):
        raise ConfigError(f'The "{field}" reference has to be a String type!', path=path, field=field)
    references = document.get(collection) or {}
    if name not in references:
        logger.warning(f'{path}: "{field}" refers to unknown {collection} entry "{name}", ignoring it')
        return None
    return references[name]


def _parse_source_entry(entry: typing.Any, document: dict, path: pathlib.Path) -> SourceEntry:
    if isinstance(entry, str):
        return SourceEntry(file=entry)
    if not isinstance(entry, dict):
        raise ConfigError(
            'Every element in "sources" has to be a String or an Object!', path=path, field='sources',
        )

    file = entry.get('file')
    if not isinstance(file, str) or not file:
        raise ConfigError('Every "sources" entry needs a "file" String!', path=path, field='file')

    preprocess = entry.get('preprocess', False)
    if not isinstance(preprocess, bool):
        raise ConfigError(
            'The "preprocess" flag of a "sources" entry has to be a Boolean!',
            path=path,
            field='preprocess',
        )

    header = None
    if 'header' in entry:
        header = _string_listing(entry['header'], path, 'header')
    elif 'use_header' in entry:
        reference = _resolve_reference(document, 'headers', entry['use_header'], path, 'use_header')
        if reference is not None:
            header = _string_listing(reference, path, 'headers')

    variables = None
    if 'variables' in entry:
        variables = _parse_variables(entry['variables'], path, 'variables')
    elif 'use_variables' in entry:
        reference = _resolve_reference(
            document, 'variables', entry['use_variables'], path, 'use_variables',
        )
        if reference is not None:
            variables = _parse_variables(reference, path, 'variables')

    compile_options = _optional_string(entry, 'compile_options', path)
    if compile_options is not None:
        try:
            shlex.split(compile_options)
        except ValueError as err:
            raise ConfigError(
                f'The "compile_options" of "{file}" cannot be parsed ({err})',
                path=path,
                field='compile_options',
            )

    return SourceEntry(
        file=file,
        output_file=_optional_string(entry, 'output_file', path),
        compile_options=compile_options,
        header=header,
        variables=variables,
        preprocess=preprocess,
    )
