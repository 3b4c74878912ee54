"""
Construction of the three build manifests (files to copy, sources to compile,
HTML files to rewrite) from a :class:`~yabs.build_config.BuildDescription`.

"""

from __future__ import annotations

import dataclasses
import logging
import os.path
import pathlib
import posixpath
import typing

from ._typing_compat import TypeAlias
from .build_config import BuildDescription, SourceEntry, Variables
from .errors import SamePathError
from .path_expansion import expand, has_mask, split_masked_path
from .staleness import is_source_newer, needs_update

logger = logging.getLogger(__name__)

DEFAULT_COMPILE_OPTIONS = '--compress --mangle'
COMPILED_SOURCE_EXTENSION = '.min.js'


@dataclasses.dataclass(frozen=True)
class CopyEntry:
    source: pathlib.Path
    destination: pathlib.Path


@dataclasses.dataclass(frozen=True)
class CompileEntry:
    source: pathlib.Path
    #: The source path as written in the build description (``source_dir/file``),
    #: which is what ``<script src>`` references in HTML files resolve to.
    original_source: str
    destination: pathlib.Path
    compile_options: str = DEFAULT_COMPILE_OPTIONS
    header: tuple[str, ...] | None = None
    variables: Variables | None = None
    force_preprocessor: bool = False

    def __post_init__(self) -> None:
        # Every entry holds its own copy of the header lines and variables.
        if self.header is not None:
            object.__setattr__(self, 'header', tuple(self.header))
        if self.variables is not None:
            object.__setattr__(
                self,
                'variables',
                {name: tuple(values) for name, values in self.variables.items()},
            )


@dataclasses.dataclass(frozen=True)
class HTMLEntry:
    source: pathlib.Path
    destination: pathlib.Path


ManifestEntry: TypeAlias = typing.Union[CopyEntry, CompileEntry, HTMLEntry]


@dataclasses.dataclass(frozen=True)
class Manifests:
    files: tuple[CopyEntry, ...] = ()
    sources: tuple[CompileEntry, ...] = ()
    html: tuple[HTMLEntry, ...] = ()
    #: Maps the original source of every compiled script (up to date or not)
    #: to the file name of its compiled output.
    compiled_scripts: typing.Mapping[str, str] = dataclasses.field(default_factory=dict)

    def entries(self) -> typing.Iterator[ManifestEntry]:
        yield from self.files
        yield from self.sources
        yield from self.html

    def __len__(self) -> int:
        return len(self.files) + len(self.sources) + len(self.html)


def normalize_source_path(source_dir: str, relative_path: str) -> str:
    """Join and normalize a path relative to the source directory, using forward slashes."""
    joined = posixpath.join(source_dir.replace('\\', '/'), relative_path.replace('\\', '/'))
    return posixpath.normpath(joined)


def compiled_output_name(entry: SourceEntry) -> str:
    """
    The path of the compiled source relative to the destination directory.

    The output always lives in the same directory as the source, either under the
    name given by ``output_file``, or as the source's stem with a ``.min.js`` extension.
    """
    directory, filename = posixpath.split(entry.file.replace('\\', '/'))
    if entry.output_file:
        name = posixpath.basename(entry.output_file.replace('\\', '/'))
    else:
        name = posixpath.splitext(filename)[0] + COMPILED_SOURCE_EXTENSION
    return posixpath.join(directory, name)


def uses_preprocessor(entry: CompileEntry, active_variables: typing.Sequence[str]) -> bool:
    if entry.force_preprocessor:
        return True
    return selects_variables(entry.variables, active_variables)


def selects_variables(variables: Variables | None, active_variables: typing.Sequence[str]) -> bool:
    """True when one of the active selectors names a variable set of the entry."""
    if not variables:
        return False
    return any(name in variables for name in active_variables)


def _check_distinct(source: pathlib.Path, destination: pathlib.Path) -> None:
    if os.path.abspath(source) == os.path.abspath(destination):
        raise SamePathError(source)


class ManifestBuilder:
    """
    Lists the work of a build: every entry whose destination is missing or older
    than its source. With ``force``, every entry is listed.

    Sources and HTML files are also listed when the build description is newer
    than their destination, and sources when one of the active variable
    selectors names one of their variable sets.

    Every entry is checked to have a destination distinct from its source, whether
    or not it is up to date.
    """
    def __init__(
        self,
        config: BuildDescription,
        variables: typing.Sequence[str] = (),
        *,
        force: bool = False,
    ) -> None:
        self._config = config
        self.variables = tuple(variables)
        self.force = force
        self.source_root = config.base_dir / config.source_dir
        self.destination_root = config.base_dir / config.destination_dir

    def _is_stale(
        self,
        source: pathlib.Path,
        destination: pathlib.Path,
        *,
        rebuild: bool = False,
        depends_on_description: bool = False,
    ) -> bool:
        _check_distinct(source, destination)
        # A missing source is kept, and reported when the manifests are verified.
        if self.force or rebuild or not source.exists():
            return True
        if needs_update(source, destination):
            return True
        if depends_on_description and self._description_is_newer(destination):
            return True
        logger.debug(f'Skipping {source} (up to date)')
        return False

    def _description_is_newer(self, destination: pathlib.Path) -> bool:
        description = self._config.source_file
        return description.exists() and is_source_newer(description, destination)

    def build(self) -> Manifests:
        manifests = Manifests(
            files=tuple(self._files_manifest()),
            sources=tuple(self._sources_manifest()),
            html=tuple(self._html_manifest()),
            compiled_scripts=self._compiled_scripts(),
        )
        for entry in manifests.entries():
            _check_distinct(entry.source, entry.destination)
        return manifests

    def _files_manifest(self) -> typing.Iterator[CopyEntry]:
        for listing_entry in self._config.files:
            if has_mask(listing_entry):
                directory, mask = split_masked_path(listing_entry)
                source_dir = self.source_root / directory
                destination_dir = self.destination_root / directory
                _check_distinct(source_dir, destination_dir)
                for source, destination in expand(source_dir, destination_dir, mask, force=self.force):
                    yield CopyEntry(source=source, destination=destination)
                continue

            source = self.source_root / listing_entry
            destination = self.destination_root / listing_entry
            if source.is_dir():
                continue
            if self._is_stale(source, destination):
                yield CopyEntry(source=source, destination=destination)

    def _sources_manifest(self) -> typing.Iterator[CompileEntry]:
        for listing_entry in self._config.sources:
            if has_mask(listing_entry.file):
                logger.warning(f'Ignoring source "{listing_entry.file}": masks are not allowed in sources')
                continue
            source = self.source_root / listing_entry.file
            destination = self.destination_root / compiled_output_name(listing_entry)
            rebuild = selects_variables(listing_entry.variables, self.variables)
            if not self._is_stale(source, destination, rebuild=rebuild, depends_on_description=True):
                continue
            compile_options = listing_entry.compile_options
            if compile_options is None:
                compile_options = DEFAULT_COMPILE_OPTIONS
            yield CompileEntry(
                source=source,
                original_source=normalize_source_path(self._config.source_dir, listing_entry.file),
                destination=destination,
                compile_options=compile_options,
                header=listing_entry.header,
                variables=listing_entry.variables,
                force_preprocessor=listing_entry.preprocess,
            )

    def _compiled_scripts(self) -> dict[str, str]:
        # Up to date sources are included too.
        scripts: dict[str, str] = {}
        for listing_entry in self._config.sources:
            if has_mask(listing_entry.file):
                continue
            original_source = normalize_source_path(self._config.source_dir, listing_entry.file)
            scripts.setdefault(original_source, posixpath.basename(compiled_output_name(listing_entry)))
        return scripts

    def _html_manifest(self) -> typing.Iterator[HTMLEntry]:
        for listing_entry in self._config.html:
            if has_mask(listing_entry):
                logger.warning(f'Ignoring HTML file "{listing_entry}": masks are not allowed in html')
                continue
            source = self.source_root / listing_entry
            destination = self.destination_root / listing_entry
            if self._is_stale(source, destination, depends_on_description=True):
                yield HTMLEntry(source=source, destination=destination)


def build_manifests(
    config: BuildDescription,
    variables: typing.Sequence[str] = (),
    *,
    force: bool = False,
) -> Manifests:
    return ManifestBuilder(config, variables, force=force).build()
