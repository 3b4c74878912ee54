"""
Expansion of glob-like file masks into (source, destination) pairs.

Only three mask shapes exist, and only as the final segment of a path:

``*``
    every file, descending into subdirectories
``*.*``
    every file in the directory, without descending
``*.ext``
    files with the ``.ext`` extension in the directory, without descending

"""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import typing

from .errors import ConfigError, MissingSourceError
from .staleness import needs_update

logger = logging.getLogger(__name__)

MASK_CHARACTER = '*'

PathPair = typing.Tuple[pathlib.Path, pathlib.Path]


@dataclasses.dataclass(frozen=True)
class Mask:
    recursive: bool = False
    #: The extension (including the leading dot) a file must have. None matches any file.
    extension: str | None = None

    @classmethod
    def everything(cls) -> Mask:
        return cls(recursive=True)

    @classmethod
    def directory(cls) -> Mask:
        return cls()

    @classmethod
    def for_extension(cls, extension: str) -> Mask:
        return cls(extension=extension)

    def matches(self, path: pathlib.Path) -> bool:
        if self.extension is None:
            return True
        return path.suffix == self.extension


def has_mask(path: str) -> bool:
    return MASK_CHARACTER in path


def parse_mask(segment: str) -> Mask:
    """Turn the final segment of a masked path (e.g. ``*.js``) into a :class:`Mask`."""
    if segment == '*':
        return Mask.everything()
    if segment == '*.*':
        return Mask.directory()
    stem, dot, extension = segment.partition('.')
    if stem == '*' and dot and extension and not has_mask(extension) and '.' not in extension:
        return Mask.for_extension(f'.{extension}')
    raise ConfigError(f'Unsupported file mask: "{segment}"', field='files')


def split_masked_path(path: str) -> tuple[str, Mask]:
    """
    Split a masked listing entry such as ``lib/*.js`` into its directory and mask.

    Masks are only allowed in the last part of the path.
    """
    directory, _, segment = path.replace('\\', '/').rpartition('/')
    if has_mask(directory):
        raise ConfigError(
            f'File masks are only allowed in the last part of a path: "{path}"',
            field='files',
        )
    return directory, parse_mask(segment)


def expand(
    source_dir: pathlib.Path,
    destination_dir: pathlib.Path,
    mask: Mask,
    *,
    force: bool = False,
) -> list[PathPair]:
    """
    List the files of ``source_dir`` matching ``mask`` whose destination needs an update.

    Files which are not newer than an existing destination are skipped, unless
    ``force`` is set.
    """
    if not source_dir.exists():
        raise MissingSourceError(source_dir)

    pairs: list[PathPair] = []
    for source in sorted(source_dir.iterdir()):
        destination = destination_dir / source.name
        if source.is_dir():
            if mask.recursive:
                pairs.extend(expand(source, destination, mask, force=force))
            continue
        if not mask.matches(source):
            continue
        if not force and not needs_update(source, destination):
            logger.debug(f'Skipping {source} (up to date)')
            continue
        pairs.append((source, destination))
    return pairs
