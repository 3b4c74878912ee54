import dataclasses
import datetime
import logging
import pathlib
import re
import typing

from .errors import SourceDecodeError
from .manifest import CompileEntry

logger = logging.getLogger(__name__)

DOC_COMMENT_PATTERN = re.compile(r'/\*\*(.*?)\*/', re.DOTALL)
DOC_TAG_PATTERN = re.compile(r'\*\s*@(\w+)\s+(.+)')
PLACEHOLDER_PATTERN = re.compile(r'%\S+%')
YEAR_MARKER = '$YEAR$'


def parse_doc_tags(text: str) -> dict[str, str]:
    """
    Collect the ``@tag value`` annotations of all ``/** ... */`` comments in ``text``.

    When a tag is given more than once, the first value wins.
    """
    tags: dict[str, str] = {}
    for comment in DOC_COMMENT_PATTERN.findall(text):
        for name, value in DOC_TAG_PATTERN.findall(comment):
            tags.setdefault(name, value.strip())
    return tags


def has_placeholders(header: typing.Sequence[str]) -> bool:
    return any(
        PLACEHOLDER_PATTERN.search(line) or YEAR_MARKER in line
        for line in header
    )


def substitute(line: str, tags: typing.Mapping[str, str], year: int) -> str:
    for name, value in tags.items():
        line = line.replace(f'%{name}%', value)
    return line.replace(YEAR_MARKER, str(year))


def resolve_header(entry: CompileEntry, *, year: int | None = None) -> CompileEntry:
    """
    Substitute ``%tag%`` placeholders and the ``$YEAR$`` marker in the header of ``entry``.

    The tag values are read from the doc comments of the entry's source file. Unknown
    placeholders are left untouched. The source is only read when the header has
    something to substitute.
    """
    if not entry.header or not has_placeholders(entry.header):
        return entry
    if year is None:
        year = datetime.date.today().year
    try:
        text = pathlib.Path(entry.source).read_text(encoding='utf-8')
    except UnicodeDecodeError as err:
        raise SourceDecodeError(entry.source, str(err)) from err
    tags = parse_doc_tags(text)
    logger.debug(f'Found {len(tags)} doc tags in {entry.source}')
    header = tuple(substitute(line, tags, year) for line in entry.header)
    return dataclasses.replace(entry, header=header)


def resolve_headers(
    entries: typing.Iterable[CompileEntry],
    *,
    year: int | None = None,
) -> tuple[CompileEntry, ...]:
    return tuple(resolve_header(entry, year=year) for entry in entries)
