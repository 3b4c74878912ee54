import dataclasses
import logging
import pathlib
import time
import typing

from .build_config import BatchDescription, BuildDescription, load_build_config
from .builder import Builder
from .errors import ConfigError
from .tools import ToolRunner, Toolchain

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BatchEntry:
    file: pathlib.Path
    #: The variable selectors the build is run with.
    variables: tuple[str, ...]


@dataclasses.dataclass(frozen=True)
class BatchStats:
    succeeded: int
    failed: int
    elapsed: float


def parse_option_string(options: str) -> tuple[str, ...]:
    """Extract the variable names from a string such as ``"-debug -verbose"``."""
    variables = []
    for token in options.split():
        if len(token) >= 2 and token.startswith('-'):
            name = token.lstrip('-')
            if name:
                variables.append(name)
    return tuple(variables)


def build_batch_manifest(
    description: BatchDescription,
    variables: typing.Sequence[str],
) -> list[BatchEntry]:
    """
    Resolve the batch listing against the batch file's directory.

    Entries with options use those as their variables, the others inherit the
    variables of the invocation.
    """
    manifest = []
    for listing_entry in description.entries:
        if listing_entry.options:
            entry_variables = parse_option_string(listing_entry.options)
        else:
            entry_variables = tuple(variables)
        manifest.append(
            BatchEntry(
                file=(description.base_dir / listing_entry.file).absolute(),
                variables=entry_variables,
            ),
        )
    return manifest


def load_batch_target(path: pathlib.Path) -> BuildDescription:
    if not path.exists():
        raise ConfigError(f'Cannot find file: {path}', path=path)
    config = load_build_config(path)
    if isinstance(config, BatchDescription):
        raise ConfigError(f'Cannot have nested batch builds: {path}!', path=path, field='batch_build')
    return config


class BatchBuilder:
    """
    Runs the builds listed in a batch description, one after the other.

    With ``nofail``, a failing build is logged and counted, and the batch carries on
    with the next build. Otherwise the first failure aborts the batch.
    """
    def __init__(
        self,
        description: BatchDescription,
        variables: typing.Sequence[str] = (),
        *,
        nofail: bool = False,
        tool_runner: typing.Optional[ToolRunner] = None,
        toolchain: typing.Optional[Toolchain] = None,
        force: bool = False,
    ) -> None:
        self.description = description
        self.force = force
        self.variables = tuple(variables)
        self.nofail = nofail
        self._tool_runner = tool_runner
        self._toolchain = toolchain

    async def build_one(self, entry: BatchEntry) -> None:
        config = load_batch_target(entry.file)
        builder = Builder(
            config,
            entry.variables,
            tool_runner=self._tool_runner,
            toolchain=self._toolchain,
            force=self.force,
        )
        await builder.build()

    async def build(self) -> BatchStats:
        start_time = time.monotonic()
        logger.info(f'Starting <batch build>: {self.description.source_file}')

        manifest = build_batch_manifest(self.description, self.variables)
        n_succeeded = 0
        n_failed = 0
        for index, entry in enumerate(manifest, start=1):
            logger.info(f'=== <batch build> {index}/{len(manifest)} ===')
            try:
                await self.build_one(entry)
            except Exception as err:
                if not self.nofail:
                    logger.error(f'Build {index}/{len(manifest)} failed, aborting the batch build')
                    raise
                logger.error(f'Build of {entry.file} failed: {err}')
                n_failed += 1
            else:
                n_succeeded += 1

        stats = BatchStats(
            succeeded=n_succeeded,
            failed=n_failed,
            elapsed=time.monotonic() - start_time,
        )
        logger.info('=== <batch build> finished! ===')
        if self.nofail:
            logger.info(f'{stats.succeeded} builds finished, {stats.failed} failed in {stats.elapsed:.2f}s.')
        else:
            logger.info(f'{stats.succeeded} builds finished in {stats.elapsed:.2f}s.')
        return stats
