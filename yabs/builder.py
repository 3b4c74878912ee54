import dataclasses
import logging
import time
import typing

from . import headers, pipelines
from .build_config import BuildDescription
from .errors import MissingSourceError
from .manifest import Manifests, build_manifests
from .tools import SubprocessToolRunner, ToolRunner, Toolchain

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BuildStats:
    files_updated: int
    #: Wall-clock duration of the build, in seconds.
    elapsed: float


class Builder:
    """
    Runs a single build description.

    The build is strictly sequential: the manifests are built and every source is
    verified to exist before anything is written, then the files are copied, the
    sources compiled and the HTML files written.
    """
    def __init__(
        self,
        config: BuildDescription,
        variables: typing.Sequence[str] = (),
        *,
        tool_runner: typing.Optional[ToolRunner] = None,
        toolchain: typing.Optional[Toolchain] = None,
        force: bool = False,
    ) -> None:
        self.config = config
        self.variables = tuple(variables)
        self.force = force
        self._tool_runner = tool_runner or SubprocessToolRunner()
        self._toolchain = toolchain or Toolchain.from_environ()
        self.manifests: typing.Optional[Manifests] = None

    def prepare(self) -> Manifests:
        """Build and verify the manifests, and resolve the source headers. Writes nothing."""
        manifests = build_manifests(self.config, self.variables, force=self.force)
        verify_sources(manifests)
        return dataclasses.replace(manifests, sources=headers.resolve_headers(manifests.sources))

    async def build(self) -> BuildStats:
        start_time = time.monotonic()
        logger.info(f'Starting build: {self.config.source_file}')

        self.manifests = manifests = self.prepare()
        n_updated = 0

        if manifests.files:
            logger.info('Updating files ...')
            n_updated += pipelines.copy_files(manifests.files)

        if manifests.sources:
            logger.info('Compiling sources ...')
            n_updated += await pipelines.compile_sources(
                manifests.sources,
                active_variables=self.variables,
                runner=self._tool_runner,
                toolchain=self._toolchain,
            )

        if manifests.html:
            logger.info('Writing HTML files ...')
            n_updated += pipelines.write_html_files(
                manifests.html,
                source_dir=self.config.source_dir,
                compiled_scripts=manifests.compiled_scripts,
            )

        stats = BuildStats(files_updated=n_updated, elapsed=time.monotonic() - start_time)
        logger.info(f'Build finished! Updated {stats.files_updated} files.')
        logger.info(f'Build completed in {stats.elapsed:.2f}s.')
        return stats


def verify_sources(manifests: Manifests) -> None:
    for entry in manifests.entries():
        if not entry.source.exists():
            raise MissingSourceError(entry.source)
