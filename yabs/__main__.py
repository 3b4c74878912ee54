# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

import argparse
import asyncio
import dataclasses
import logging
import os
from pathlib import Path
import sys
import typing

from . import DEFAULT_BUILD_ALL_FILE, DEFAULT_BUILD_FILE, __version__
from .batch import BatchBuilder
from .build_config import BatchDescription, load_build_config
from .builder import Builder
from .errors import BuildError, ConfigError
from .logging_utils import config_logging
from .tools import DEFAULT_COMPILER, DEFAULT_PREPROCESSOR, Toolchain

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BuildParameters:
    #: The build instructions file, if one was given.
    build_file: typing.Optional[Path]
    #: ``--option`` flags which the parser doesn't know about.
    options: tuple[str, ...] = ()
    #: ``-variable`` selectors, used to pick the preprocessor variables of sources.
    variables: tuple[str, ...] = ()


def configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.description = "Build the sources, files and HTML listed in a yabs build description"
    parser.epilog = (
        "Any other -name argument activates the variables called \"name\" "
        "of the sources, and runs them through the preprocessor."
    )

    # Define the function to be called to eventually handle the
    # parsed arguments.
    parser.set_defaults(handler=handler)

    # No -h: every single dash token is a variable selector.
    parser.add_argument(
        "--help", action='help', default=argparse.SUPPRESS,
        help="Show this help message and exit",
    )
    parser.add_argument(
        "build_file", type=Path, nargs='?', default=None,
        help=f"The build description (default: {DEFAULT_BUILD_ALL_FILE} or {DEFAULT_BUILD_FILE})",
    )
    parser.add_argument(
        "--nofail", action='store_true', default=False,
        help="Continue a batch build when one of its builds fails",
    )
    parser.add_argument(
        "--force", action='store_true', default=False,
        help="Rebuild every entry, even those which are up to date",
    )
    parser.add_argument("--preprocessor", default=os.environ.get('YABS_PREPROCESSOR') or DEFAULT_PREPROCESSOR)
    parser.add_argument("--compiler", default=os.environ.get('YABS_COMPILER') or DEFAULT_COMPILER)
    parser.add_argument("--verbose", action='store_true', default=False)
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--version", action='version', version=f'%(prog)s {__version__}')


def parse_build_parameters(
    parser: argparse.ArgumentParser,
    argv: typing.Optional[typing.Sequence[str]] = None,
) -> argparse.Namespace:
    """
    Parse the command line, collecting unknown ``--option`` and ``-variable`` tokens.

    The collected tokens are stored on the returned namespace as ``options`` and
    ``variables``, in the order they were given.
    """
    args, extra = parser.parse_known_args(argv)
    options: list[str] = []
    variables: list[str] = []
    unexpected: list[str] = []
    for token in extra:
        if token.startswith('--') and len(token) > 2:
            options.append(token[2:])
        elif token.startswith('-') and len(token) > 1:
            variables.append(token[1:])
        elif args.build_file is None:
            # argparse gives up on the positional when it follows an unknown option.
            args.build_file = Path(token)
        else:
            unexpected.append(token)
    if unexpected:
        parser.error(f"unrecognized arguments: {' '.join(unexpected)}")
    args.options = tuple(options)
    args.variables = tuple(variables)
    return args


def find_build_file(build_file: typing.Optional[Path], cwd: typing.Optional[Path] = None) -> Path:
    if build_file is not None:
        if not build_file.exists():
            raise ConfigError(f'Cannot find file: {build_file}', path=build_file)
        return build_file
    cwd = cwd or Path.cwd()
    for name in (DEFAULT_BUILD_ALL_FILE, DEFAULT_BUILD_FILE):
        candidate = cwd / name
        if candidate.exists():
            return candidate
    raise ConfigError('Missing input file!')


async def run_build(
    parameters: BuildParameters,
    *,
    nofail: bool,
    force: bool,
    toolchain: Toolchain,
) -> None:
    for option in parameters.options:
        logger.warning(f'Ignoring unknown option --{option}')

    config = load_build_config(find_build_file(parameters.build_file))
    if isinstance(config, BatchDescription):
        await BatchBuilder(
            config, parameters.variables, nofail=nofail, force=force, toolchain=toolchain,
        ).build()
    else:
        await Builder(config, parameters.variables, force=force, toolchain=toolchain).build()


def handler(args: typing.Any) -> int:
    parameters = BuildParameters(
        build_file=args.build_file,
        options=args.options,
        variables=args.variables,
    )
    toolchain = Toolchain(preprocessor=args.preprocessor, compiler=args.compiler)
    logger.info(f'yabs {__version__}')
    try:
        asyncio.run(
            run_build(parameters, nofail=args.nofail, force=args.force, toolchain=toolchain),
        )
    except (BuildError, OSError) as err:
        logger.error(str(err))
        logger.error('Build aborted.')
        return 1
    return 0


def main(argv: typing.Optional[typing.Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog='yabs', allow_abbrev=False, add_help=False)
    configure_parser(parser)
    args = parse_build_parameters(parser, argv)
    config_logging(verbose=args.verbose, log_file=args.log_file)
    return args.handler(args)


if __name__ == '__main__':
    sys.exit(main())
