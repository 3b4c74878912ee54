import pathlib
import typing


class BuildError(Exception):
    """Base class of every error which aborts a build."""


class ConfigError(BuildError):
    def __init__(
        self,
        msg: str,
        *,
        path: typing.Optional[pathlib.Path] = None,
        field: typing.Optional[str] = None,
    ) -> None:
        super().__init__(msg)
        self.path = path
        self.field = field


class MissingSourceError(BuildError):
    def __init__(self, path: pathlib.Path) -> None:
        super().__init__(f'Could not find file: {path}')
        self.path = path


class SamePathError(BuildError):
    def __init__(self, path: pathlib.Path) -> None:
        super().__init__(f'Source file: "{path}" cannot be the same as the destination!')
        self.path = path


class ToolExecutionError(BuildError):
    def __init__(
        self,
        command: typing.Sequence[str],
        returncode: int,
        stderr: str = '',
    ) -> None:
        detail = f': {stderr.strip()}' if stderr.strip() else ''
        super().__init__(
            f'Command "{" ".join(command)}" failed with exit code {returncode}{detail}',
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr


class SourceDecodeError(BuildError):
    def __init__(self, path: pathlib.Path, reason: str) -> None:
        super().__init__(f'File: "{path}" is not valid UTF-8 text ({reason})')
        self.path = path
