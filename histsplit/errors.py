from __future__ import annotations


class HistsplitError(Exception):
    """Base class for every fatal histsplit failure."""


class ConfigurationError(HistsplitError, ValueError):
    pass


class AlreadyExistsError(ConfigurationError, FileExistsError):
    pass


class FileSystemError(HistsplitError, OSError):
    pass


class ExternalToolError(HistsplitError, RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        command: tuple[str, ...] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class ReplayError(ExternalToolError):
    pass
