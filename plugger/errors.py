from collections.abc import Sequence
from typing import Optional

from .utils import RunArg


class PluggerError(Exception):
    pass


class NotInstalled(PluggerError):
    pass


class PatchFailed(PluggerError):
    pass


class UnsupportedEnvironment(PluggerError):
    pass


class NetworkError(PluggerError):
    pass


class ConfigError(PluggerError):
    pass


class ElevationError(PluggerError):
    """A command run with elevated privileges did not succeed."""

    def __init__(
        self, command: Sequence[RunArg], returncode: int, stderr: Optional[str] = None
    ) -> None:
        self.command = [str(arg) for arg in command]
        self.returncode = returncode
        self.stderr = stderr
        message = f"{' '.join(self.command)} exited with {returncode}"
        if stderr:
            message += f": {stderr}"
        super().__init__(message)


class ElevationDenied(ElevationError):
    pass


class ElevationFailed(ElevationError):
    pass
