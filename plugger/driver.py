import logging
import os
import shutil
import subprocess
import sys
import tempfile
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Optional

import trio

from .errors import ElevationDenied, ElevationFailed
from .utils import RunArg, T

logger = logging.getLogger(__name__)


class OS(ABC):
    @abstractmethod
    def switch_(
        self,
        *,
        linux: Callable[[], T],
        macos: Callable[[], T],
        windows: Callable[[], T],
    ) -> T:
        pass

    def switch(self, *, linux: T, macos: T, windows: T) -> T:
        return self.switch_(
            linux=lambda: linux, macos=lambda: macos, windows=lambda: windows
        )

    @property
    def elevation_required(self) -> bool:
        """Whether the target application tree is normally owned by root."""
        return self.switch(linux=True, macos=False, windows=False)


@dataclass(frozen=True)
class Linux(OS):
    def switch_(
        self,
        *,
        linux: Callable[[], T],
        macos: Callable[[], T],
        windows: Callable[[], T],
    ) -> T:
        return linux()


@dataclass(frozen=True)
class MacOS(OS):
    def switch_(
        self,
        *,
        linux: Callable[[], T],
        macos: Callable[[], T],
        windows: Callable[[], T],
    ) -> T:
        return macos()


@dataclass(frozen=True)
class Windows(OS):
    def switch_(
        self,
        *,
        linux: Callable[[], T],
        macos: Callable[[], T],
        windows: Callable[[], T],
    ) -> T:
        return windows()


def current_os(platform: str = sys.platform) -> OS:
    if platform == "win32":
        return Windows()
    if platform == "darwin":
        return MacOS()
    return Linux()


class Driver(ABC):
    """Filesystem mutations against the target application or config tree."""

    @abstractmethod
    async def makedirs(self, path: Path) -> None:
        pass

    @abstractmethod
    async def rm(self, path: Path) -> None:
        """Remove a file or a directory tree, succeeding if it is absent."""

    @abstractmethod
    async def move(self, source: Path, target: Path) -> None:
        pass

    @abstractmethod
    async def write_file(self, path: Path, content: str | bytes) -> None:
        pass


class DirectDriver(Driver):
    async def exists(self, path: Path) -> bool:
        return await trio.Path(path).exists()

    async def makedirs(self, path: Path) -> None:
        logger.debug("Creating directory %s", path)
        await trio.Path(path).mkdir(parents=True, exist_ok=True)

    async def rm(self, path: Path) -> None:
        logger.debug("Removing %s", path)
        target = trio.Path(path)
        if await target.is_dir() and not await target.is_symlink():
            await trio.to_thread.run_sync(shutil.rmtree, path)
        else:
            await target.unlink(missing_ok=True)

    async def move(self, source: Path, target: Path) -> None:
        logger.debug("Moving %s to %s", source, target)
        await trio.Path(source).replace(target)

    async def write_file(self, path: Path, content: str | bytes) -> None:
        logger.debug("Writing %s", path)
        if isinstance(content, str):
            content = content.encode()
        await trio.Path(path).write_bytes(content)

    async def chown(self, path: Path, uid: int, gid: int) -> None:
        logger.debug("Changing owner of %s to %d:%d", path, uid, gid)
        await trio.to_thread.run_sync(os.chown, path, uid, gid)

    @asynccontextmanager
    async def tempfile(
        self, *, directory: Optional[Path] = None, suffix: Optional[str] = None
    ) -> AsyncIterator[Path]:
        fd, name = await trio.to_thread.run_sync(
            partial(tempfile.mkstemp, dir=directory, suffix=suffix)
        )
        os.close(fd)
        path = Path(name)
        try:
            yield path
        finally:
            await self.rm(path)


# pkexec exit codes for a dismissed or refused authorization dialog
PKEXEC_DENIED = frozenset({126, 127})


class SubprocessDriver(Driver, ABC):
    def __init__(self, *, root: bool = False) -> None:
        self.root = root
        super().__init__()

    def prepare_command(self, args: Iterable[RunArg]) -> list[RunArg]:
        return list(args)

    def raise_for_status(
        self, args: Sequence[RunArg], returncode: int, stderr: Optional[str]
    ) -> None:
        if not self.root:
            raise subprocess.CalledProcessError(
                returncode, [str(arg) for arg in args], stderr=stderr
            )
        if returncode in PKEXEC_DENIED:
            raise ElevationDenied(args, returncode, stderr)
        raise ElevationFailed(args, returncode, stderr)

    async def run(
        self,
        *args: RunArg,
        input: Optional[bytes] = None,  # pylint:disable=redefined-builtin
    ) -> None:
        command = self.prepare_command(args)
        logger.debug("Running %s", " ".join(str(arg) for arg in command))

        try:
            result = await trio.run_process(
                command, check=False, stdin=input, capture_stderr=True
            )
        except FileNotFoundError:
            if self.root:
                raise ElevationFailed(command, 127, f"{command[0]} not found") from None
            raise

        if result.returncode != 0:
            stderr = result.stderr.decode().strip() if result.stderr else None
            self.raise_for_status(args, result.returncode, stderr)

    async def makedirs(self, path: Path) -> None:
        await self.run("mkdir", "-p", path)

    async def rm(self, path: Path) -> None:
        await self.run("rm", "-r", "-f", path)

    async def move(self, source: Path, target: Path) -> None:
        # -T: never move source into target when target is a directory
        await self.run("mv", "-f", "-T", source, target)

    async def write_file(self, path: Path, content: str | bytes) -> None:
        if isinstance(content, str):
            content = content.encode()
        await self.run("cp", "/dev/stdin", path, input=content)


class LocalDriver(SubprocessDriver):
    def prepare_command(self, args: Iterable[RunArg]) -> list[RunArg]:
        if self.root:
            return super().prepare_command(["pkexec", *args])
        else:
            return super().prepare_command(args)


@dataclass
class ElevationPolicy:
    """Chooses how mutations against a path are carried out on this OS."""

    os: OS
    direct: DirectDriver
    elevated: Driver

    @classmethod
    def for_os(cls, os_: Optional[OS] = None) -> "ElevationPolicy":
        return cls(
            os=os_ or current_os(),
            direct=DirectDriver(),
            elevated=LocalDriver(root=True),
        )

    def needs_elevation(self, path: Path) -> bool:  # pylint:disable=unused-argument
        return self.os.elevation_required

    def driver(self, path: Path) -> Driver:
        if self.needs_elevation(path):
            logger.debug("Elevation required for %s", path)
            return self.elevated
        return self.direct
