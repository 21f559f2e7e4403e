import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import trio

logger = logging.getLogger(__name__)

ORIGINAL_BUNDLE = "app.orig.asar"


class Platform(str, Enum):
    STABLE = "stable"
    PTB = "ptb"
    CANARY = "canary"
    DEV = "dev"


@dataclass(frozen=True)
class Installation:
    platform: Platform
    path: Optional[Path]
    installed: bool
    plugged: bool

    @classmethod
    def missing(cls, platform: Platform) -> "Installation":
        return cls(platform=platform, path=None, installed=False, plugged=False)


def original_bundle(app_dir: Path) -> Path:
    return app_dir.parent / ORIGINAL_BUNDLE


class AppDirResolver(ABC):
    """Locates the startup bundle of an installed application."""

    @abstractmethod
    async def app_dir(self, platform: Platform) -> Optional[Path]:
        pass


class ConfiguredResolver(AppDirResolver):
    def __init__(self, app_dirs: Mapping[Platform, Path]) -> None:
        self.app_dirs = dict(app_dirs)

    async def app_dir(self, platform: Platform) -> Optional[Path]:
        return self.app_dirs.get(platform)


async def get_installation(
    platform: Platform, resolver: AppDirResolver
) -> Installation:
    """Snapshot the state of one platform's installation.

    Never raises: anything that goes wrong while locating or inspecting the
    installation is reported as not installed.
    """
    try:
        path = await resolver.app_dir(platform)
        if not path:
            return Installation.missing(platform)
        if not await trio.Path(path.parent).exists():
            return Installation.missing(platform)
        plugged = await trio.Path(original_bundle(path)).exists()
    except Exception:  # pylint:disable=broad-exception-caught
        logger.debug("Cannot probe %s installation", platform.value, exc_info=True)
        return Installation.missing(platform)

    return Installation(platform=platform, path=path, installed=True, plugged=plugged)


async def list_installations(resolver: AppDirResolver) -> dict[Platform, Installation]:
    results: dict[Platform, Installation] = {}

    async def collect(platform: Platform) -> None:
        results[platform] = await get_installation(platform, resolver)

    async with trio.open_nursery() as nursery:
        for platform in Platform:
            nursery.start_soon(collect, platform)

    return {platform: results[platform] for platform in Platform}
