import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

import trio

from .driver import OS, DirectDriver, current_os

logger = logging.getLogger(__name__)

CONFIG_FOLDER_NAMES = ("plugins", "themes", "settings", "quickcss")

PAYLOAD_NAME = "replugged.asar"


def get_config_dir(
    os_: Optional[OS] = None, environ: Optional[Mapping[str, str]] = None
) -> Path:
    os_ = os_ or current_os()
    env = os.environ if environ is None else environ

    def linux() -> Path:
        if env.get("XDG_CONFIG_HOME"):
            return Path(env["XDG_CONFIG_HOME"], "replugged")
        return Path(env.get("HOME", ""), ".config", "replugged")

    return os_.switch_(
        linux=linux,
        macos=lambda: Path(
            env.get("HOME", ""), "Library", "Application Support", "replugged"
        ),
        windows=lambda: Path(env.get("APPDATA", ""), "replugged"),
    )


CONFIG_PATH = get_config_dir()


async def owner(path: Path) -> tuple[int, int]:
    stat = await trio.Path(path).stat()
    return stat.st_uid, stat.st_gid


async def ensure_config_dir(
    config_dir: Path, *, os_: OS, driver: DirectDriver
) -> None:
    """Create the config directory and its subfolders if they are missing.

    On Linux, anything created here is handed over to the owner of the parent
    directory, so that running the installer as root does not leave the user
    with a config directory they cannot write to.
    """
    created = []
    for path in [config_dir, *(config_dir / name for name in CONFIG_FOLDER_NAMES)]:
        if not await driver.exists(path):
            await driver.makedirs(path)
            created.append(path)

    if not created or not os_.elevation_required:
        return

    uid, gid = await owner(config_dir.parent)
    for path in created:
        if await owner(path) != (uid, gid):
            await driver.chown(path, uid, gid)
    logger.debug("Created config directory %s", config_dir)
