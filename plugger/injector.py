import json
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePath

from .driver import ElevationPolicy
from .errors import NotInstalled, PatchFailed, UnsupportedEnvironment
from .installation import (
    AppDirResolver,
    Installation,
    Platform,
    get_installation,
    list_installations,
    original_bundle,
)
from .paths import CONFIG_PATH, PAYLOAD_NAME

logger = logging.getLogger(__name__)

SANDBOX_MARKER = "flatpak"

PACKAGE_JSON = json.dumps({"main": "index.js", "name": "discord"})


def stub_entry_point(payload: PurePath) -> str:
    return f"require({json.dumps(payload.as_posix())})"


async def move_to_orig(app_dir: Path, *, policy: ElevationPolicy) -> None:
    driver = policy.driver(app_dir)
    orig = original_bundle(app_dir)

    if not await policy.direct.exists(orig):
        logger.info("Moving %s to %s", app_dir, orig)
        await driver.move(app_dir, orig)

    if await policy.direct.exists(app_dir):
        logger.info("Removing leftover %s", app_dir)
        await driver.rm(app_dir)


async def write_stub(app_dir: Path, *, policy: ElevationPolicy, payload: Path) -> None:
    driver = policy.driver(app_dir)
    logger.info("Writing loader stub to %s", app_dir)
    await driver.makedirs(app_dir)
    await driver.write_file(app_dir / "index.js", stub_entry_point(payload))
    await driver.write_file(app_dir / "package.json", PACKAGE_JSON)


async def inject(app_dir: Path, *, policy: ElevationPolicy, config_dir: Path) -> None:
    if SANDBOX_MARKER in str(app_dir):
        raise UnsupportedEnvironment(
            f"Sandboxed installations are not supported: {app_dir}"
        )

    await move_to_orig(app_dir, policy=policy)
    await write_stub(app_dir, policy=policy, payload=config_dir / PAYLOAD_NAME)


async def uninject(app_dir: Path, *, policy: ElevationPolicy) -> None:
    driver = policy.driver(app_dir)
    logger.info("Restoring original bundle at %s", app_dir)
    await driver.rm(app_dir)
    await driver.move(original_bundle(app_dir), app_dir)


@dataclass
class Plugger:
    """Toggles the patched state of installations.

    Calls for the same platform must not overlap; nothing here serializes
    them.
    """

    resolver: AppDirResolver
    policy: ElevationPolicy = field(default_factory=ElevationPolicy.for_os)
    config_dir: Path = CONFIG_PATH

    async def installation(self, platform: Platform) -> Installation:
        return await get_installation(platform, self.resolver)

    async def installations(self) -> dict[Platform, Installation]:
        return await list_installations(self.resolver)

    async def plug_(self, platform: Platform) -> Installation:
        installation = await self.installation(platform)
        if not installation.path:
            raise NotInstalled(f"{platform.value} is not installed.")
        if installation.plugged:
            await uninject(installation.path, policy=self.policy)
            installation = await self.installation(platform)
            if installation.plugged or not installation.path:
                raise PatchFailed(f"Cannot unplug {platform.value} before plugging.")

        await inject(installation.path, policy=self.policy, config_dir=self.config_dir)

        installation = await self.installation(platform)
        if not installation.plugged:
            raise PatchFailed(f"{platform.value} is not plugged after injecting.")
        return installation

    async def unplug_(self, platform: Platform) -> Installation:
        installation = await self.installation(platform)
        if not installation.path:
            raise NotInstalled(f"{platform.value} is not installed.")
        if not installation.plugged:
            return installation

        await uninject(installation.path, policy=self.policy)

        installation = await self.installation(platform)
        if installation.plugged:
            raise PatchFailed(f"{platform.value} is still plugged after uninjecting.")
        return installation

    async def plug(self, platform: Platform) -> bool:
        try:
            await self.plug_(platform)
        except (NotInstalled, PatchFailed) as e:
            logger.warning("Cannot plug %s: %s", platform.value, e)
            return False
        return True

    async def unplug(self, platform: Platform) -> bool:
        try:
            await self.unplug_(platform)
        except (NotInstalled, PatchFailed) as e:
            logger.warning("Cannot unplug %s: %s", platform.value, e)
            return False
        return True
