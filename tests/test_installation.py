from pathlib import Path
from typing import Optional

import pytest

from plugger.installation import (
    AppDirResolver,
    ConfiguredResolver,
    Installation,
    Platform,
    get_installation,
    list_installations,
    original_bundle,
)

from .base import make_bundle


class BrokenResolver(AppDirResolver):
    async def app_dir(self, platform: Platform) -> Optional[Path]:
        raise PermissionError("cannot look")


class TestGetInstallation:
    @pytest.mark.trio
    async def test_not_configured(self):
        installation = await get_installation(Platform.STABLE, ConfiguredResolver({}))
        assert installation == Installation(
            platform=Platform.STABLE, path=None, installed=False, plugged=False
        )

    @pytest.mark.trio
    async def test_resolver_failure(self):
        installation = await get_installation(Platform.CANARY, BrokenResolver())
        assert installation == Installation.missing(Platform.CANARY)

    @pytest.mark.trio
    async def test_parent_missing(self, tmp_path: Path):
        resolver = ConfiguredResolver(
            {Platform.STABLE: tmp_path / "nowhere" / "app.asar"}
        )
        installation = await get_installation(Platform.STABLE, resolver)
        assert installation == Installation.missing(Platform.STABLE)

    @pytest.mark.trio
    async def test_unplugged(self, tmp_path: Path):
        app_dir = make_bundle(tmp_path)
        resolver = ConfiguredResolver({Platform.PTB: app_dir})

        installation = await get_installation(Platform.PTB, resolver)

        assert installation == Installation(
            platform=Platform.PTB, path=app_dir, installed=True, plugged=False
        )

    @pytest.mark.trio
    async def test_plugged(self, tmp_path: Path):
        app_dir = make_bundle(tmp_path)
        original_bundle(app_dir).mkdir()
        resolver = ConfiguredResolver({Platform.STABLE: app_dir})

        installation = await get_installation(Platform.STABLE, resolver)

        assert installation.installed
        assert installation.plugged
        assert installation.path == app_dir

    @pytest.mark.trio
    async def test_bundle_itself_not_required(self, tmp_path: Path):
        # Only the resources directory has to exist
        resolver = ConfiguredResolver({Platform.STABLE: tmp_path / "app.asar"})

        installation = await get_installation(Platform.STABLE, resolver)

        assert installation.installed
        assert not installation.plugged


def test_original_bundle():
    assert original_bundle(Path("/opt/discord/resources/app.asar")) == Path(
        "/opt/discord/resources/app.orig.asar"
    )


@pytest.mark.trio
async def test_list_installations(tmp_path: Path):
    stable = make_bundle(tmp_path / "stable")
    canary = make_bundle(tmp_path / "canary")
    original_bundle(canary).mkdir()

    installations = await list_installations(
        ConfiguredResolver({Platform.STABLE: stable, Platform.CANARY: canary})
    )

    assert list(installations) == list(Platform)
    assert installations[Platform.STABLE].installed
    assert not installations[Platform.STABLE].plugged
    assert installations[Platform.CANARY].plugged
    assert installations[Platform.PTB] == Installation.missing(Platform.PTB)
    assert installations[Platform.DEV] == Installation.missing(Platform.DEV)
