from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from plugger.config import Settings, load_settings, parse_settings
from plugger.download import DOWNLOAD_URL
from plugger.errors import ConfigError
from plugger.installation import Platform
from plugger.paths import CONFIG_PATH


class TestParseSettings:
    def test_defaults(self):
        settings = parse_settings(None)
        assert settings.app_dirs == {}
        assert settings.download_url == DOWNLOAD_URL
        assert settings.config_dir == CONFIG_PATH

    def test_full(self):
        settings = parse_settings(
            {
                "app_dirs": {
                    "stable": "/usr/share/discord/resources/app.asar",
                    "canary": "/opt/discord-canary/resources/app.asar",
                },
                "download_url": "https://example.com/replugged.asar",
                "config_dir": "/srv/replugged",
            }
        )
        assert settings.app_dirs == {
            Platform.STABLE: Path("/usr/share/discord/resources/app.asar"),
            Platform.CANARY: Path("/opt/discord-canary/resources/app.asar"),
        }
        assert settings.download_url == "https://example.com/replugged.asar"
        assert settings.config_dir == Path("/srv/replugged")

    def test_unknown_platform(self):
        with pytest.raises(ValidationError):
            parse_settings({"app_dirs": {"nightly": "/opt/discord"}})

    def test_unknown_key(self):
        with pytest.raises(ValidationError):
            parse_settings({"app_dir": "/opt/discord"})


@pytest.mark.trio
async def test_resolver():
    settings = parse_settings({"app_dirs": {"ptb": "/opt/discord-ptb/resources/app.asar"}})
    resolver = settings.resolver()
    assert await resolver.app_dir(Platform.PTB) == Path(
        "/opt/discord-ptb/resources/app.asar"
    )
    assert await resolver.app_dir(Platform.STABLE) is None


def test_with_app_dir():
    settings = parse_settings({"app_dirs": {"stable": "/a/app.asar"}})

    updated = settings.with_app_dir(Platform.DEV, Path("/b/app.asar"))

    assert updated.app_dirs == {
        Platform.STABLE: Path("/a/app.asar"),
        Platform.DEV: Path("/b/app.asar"),
    }
    assert settings.app_dirs == {Platform.STABLE: Path("/a/app.asar")}


class TestLoadSettings:
    def test_no_file(self):
        assert load_settings() == Settings()

    def test_file(self, tmp_path: Path):
        path = tmp_path / "installer.yaml"
        path.write_text(
            """
app_dirs:
  stable: /usr/share/discord/resources/app.asar
config_dir: /home/me/.config/replugged
"""
        )

        settings = load_settings(path)

        assert settings.app_dirs == {
            Platform.STABLE: Path("/usr/share/discord/resources/app.asar")
        }
        assert settings.config_dir == Path("/home/me/.config/replugged")

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "installer.yaml"
        path.write_text("")

        assert load_settings(path) == Settings()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError) as excinfo:
            load_settings(tmp_path / "missing.yaml")

        assert isinstance(excinfo.value.__cause__, FileNotFoundError)
        assert "missing.yaml" in str(excinfo.value)

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "installer.yaml"
        path.write_text("app_dirs: [stable\n")

        with pytest.raises(ConfigError) as excinfo:
            load_settings(path)

        assert isinstance(excinfo.value.__cause__, yaml.YAMLError)

    def test_invalid_settings(self, tmp_path: Path):
        path = tmp_path / "installer.yaml"
        path.write_text("app_dir: /opt/discord\n")

        with pytest.raises(ConfigError) as excinfo:
            load_settings(path)

        assert isinstance(excinfo.value.__cause__, ValidationError)
