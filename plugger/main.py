import logging
import subprocess
import sys
from collections.abc import Awaitable, Callable
from functools import partial
from pathlib import Path
from typing import Literal, Optional, cast

import trio
import typed_argparse as tap

from .config import Settings, load_settings
from .download import DownloadDone, DownloadError, DownloadEvent, download
from .driver import ElevationPolicy
from .errors import ConfigError, PluggerError
from .injector import Plugger
from .installation import Installation, Platform
from .utils import make_http_client

logger = logging.getLogger(__name__)

Action = Literal["status", "plug", "unplug", "download"]


class Args(tap.TypedArgs):
    action: Action = tap.arg(positional=True, help="What to do")
    platform: Platform = tap.arg(
        default=Platform.STABLE, help="Application variant to act on"
    )
    app_dir: Optional[Path] = tap.arg(
        help="Path to the startup bundle (app.asar), overrides the configuration"
    )
    config: Optional[Path] = tap.arg(help="Configuration file (YAML)")
    verbose: bool = tap.arg(help="Log every step")


def parse_args() -> Args:
    return cast(
        Args,
        tap.Parser(
            Args, description="Plug or unplug Replugged into Discord"
        ).parse_args(),
    )


def describe(installation: Installation) -> str:
    if not installation.installed:
        return f"{installation.platform.value}: not installed"
    state = "plugged" if installation.plugged else "unplugged"
    return f"{installation.platform.value}: {state} ({installation.path})"


def describe_event(event: DownloadEvent) -> str:
    if isinstance(event, DownloadDone):
        return f"Downloaded to {event.path}"
    if isinstance(event, DownloadError):
        return f"Download failed: {event.exception}"
    if event.fraction is None:
        return "Downloading: unknown"
    return f"Downloading: {event.fraction:.0%}"


async def run_download(settings: Settings, policy: ElevationPolicy) -> int:
    async with make_http_client() as client:
        async for event in download(
            client=client,
            policy=policy,
            url=settings.download_url,
            config_dir=settings.config_dir,
        ):
            print(describe_event(event))
            if isinstance(event, DownloadError):
                return 1
    return 0


async def run(args: Args) -> int:
    settings = load_settings(args.config)
    if args.app_dir:
        settings = settings.with_app_dir(args.platform, args.app_dir)

    policy = ElevationPolicy.for_os()
    plugger = Plugger(
        resolver=settings.resolver(), policy=policy, config_dir=settings.config_dir
    )

    if args.action == "status":
        for installation in (await plugger.installations()).values():
            print(describe(installation))
        return 0

    if args.action == "download":
        return await run_download(settings, policy)

    if args.action == "plug":
        ok = await plugger.plug(args.platform)
    else:
        ok = await plugger.unplug(args.platform)

    print(describe(await plugger.installation(args.platform)))
    return 0 if ok else 1


async def run_guarded(
    action: str, platform: Platform, task: Callable[[], Awaitable[int]]
) -> int:
    try:
        return await task()
    except ConfigError as e:
        print(f"Invalid configuration: {e}")
        return 2
    except (PluggerError, OSError, subprocess.CalledProcessError) as e:
        logger.debug("Operation failed", exc_info=True)
        print(f"Failed to {action} {platform.value}: {e}")
        print("The installation may need to be inspected manually.")
        return 2


async def main() -> int:
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    return await run_guarded(args.action, args.platform, partial(run, args))


def sync_main() -> None:
    sys.exit(trio.run(main))
