import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from .driver import ElevationPolicy
from .errors import NetworkError
from .paths import CONFIG_PATH, PAYLOAD_NAME, ensure_config_dir

logger = logging.getLogger(__name__)

DOWNLOAD_URL = (
    "https://github.com/replugged-org/replugged/releases/latest/download/replugged.asar"
)


@dataclass(frozen=True)
class DownloadProgress:
    # None when the server does not say how large the payload is
    fraction: Optional[float]


@dataclass(frozen=True)
class DownloadError:
    exception: NetworkError


@dataclass(frozen=True)
class DownloadDone:
    path: Path


DownloadEvent = DownloadProgress | DownloadError | DownloadDone


def content_length(response: httpx.Response) -> Optional[int]:
    try:
        length = int(response.headers["content-length"])
    except (KeyError, ValueError):
        return None
    return length if length > 0 else None


def progress_fraction(received: int, total: Optional[int]) -> Optional[float]:
    if total is None:
        return None
    return received / total


async def download(
    *,
    client: httpx.AsyncClient,
    policy: ElevationPolicy,
    url: str = DOWNLOAD_URL,
    config_dir: Path = CONFIG_PATH,
) -> AsyncIterator[DownloadEvent]:
    """Fetch the payload bundle and move it into the config directory.

    Yields progress events, then exactly one of DownloadError or
    DownloadDone. Failures to store the payload are raised, not yielded.
    Closing the generator early abandons the transfer without storing
    anything.
    """
    chunks: list[bytes] = []

    try:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            total = content_length(response)
            logger.info("Downloading %s (%s bytes)", url, total or "unknown")

            yield DownloadProgress(fraction=0.0)

            # content-length counts encoded bytes, so progress does too
            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
                yield DownloadProgress(
                    fraction=progress_fraction(response.num_bytes_downloaded, total)
                )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("Cannot download %s: %s", url, e)
        yield DownloadError(exception=NetworkError(str(e)))
        return

    await ensure_config_dir(config_dir, os_=policy.os, driver=policy.direct)

    target = config_dir / PAYLOAD_NAME
    temp_directory = None if policy.os.elevation_required else config_dir
    async with policy.direct.tempfile(
        directory=temp_directory, suffix=".asar"
    ) as temp:
        await policy.direct.write_file(temp, b"".join(chunks))
        await policy.driver(target).move(temp, target)

    logger.info("Stored payload at %s", target)
    yield DownloadDone(path=target)
