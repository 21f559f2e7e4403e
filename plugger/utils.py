from importlib.metadata import version as importlib_version
from pathlib import Path
from typing import TypeVar

import httpx

PLUGGER_VERSION = importlib_version("replugged-installer")

T = TypeVar("T")


RunArg = str | Path


def make_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={
            "user-agent": f"replugged-installer/{PLUGGER_VERSION} (github.com/replugged-org/replugged)"
        },
        follow_redirects=True,
    )
