from __future__ import annotations

import logging
from typing import Optional

import requests

_log = logging.getLogger("kiln.preflight.network")


def index_reachable(url: str, *, timeout: float = 5.0) -> Optional[str]:
    """Returns None when the index answers at all, else a short error string.

    Upload endpoints reject HEAD/GET with 4xx; any HTTP response counts as reachable.
    """
    try:
        requests.head(url, timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        _log.debug("index %s unreachable: %s", url, exc)
        return type(exc).__name__
    return None
