from __future__ import annotations

import os
import re
import secrets
import string
import time

_ALPH = string.ascii_lowercase + string.digits

# LXD instance names are hostnames: letters, digits and dashes, at most 63 characters.
_MAX_INSTANCE_NAME_LENGTH = 63
_INVALID_CHARACTERS = re.compile(r"[^a-z0-9-]+")


def _suffix(k: int = 4) -> str:
    return "".join(secrets.choice(_ALPH) for _ in range(k))


def generate_instance_name(prefix: str = "build", *, now: float | None = None, pid: int | None = None) -> str:
    """
    Returns a name for the disposable instance of one run, e.g. `build-1760745600-4242-k3x9`.

    - The timestamp and process id keep concurrent runs on different hosts or processes apart.
    - The random suffix keeps two runs of the same process within one second apart.
    """

    prefix = _INVALID_CHARACTERS.sub("-", prefix.lower()).strip("-") or "build"
    if not prefix[0].isalpha():
        prefix = f"b-{prefix}"

    timestamp = int(time.time() if now is None else now)
    pid = os.getpid() if pid is None else pid

    tail = f"-{timestamp}-{pid}-{_suffix()}"
    return prefix[:_MAX_INSTANCE_NAME_LENGTH - len(tail)].rstrip("-") + tail
