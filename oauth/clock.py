"""Clock abstraction used for every expiry decision in the OAuth layer.

Stores and services take an injected ``Clock`` instead of calling
``time.time()`` directly, so tests can move time forward explicitly.
"""

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable returning seconds since the UNIX epoch."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    """Wall-clock time via ``time.time()``."""
    return time.time()
