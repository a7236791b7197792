"""Runtime state tracking: the ``KEY=VALUE`` state file."""

from autolab.state.models import ResourceState, StateEntry, StateKey
from autolab.state.store import (
    StateKeyNotFound,
    StateStore,
    parse_line,
    strip_ansi,
)

__all__ = [
    "ResourceState",
    "StateEntry",
    "StateKey",
    "StateKeyNotFound",
    "StateStore",
    "parse_line",
    "strip_ansi",
]
