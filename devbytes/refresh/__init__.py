"""Refresh pipeline: fetch the playlist and replace the cache, single-flight."""

from devbytes.refresh.metrics import RefreshMetrics
from devbytes.refresh.models import FailureKind, RefreshResult
from devbytes.refresh.pipeline import RefreshPipeline
from devbytes.refresh.state_machine import (
    RefreshState,
    RefreshStateError,
    RefreshStateMachine,
)
from devbytes.refresh.transform import remote_to_item, to_items


__all__ = [
    "FailureKind",
    "RefreshMetrics",
    "RefreshPipeline",
    "RefreshResult",
    "RefreshState",
    "RefreshStateError",
    "RefreshStateMachine",
    "remote_to_item",
    "to_items",
]
