"""Sync engine for pyneocities - push and pull between a directory and a site."""

from .engine import SyncEngine
from .executor import (
    TransferExecutor,
    TransferOutcome,
    TransferResult,
    TransferStatus,
)
from .ignore import IGNORE_FILE_NAME, IgnoreFilter, IgnoreRule, load_ignore_file
from .operations import SyncOperations
from .options import PullOptions, PushOptions
from .oracle import RemoteHashOracle
from .planner import SyncAction, SyncDecision, SyncPlanner
from .scanner import DirectoryScanner, LocalEntry, RemoteEntry
from .state import Checkpoint, CheckpointStore

__all__ = [
    "SyncEngine",
    "SyncPlanner",
    "SyncAction",
    "SyncDecision",
    "SyncOperations",
    "TransferExecutor",
    "TransferOutcome",
    "TransferResult",
    "TransferStatus",
    "PushOptions",
    "PullOptions",
    "RemoteHashOracle",
    "DirectoryScanner",
    "LocalEntry",
    "RemoteEntry",
    "Checkpoint",
    "CheckpointStore",
    "IgnoreFilter",
    "IgnoreRule",
    "IGNORE_FILE_NAME",
    "load_ignore_file",
]
