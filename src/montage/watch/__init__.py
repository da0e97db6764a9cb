"""Watch scheduler, change sources and the single-instance controller."""

from montage.watch.daemon import SingletonController
from montage.watch.ignore import IgnoreRules
from montage.watch.notifier import FileNotifier
from montage.watch.scheduler import Baseline, TickReport, WatchScheduler
from montage.watch.sources import ChangeSource, EventQueueSource, PollingSource, TickBatch
from montage.watch.walker import WalkOptions, is_valid_file, is_watched, walk_repository

__all__ = [
    "Baseline",
    "ChangeSource",
    "EventQueueSource",
    "FileNotifier",
    "IgnoreRules",
    "PollingSource",
    "SingletonController",
    "TickBatch",
    "TickReport",
    "WalkOptions",
    "WatchScheduler",
    "is_valid_file",
    "is_watched",
    "walk_repository",
]
