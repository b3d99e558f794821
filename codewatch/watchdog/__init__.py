#codewatch/watchdog/__init__.py

"""
codewatch Watchdog Module
File system monitoring with debounced change batches
"""
from .monitor import WatchSession
from .events import PathEvent, EventType
from .debounce import DebounceScheduler, LoopClock
from .patterns import PatternFilter, IgnoreRuleSet, load_ignore_rules, matches
from .handlers import EventHandler
from .watcher import WatchSet, create_observer

__all__ = [
    'WatchSession',
    'PathEvent',
    'EventType',
    'DebounceScheduler',
    'LoopClock',
    'PatternFilter',
    'IgnoreRuleSet',
    'load_ignore_rules',
    'matches',
    'EventHandler',
    'WatchSet',
    'create_observer',
]
