# codewatch/watchdog/patterns.py

"""
Gitignore-style ignore rules for scanning and watching

Matching is purely syntactic. Each rule is tested three ways and any hit
excludes the path:

1. shell-glob match against the final path component (``*``, ``?``, ``[...]``)
2. rooted rule (``/build``): the path relative to the watch root equals the
   rule or lies below it
3. unrooted rule (``docs/api``): the path contains ``/<rule>/`` as an
   interior segment

``**``, negation (``!``) and nested ignore files are not interpreted.
"""
import os
import fnmatch
import posixpath
import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union
from dataclasses import dataclass

from codewatch.errors import IgnoreFileError
from codewatch.utils.config import DEFAULT_IGNORE_PATTERNS, WatchConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRuleSet:
    """Immutable rule set bound to a watch root"""
    root: Path
    patterns: Tuple[str, ...]

    def __len__(self):
        return len(self.patterns)


def parse_ignore_lines(lines: Iterable[str]) -> List[str]:
    """
    Turn ignore-file lines into rule strings

    Blank lines and comments are dropped. A trailing slash is removed, so
    ``dist/`` and ``dist`` are the same rule.
    """
    patterns = []
    for line in lines:
        pattern = line.strip()
        if not pattern or pattern.startswith('#'):
            continue
        if len(pattern) > 1:
            pattern = pattern.rstrip('/') or pattern
        patterns.append(pattern)
    return patterns


def load_ignore_rules(root: Union[str, Path],
                      defaults: Optional[Iterable[str]] = None,
                      ignore_file: str = ".gitignore") -> IgnoreRuleSet:
    """
    Load built-in defaults plus the project ignore file

    Args:
        root: Watch root
        defaults: Built-in patterns, always present
        ignore_file: Name of the ignore file inside root

    Returns:
        Rule set (defaults only when the ignore file does not exist)

    Raises:
        IgnoreFileError: if the ignore file exists but cannot be read
    """
    root = Path(root).resolve()
    patterns = list(DEFAULT_IGNORE_PATTERNS if defaults is None else defaults)

    ignore_path = root / ignore_file
    if ignore_path.exists():
        try:
            with open(ignore_path, 'r', encoding='utf-8') as f:
                file_patterns = parse_ignore_lines(f)
        except (OSError, UnicodeDecodeError) as e:
            raise IgnoreFileError(f"Error reading {ignore_path}: {e}") from e

        patterns.extend(file_patterns)
        logger.debug(f"Loaded {len(file_patterns)} rules from {ignore_path}")

    return IgnoreRuleSet(root=root, patterns=tuple(patterns))


def _relative_posix(path: Path, root: Path) -> str:
    """Path as '/'-prefixed posix string relative to root, or absolute if outside"""
    try:
        rel = path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
    return '/' if rel == '.' else '/' + rel


def matches(path: Union[str, Path], rules: IgnoreRuleSet) -> bool:
    """
    Check whether a path is excluded by any rule

    Args:
        path: Absolute path, or a path relative to the rule set's root
        rules: Loaded rule set

    Returns:
        True if the path should be ignored
    """
    return matching_rule(path, rules) is not None


def matching_rule(path: Union[str, Path], rules: IgnoreRuleSet) -> Optional[str]:
    """Return the first rule that excludes the path, or None"""
    path = Path(path)
    if not path.is_absolute():
        path = rules.root / path

    name = path.name
    rel = _relative_posix(path, rules.root)
    if rel == '/':
        # The watch root itself is never excluded
        return None

    for pattern in rules.patterns:
        if fnmatch.fnmatchcase(name, pattern):
            return pattern

        if pattern.startswith('/'):
            rooted = posixpath.normpath(pattern)
            if rooted == '/':
                continue
            if rel == rooted or rel.startswith(rooted + '/'):
                return pattern
        else:
            if f"/{pattern}/" in rel:
                return pattern

    return None


class PatternFilter:
    """
    Ignore filter shared by the scanner and the watch loop

    Wraps an IgnoreRuleSet with a decision cache and the supported
    extension check.
    """

    def __init__(self, rules: IgnoreRuleSet, watch_config: Optional[WatchConfig] = None):
        self.rules = rules
        self.watch_config = watch_config or WatchConfig()

        # Decisions are purely syntactic, so caching by path is safe
        self.cache: Dict[Path, bool] = {}
        self.cache_max_size = 10000

        logger.info(f"PatternFilter initialized with {len(self.rules)} rules")

    @classmethod
    def load(cls, root: Union[str, Path], watch_config: Optional[WatchConfig] = None) -> "PatternFilter":
        """Load rules for root using the given watch configuration"""
        watch_config = watch_config or WatchConfig()
        rules = load_ignore_rules(
            root,
            defaults=watch_config.default_ignore_patterns,
            ignore_file=watch_config.ignore_file,
        )
        return cls(rules, watch_config)

    @property
    def root(self) -> Path:
        return self.rules.root

    def should_ignore(self, path: Union[str, Path]) -> bool:
        """
        Check if path should be ignored

        Args:
            path: Path to check

        Returns:
            True if path matches an ignore rule
        """
        path = Path(path)
        if path in self.cache:
            return self.cache[path]

        rule = matching_rule(path, self.rules)
        if rule is not None:
            logger.debug(f"Ignoring {path} (matched pattern: {rule})")

        self._update_cache(path, rule is not None)
        return rule is not None

    def should_ignore_tree(self, path: Union[str, Path]) -> bool:
        """
        Check path and each of its parents up to the root

        Mirrors the scanner's subtree pruning for paths reported by the
        event source, whose parents may match a glob rule that the path
        alone does not.
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.root / path
        if self.should_ignore(path):
            return True

        for parent in path.parents:
            if parent == self.root or self.root not in parent.parents:
                break
            if self.should_ignore(parent):
                return True

        return False

    def is_supported(self, path: Union[str, Path]) -> bool:
        """Check the extension allow-list"""
        return self.watch_config.is_supported(path)

    def _update_cache(self, path: Path, should_ignore: bool):
        if len(self.cache) >= self.cache_max_size:
            # Remove oldest entries (first 10%)
            remove_count = self.cache_max_size // 10
            for key in list(self.cache.keys())[:remove_count]:
                del self.cache[key]

        self.cache[path] = should_ignore

    def get_stats(self) -> dict:
        """Get filter statistics"""
        return {
            'total_rules': len(self.rules),
            'cache_size': len(self.cache),
            'cache_max_size': self.cache_max_size,
        }


def sorted_entries(directory: Union[str, Path]) -> List[os.DirEntry]:
    """Directory entries ordered by name"""
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def iter_directories(root: Union[str, Path], pattern_filter: PatternFilter) -> Iterator[Path]:
    """
    Yield root and every non-excluded directory below it, depth first

    Excluded directories are pruned: nothing below them is visited.
    Symlinked directories are not followed.

    Raises:
        OSError: if a directory cannot be listed
    """
    root = Path(root)
    stack = [root]
    while stack:
        directory = stack.pop()
        yield directory

        subdirs = []
        for entry in sorted_entries(directory):
            if not entry.is_dir(follow_symlinks=False):
                continue
            path = Path(entry.path)
            if pattern_filter.should_ignore(path):
                continue
            subdirs.append(path)

        # Reversed so the first entry is visited first
        stack.extend(reversed(subdirs))
