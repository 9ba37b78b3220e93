"""Source file discovery that walks a directory tree lazily."""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from refsheet.exceptions import ScanError

DEFAULT_EXCLUDE: frozenset[str] = frozenset({"target"})
DEFAULT_EXTENSIONS: frozenset[str] = frozenset({".rs"})


@dataclass(frozen=True, slots=True)
class TraversalPolicy:
    """Rules deciding which paths the scanner yields.

    Attributes:
        follow_links: Descend into symlinked directories and yield symlinked files.
        exclude: Path segment names that prune a path wherever they appear.
        extensions: File suffixes (with leading dot) identifying source files.
    """

    follow_links: bool = True
    exclude: frozenset[str] = field(default_factory=lambda: DEFAULT_EXCLUDE)
    extensions: frozenset[str] = field(default_factory=lambda: DEFAULT_EXTENSIONS)


@dataclass(frozen=True, slots=True)
class ScanEntry:
    """One element of a scan: a candidate path, or a path that could not be visited.

    Attributes:
        path: Path joined onto the root as given, usable for opening the file.
        error: Description of the traversal problem, or None for a candidate file.
    """

    path: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def label(self) -> str:
        """The path as UTF-8 text; undecodable name bytes become U+FFFD."""
        return os.fsencode(self.path).decode("utf-8", errors="replace")


class TreeScanner:
    """Yields candidate source files under a root directory.

    Usage::

        scanner = TreeScanner(".", TraversalPolicy())
        for entry in scanner.scan():
            ...
    """

    def __init__(self, root: Path | str, policy: TraversalPolicy | None = None) -> None:
        """Initialize the scanner.

        Args:
            root: Directory to walk. Yielded paths are joined onto it verbatim.
            policy: Traversal rules; defaults to TraversalPolicy().

        Raises:
            ScanError: If root does not exist or is not a directory.
        """
        self._root = os.fspath(root)
        self._policy = policy or TraversalPolicy()
        if not os.path.isdir(self._root):
            raise ScanError(f"Root directory does not exist: {self._root}")

    @property
    def root(self) -> str:
        return self._root

    @property
    def root_excluded(self) -> bool:
        """True if the root itself contains an excluded segment, so nothing is scanned."""
        return self._is_excluded(self._root)

    def scan(self) -> Iterator[ScanEntry]:
        """Walk the tree and yield entries in sorted, depth-first order."""
        if self.root_excluded:
            return
        try:
            root_stat = os.stat(self._root)
        except OSError as exc:
            yield ScanEntry(path=self._root, error=exc.strerror or str(exc))
            return
        yield from self._walk(self._root, {(root_stat.st_dev, root_stat.st_ino)})

    def _walk(self, directory: str, ancestors: set[tuple[int, int]]) -> Iterator[ScanEntry]:
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            yield ScanEntry(path=directory, error=exc.strerror or str(exc))
            return

        for child in children:
            if child.name in self._policy.exclude:
                continue
            path = os.path.join(directory, child.name)

            is_link = child.is_symlink()
            follow = self._policy.follow_links

            try:
                is_dir = child.is_dir(follow_symlinks=follow)
            except OSError as exc:
                yield ScanEntry(path=path, error=exc.strerror or str(exc))
                continue

            if is_dir:
                try:
                    st = os.stat(path) if is_link else child.stat(follow_symlinks=False)
                except OSError as exc:
                    yield ScanEntry(path=path, error=exc.strerror or str(exc))
                    continue
                key = (st.st_dev, st.st_ino)
                if key in ancestors:
                    yield ScanEntry(path=path, error="symlink loop detected")
                    continue
                yield from self._walk(path, ancestors | {key})
                continue

            if os.path.splitext(child.name)[1] not in self._policy.extensions:
                continue
            if is_link and follow and not os.path.exists(path):
                yield ScanEntry(path=path, error="broken symbolic link")
                continue
            yield ScanEntry(path=path)

    def _is_excluded(self, path: str) -> bool:
        parts = Path(path).parts
        return any(part in self._policy.exclude for part in parts)
