"""
WorkspaceFileSystem - sandboxed file view over host-declared root directories.

Every WorkspaceFile produced here satisfies the containment invariant: its
canonical path (symlinks and ".." resolved) is the root's canonical path or
lies beneath it. Resolution never widens the search beyond the roots.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol
from urllib.parse import urlparse
from urllib.request import url2pathname

from ollama_relay.errors import (
    AmbiguousFile,
    NoUsableRoots,
    OutsideRoots,
    SandboxViolation,
    UnknownRoot,
    WorkspaceFileNotFound,
)

logger = logging.getLogger(__name__)

WILDCARD_CHARS = ("*", "?")
MATCH_ALL_MASKS = ("*", "*.*")


class RootCandidate(Protocol):
    """A host-declared root: file URI plus optional display name."""
    uri: Optional[str]
    name: Optional[str]


@dataclass(frozen=True)
class HostRoot:
    uri: Optional[str]
    name: Optional[str] = None


@dataclass(frozen=True)
class WorkspaceRoot:
    name: str
    path: str  # canonical absolute directory


@dataclass(frozen=True)
class WorkspaceFile:
    absolute_path: str
    root: WorkspaceRoot
    relative_path: str

    @property
    def file_name(self) -> str:
        return os.path.basename(self.absolute_path)


# ─────────────────────────────────────────────────────────────────────
# PATH HELPERS
# ─────────────────────────────────────────────────────────────────────

def canonicalize(path: str) -> str:
    """Absolute path with symlinks and '..' resolved."""
    return os.path.realpath(os.path.abspath(path))


def is_path_under_root(target: str, root: str) -> bool:
    """Containment check: target == root or target starts with root + separator."""
    target = os.path.normcase(canonicalize(target))
    root = os.path.normcase(canonicalize(root))
    if target == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return target.startswith(prefix)


def has_wildcards(value: str) -> bool:
    return any(ch in value for ch in WILDCARD_CHARS)


def matches_path_pattern(relative: str, pattern: str) -> bool:
    """
    fnmatch a root-relative POSIX path against a mask containing '/'.

    As in fnmatch, '*' also matches '/'. A leading '**/' may match zero
    directories, so '**/*.py' includes top-level files.
    """
    if fnmatch.fnmatch(relative, pattern):
        return True
    if pattern.startswith("**/"):
        return matches_path_pattern(relative, pattern[3:])
    return False


def file_uri_to_path(uri: str) -> str:
    parsed = urlparse(uri)
    # url2pathname already percent-decodes
    path = url2pathname(parsed.path)
    if parsed.netloc and parsed.netloc != "localhost":
        # UNC share: file://server/share/dir
        path = f"{os.sep}{os.sep}{parsed.netloc}{path}"
    return path


def convert_root(candidate: Optional[RootCandidate]) -> Optional[WorkspaceRoot]:
    """Turn one host root into a WorkspaceRoot, or None (logged) if unusable."""
    uri = getattr(candidate, "uri", None) if candidate is not None else None
    uri = str(uri).strip() if uri is not None else ""
    if not uri:
        logger.warning("Skipping root with missing URI.")
        return None

    parsed = urlparse(uri)
    if not parsed.scheme or len(parsed.scheme) == 1:
        # a single letter is a Windows drive, not a scheme
        logger.warning(f"Skipping root '{uri}' because it is not a valid absolute URI.")
        return None
    if parsed.scheme.lower() != "file":
        logger.warning(f"Skipping root '{uri}' because scheme '{parsed.scheme}' is not supported.")
        return None

    path = canonicalize(file_uri_to_path(uri))
    if not os.path.isdir(path):
        logger.warning(f"Skipping root '{path}' because the directory does not exist.")
        return None

    name = (getattr(candidate, "name", None) or "").strip()
    if not name:
        name = os.path.basename(path.rstrip(os.sep)) or path
    return WorkspaceRoot(name=name, path=path)


# ─────────────────────────────────────────────────────────────────────
# FILE SYSTEM
# ─────────────────────────────────────────────────────────────────────

class WorkspaceFileSystem:
    """Read-only, glob-capable view of the declared roots."""

    def __init__(self, roots: Iterable[WorkspaceRoot]):
        self._roots: tuple[WorkspaceRoot, ...] = tuple(roots)
        if not self._roots:
            raise NoUsableRoots()

    @classmethod
    def from_host_roots(cls, candidates: Optional[Iterable[RootCandidate]]) -> "WorkspaceFileSystem":
        """
        Convert host roots, skipping unusable ones.

        Raises:
            NoUsableRoots: nothing usable was declared
        """
        roots = []
        for candidate in candidates or ():
            root = convert_root(candidate)
            if root is not None:
                roots.append(root)
        return cls(roots)

    @property
    def roots(self) -> tuple[WorkspaceRoot, ...]:
        return self._roots

    def _candidate_roots(self, root_name: Optional[str]) -> list[WorkspaceRoot]:
        root_name = (root_name or "").strip()
        if not root_name:
            return list(self._roots)
        key = root_name.casefold()
        matches = [r for r in self._roots if r.name.casefold() == key]
        if not matches:
            raise UnknownRoot(root_name)
        return matches

    @staticmethod
    def _build_file(canonical_path: str, root: WorkspaceRoot) -> WorkspaceFile:
        relative = os.path.relpath(canonical_path, root.path)
        return WorkspaceFile(absolute_path=canonical_path, root=root, relative_path=relative)

    def find_root_for_path(self, path: str, roots: Optional[Iterable[WorkspaceRoot]] = None) -> Optional[WorkspaceRoot]:
        for root in roots if roots is not None else self._roots:
            if is_path_under_root(path, root.path):
                return root
        return None

    def resolve_file(self, file_path: str, root_name: Optional[str] = None) -> WorkspaceFile:
        """
        Resolve one path to a WorkspaceFile.

        Absolute paths must fall inside a root. Relative paths are tried
        against every candidate root; more than one hit without a root_name
        is an error rather than a guess.

        Raises:
            OutsideRoots, WorkspaceFileNotFound, AmbiguousFile, UnknownRoot
        """
        if not file_path or not file_path.strip():
            raise WorkspaceFileNotFound(file_path or "", "File path must not be empty.")
        candidates = self._candidate_roots(root_name)

        try:
            if os.path.isabs(file_path):
                canonical = canonicalize(file_path)
                root = self.find_root_for_path(canonical, candidates)
                if root is None:
                    raise OutsideRoots(file_path)
                if not os.path.isfile(canonical):
                    raise WorkspaceFileNotFound(canonical, f"File '{canonical}' does not exist.")
                return self._build_file(canonical, root)

            matches: list[WorkspaceFile] = []
            escaped = False
            for root in candidates:
                canonical = canonicalize(os.path.join(root.path, file_path))
                if not is_path_under_root(canonical, root.path):
                    logger.warning(f"Rejecting '{file_path}': resolves outside root '{root.path}'.")
                    escaped = True
                    continue
                if os.path.isfile(canonical):
                    matches.append(self._build_file(canonical, root))
        except (ValueError, OSError) as e:
            # embedded NUL bytes, over-long names
            raise WorkspaceFileNotFound(file_path, f"Invalid path '{file_path}': {e}") from e

        if not matches:
            if escaped:
                raise OutsideRoots(file_path)
            raise WorkspaceFileNotFound(file_path)

        if len(matches) > 1 and not (root_name or "").strip():
            raise AmbiguousFile(file_path, [m.root.name for m in matches])
        return matches[0]

    def enumerate_files(
        self,
        pattern: str,
        root_name: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Iterator[WorkspaceFile]:
        """
        Yield files matching a glob pattern, walking each root afresh.

        Results are deduplicated by canonical path across roots and stop at
        `limit` (None or 0 means unlimited). A root that cannot be walked is
        logged and skipped.
        """
        if limit is not None and limit < 0:
            raise ValueError("limit must be zero or positive")
        candidates = self._candidate_roots(root_name)
        pattern = (pattern or "").strip() or "*"
        return self._iter_matches(candidates, pattern, limit)

    def _iter_matches(
        self,
        candidates: list[WorkspaceRoot],
        pattern: str,
        limit: Optional[int],
    ) -> Iterator[WorkspaceFile]:
        match_all = pattern in MATCH_ALL_MASKS
        match_path = "/" in pattern.replace(os.sep, "/")
        normalized_pattern = pattern.replace(os.sep, "/").lstrip("/")

        seen: set[str] = set()
        count = 0
        for root in candidates:
            for canonical in self._walk(root):
                if not match_all:
                    if match_path:
                        relative = os.path.relpath(canonical, root.path).replace(os.sep, "/")
                        if not matches_path_pattern(relative, normalized_pattern):
                            continue
                    elif not fnmatch.fnmatch(os.path.basename(canonical), pattern):
                        continue

                key = os.path.normcase(canonical)
                if key in seen:
                    continue
                seen.add(key)

                yield self._build_file(canonical, root)
                count += 1
                if limit and count >= limit:
                    return

    def _walk(self, root: WorkspaceRoot) -> Iterator[str]:
        """Canonical paths of regular files under root, in sorted walk order."""
        def _on_error(error: OSError) -> None:
            logger.warning(f"Failed to enumerate files inside root '{root.path}': {error}")

        for dirpath, dirnames, filenames in os.walk(root.path, onerror=_on_error, followlinks=False):
            dirnames.sort()
            for filename in sorted(filenames):
                canonical = canonicalize(os.path.join(dirpath, filename))
                # file symlinks may point anywhere
                if not is_path_under_root(canonical, root.path):
                    logger.debug(f"Skipping '{filename}': link target escapes root '{root.name}'.")
                    continue
                if os.path.isfile(canonical):
                    yield canonical

    def read_file(self, file: WorkspaceFile) -> str:
        """
        Read the whole file as text (UTF-8, BOM stripped, undecodable bytes replaced).

        Raises:
            WorkspaceFileNotFound: file vanished since resolution
            SandboxViolation: file no longer inside its root
        """
        logger.debug(f"Reading workspace file {file.relative_path}")
        canonical = canonicalize(file.absolute_path)
        if not is_path_under_root(canonical, file.root.path):
            raise SandboxViolation(f"File '{file.relative_path}' is no longer inside root '{file.root.name}'.")
        if not os.path.isfile(canonical):
            raise WorkspaceFileNotFound(file.absolute_path, f"File '{file.absolute_path}' does not exist.")
        return Path(canonical).read_text(encoding="utf-8-sig", errors="replace")

    def describe_roots(self) -> list[dict]:
        return [{"name": r.name, "path": r.path} for r in self._roots]
