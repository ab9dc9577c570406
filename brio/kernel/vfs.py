"""Sandboxed working copies of a directory, with diff and commit back to the base."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePath
from typing import Iterable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_CHUNK_SIZE = 8192


class ChangeKind(Enum):
    """How a file differs between a session and its base."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"


@dataclass(frozen=True)
class FileChange:
    """A change to one file, with its path relative to the directory root."""

    kind: ChangeKind
    path: PurePath


def compute_hash(path: PathLike) -> str:
    """Return the SHA-256 digest of a file's contents as lowercase hex."""
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _walk(root: Path) -> Iterator[Path]:
    """Yield every entry below ``root``, directories before their contents.

    Errors reading a directory are raised, not skipped.
    """
    with os.scandir(root) as iterator:
        entries = list(iterator)
    for entry in entries:
        path = Path(entry.path)
        yield path
        if entry.is_dir(follow_symlinks=False):
            yield from _walk(path)


def scan_directory(root: PathLike) -> dict[PurePath, str]:
    """Map each file below ``root`` (as a relative path) to its content hash."""
    root_path = Path(root)
    return {
        path.relative_to(root_path): compute_hash(path)
        for path in _walk(root_path)
        if path.is_file()
    }


def compute_diff(session_path: PathLike, base_path: PathLike) -> list[FileChange]:
    """List the changes that turn the base directory into the session directory."""
    session_files = scan_directory(session_path)
    base_files = scan_directory(base_path)

    changes: list[FileChange] = []
    for relative in sorted(session_files):
        base_hash = base_files.get(relative)
        if base_hash is None:
            changes.append(FileChange(ChangeKind.ADDED, relative))
        elif base_hash != session_files[relative]:
            changes.append(FileChange(ChangeKind.MODIFIED, relative))
    for relative in sorted(base_files):
        if relative not in session_files:
            changes.append(FileChange(ChangeKind.DELETED, relative))
    return changes


def apply_changes(
    session_path: PathLike, base_path: PathLike, changes: Iterable[FileChange]
) -> None:
    """Copy added and modified files into the base and remove deleted ones."""
    session_root = Path(session_path)
    base_root = Path(base_path)
    applied = 0
    for change in changes:
        target = base_root / change.path
        if change.kind is ChangeKind.DELETED:
            if target.exists():
                target.unlink()
                logger.debug("Applied Delete: %s", target)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(session_root / change.path, target)
            logger.debug("Applied %s: %s", change.kind.value, target)
        applied += 1
    logger.info("Applied %d changes to Base", applied)


def copy_dir(src: PathLike, dst: PathLike) -> None:
    """Recursively copy the contents of ``src`` into ``dst``."""
    source = Path(src)
    destination = Path(dst)
    destination.mkdir(parents=True, exist_ok=True)
    for path in _walk(source):
        target = destination / path.relative_to(source)
        if path.is_dir():
            target.mkdir(parents=True, exist_ok=True)
        else:
            shutil.copy(path, target)
    logger.info("Session copy complete: %s -> %s", source, destination)


class SessionError(Exception):
    """A session could not be started or committed."""


class SessionManager:
    """Keeps working copies of base directories and commits them back."""

    def __init__(self, root_temp_dir: Optional[PathLike] = None) -> None:
        if root_temp_dir is None:
            self.root_temp_dir = Path(tempfile.gettempdir()) / "brio"
        else:
            self.root_temp_dir = Path(root_temp_dir)
        self._sessions: dict[str, Path] = {}

    def session_path(self, session_id: str) -> Path:
        """Directory holding the working copy of a session."""
        return self.root_temp_dir / session_id

    def begin_session(self, base_path: PathLike) -> str:
        """Copy the base directory into a new session and return its id."""
        base = Path(base_path)
        if not base.exists():
            raise SessionError(f"Base path does not exist: {os.fspath(base_path)}")

        session_id = str(uuid.uuid4())
        logger.info("Starting session %s for base %s", session_id, base)
        try:
            copy_dir(base, self.session_path(session_id))
        except OSError as error:
            raise SessionError(f"Failed to create session copy: {error}") from error

        self._sessions[session_id] = base
        return session_id

    def commit_session(self, session_id: str) -> None:
        """Apply the session's changes to its base directory."""
        base = self._sessions.get(session_id)
        if base is None:
            raise SessionError(f"Session not found: {session_id}")

        session_dir = self.session_path(session_id)
        if not session_dir.exists():
            raise SessionError(f"Session directory lost: {session_dir}")

        logger.info("Committing session %s to %s", session_id, base)
        try:
            changes = compute_diff(session_dir, base)
        except OSError as error:
            raise SessionError(f"Failed to compute diff: {error}") from error

        if not changes:
            logger.info("No changes to commit for session %s", session_id)
            return

        try:
            apply_changes(session_dir, base, changes)
        except OSError as error:
            raise SessionError(f"Failed to apply changes: {error}") from error