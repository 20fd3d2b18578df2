"""Thin wrapper over the git CLI with an injectable command runner."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from ..errors import GitError

Runner = Callable[..., str]

# Separates hash and subject in ``git log`` output; never appears in messages.
_LOG_SEPARATOR = "\x1f"
_RECORD_SEPARATOR = "\x1e"


@dataclass(frozen=True)
class DiffStat:
    """Per-file insertion and deletion counts from ``git diff --numstat``."""

    file: str
    insertions: int
    deletions: int
    binary: bool = False


@dataclass(frozen=True)
class CommitEntry:
    hash: str
    message: str


def default_runner(
    args: Iterable[str],
    *,
    cwd: Path,
    capture_output: bool = False,
) -> str:
    completed = subprocess.run(
        list(args),
        cwd=str(cwd),
        check=True,
        text=True,
        capture_output=capture_output,
    )
    return completed.stdout if capture_output else ""


class GitClient:
    """The version-control operations lean-intel depends on."""

    def __init__(self, repo: Path | str, runner: Runner | None = None) -> None:
        self.repo = Path(repo)
        self._runner = runner or default_runner

    def diff_summary(self, from_rev: str, to_rev: str = "HEAD") -> List[DiffStat]:
        output = self._run(["git", "diff", "--numstat", "-M", from_rev, to_rev])
        stats: List[DiffStat] = []
        for line in output.splitlines():
            parts = line.split("\t", 2)
            if len(parts) != 3:
                continue
            added, deleted, path = parts
            binary = added == "-" and deleted == "-"
            stats.append(
                DiffStat(
                    file=path.strip(),
                    insertions=0 if binary else _to_int(added),
                    deletions=0 if binary else _to_int(deleted),
                    binary=binary,
                )
            )
        return stats

    def show(self, rev: str, path: str) -> Optional[str]:
        """Return file content at ``rev``, or ``None`` when it did not exist there."""
        try:
            return self._run(["git", "show", f"{rev}:{path}"])
        except GitError:
            return None

    def log(self, max_count: int) -> List[CommitEntry]:
        output = self._run(
            [
                "git",
                "log",
                f"--max-count={max_count}",
                f"--format=%H{_LOG_SEPARATOR}%B{_RECORD_SEPARATOR}",
            ]
        )
        entries: List[CommitEntry] = []
        for record in output.split(_RECORD_SEPARATOR):
            record = record.strip()
            if not record or _LOG_SEPARATOR not in record:
                continue
            commit_hash, message = record.split(_LOG_SEPARATOR, 1)
            entries.append(CommitEntry(hash=commit_hash.strip(), message=message.strip()))
        return entries

    def rev_parse(self, ref: str) -> Optional[str]:
        """Resolve ``ref`` to a full hash, or ``None`` when it is not a valid revision."""
        try:
            output = self._run(["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        except GitError:
            return None
        resolved = output.strip()
        return resolved or None

    def _run(self, args: List[str]) -> str:
        try:
            return self._runner(args, cwd=self.repo, capture_output=True)
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            raise GitError(f"{' '.join(args[:2])} failed: {detail}") from exc
        except OSError as exc:
            raise GitError(f"Unable to run git: {exc}") from exc


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


__all__ = ["CommitEntry", "DiffStat", "GitClient", "Runner", "default_runner"]
