"""Tests for the git command wrapper."""

from __future__ import annotations

from pathlib import Path

import pytest

from leanintel.errors import GitError
from leanintel.git.client import GitClient
from tests._fixtures.repo_builder import FakeGit, log_output


def test_log_parses_multiline_messages(tmp_path: Path) -> None:
    git = FakeGit(
        [
            (
                ["git", "log"],
                log_output({"a" * 40: "fix: null check\n\nlonger body", "b" * 40: "feat: add page"}),
            )
        ]
    )

    entries = GitClient(tmp_path, runner=git).log(5)

    assert [entry.hash for entry in entries] == ["a" * 40, "b" * 40]
    assert entries[0].message.startswith("fix: null check")
    assert "--max-count=5" in git.calls[0]


def test_diff_summary_marks_binary_files(tmp_path: Path) -> None:
    git = FakeGit([(["git", "diff"], "-\t-\tlogo.png\n3\t1\tsrc/a.ts\nnot a row\n")])

    stats = GitClient(tmp_path, runner=git).diff_summary("base")

    assert [(s.file, s.insertions, s.deletions, s.binary) for s in stats] == [
        ("logo.png", 0, 0, True),
        ("src/a.ts", 3, 1, False),
    ]


def test_show_returns_none_for_missing_paths(tmp_path: Path) -> None:
    client = GitClient(tmp_path, runner=FakeGit())
    assert client.show("HEAD", "missing.ts") is None


def test_runner_failures_raise_git_error(tmp_path: Path) -> None:
    def broken(args, *, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        raise FileNotFoundError("git")

    with pytest.raises(GitError, match="Unable to run git"):
        GitClient(tmp_path, runner=broken).log(1)
