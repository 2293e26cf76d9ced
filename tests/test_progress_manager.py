"""Tests for the per-episode segment progress bars."""

from __future__ import annotations

import io

from rich.console import Console

from ani_dl.cli.progress_manager import ProgressManager


def _manager() -> ProgressManager:
    return ProgressManager(Console(file=io.StringIO(), force_terminal=False))


class TestProgressManager:
    def test_bar_created_by_initial_report(self) -> None:
        manager = _manager()
        on_batch = manager.callback_for("Episode 1")

        on_batch(0, 25)

        tasks = manager.progress.tasks
        assert len(tasks) == 1
        assert (tasks[0].completed, tasks[0].total) == (0, 25)

    def test_later_batches_update_same_bar(self) -> None:
        manager = _manager()
        on_batch = manager.callback_for("Episode 1")

        for done in (0, 10, 20, 25):
            on_batch(done, 25)

        tasks = manager.progress.tasks
        assert len(tasks) == 1
        assert tasks[0].completed == 25
        assert tasks[0].finished

    def test_one_bar_per_label(self) -> None:
        manager = _manager()
        manager.callback_for("Episode 1")(0, 5)
        manager.callback_for("Episode 2")(0, 7)
        assert [t.total for t in manager.progress.tasks] == [5, 7]
