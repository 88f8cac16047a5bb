"""Tests for the crontab service."""

import pytest
import asyncio
import logging
import time
from unittest.mock import Mock
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cronfile import ChangeKind, CrontabService, FileChange
from scheduler import PathResolutionError, TokenizationError


CRONTAB = """# Sample crontab
*/5 * * * * report_task.py daily "two words"
@hourly F report_task.py
0 0 * * * missing_task_3f9c.py
61 * * * * report_task.py
* * * * * X report_task.py
"""


@pytest.fixture
def task_dir(tmp_path):
    directory = tmp_path.resolve()
    (directory / "report_task.py").write_text("print('report')\n")
    (directory / "crontab").write_text(CRONTAB)
    return directory


def make_service(task_dir, **kwargs):
    kwargs.setdefault("delay_start", True)
    kwargs.setdefault("watch", False)
    return CrontabService(str(task_dir / "crontab"), str(task_dir), **kwargs)


class TestReload:
    """Test loading crontab entries into the engine."""

    def test_valid_entries_are_registered(self, task_dir):
        service = make_service(task_dir)
        jobs = service.list_jobs()
        task = str(task_dir / "report_task.py")
        assert jobs == [
            {
                "id": 1,
                "schedule": "*/5 * * * *",
                "task": task,
                "args": ["daily", "two words"],
                "options": {"fork": False}
            },
            {
                "id": 2,
                "schedule": "@hourly",
                "task": task,
                "args": None,
                "options": {"fork": True}
            },
        ]
        assert service.is_running is False

    def test_invalid_entries_are_logged(self, task_dir, caplog):
        with caplog.at_level(logging.ERROR):
            make_service(task_dir)
        assert "line 4: File not found: missing_task_3f9c.py" in caplog.text
        assert "line 5: " in caplog.text
        assert "line 6: Invalid flag 'X'" in caplog.text

    def test_crontab_found_through_locations(self, task_dir):
        service = CrontabService("crontab", str(task_dir), delay_start=True, watch=False)
        assert service.crontab_path == str(task_dir / "crontab")

    def test_missing_crontab(self, tmp_path):
        with pytest.raises(PathResolutionError):
            CrontabService(str(tmp_path / "crontab"), delay_start=True, watch=False)

    def test_unparseable_crontab_at_startup(self, task_dir):
        (task_dir / "crontab").write_text("@daily report_task.py\n* * * * * 'broken\n")
        with pytest.raises(TokenizationError) as exc_info:
            make_service(task_dir)
        assert exc_info.value.line_number == 2

    @pytest.mark.parametrize("short_line", ["*/5 * * report_task.py", "*/5 * * report_task.py x"])
    def test_short_line_only_drops_its_entry(self, task_dir, short_line, caplog):
        (task_dir / "crontab").write_text(
            f"* * * * * report_task.py a\n{short_line}\n0 0 * * * report_task.py b\n"
        )
        with caplog.at_level(logging.ERROR):
            service = make_service(task_dir)
        assert [job["args"] for job in service.list_jobs()] == [["a"], ["b"]]
        assert "line 2: " in caplog.text

    def test_reload_replaces_jobs(self, task_dir):
        service = make_service(task_dir)
        (task_dir / "crontab").write_text("@daily report_task.py\n")
        assert service.reload() is True
        jobs = service.list_jobs()
        assert [(job["id"], job["schedule"]) for job in jobs] == [(3, "@daily")]

    def test_unparseable_file_keeps_jobs(self, task_dir, caplog):
        service = make_service(task_dir)
        (task_dir / "crontab").write_text("@daily report_task.py\n* * * * * 'broken\n")
        with caplog.at_level(logging.ERROR):
            assert service.reload() is False
        assert len(service.list_jobs()) == 2
        assert "keeping current jobs" in caplog.text

    def test_vanished_file_keeps_jobs(self, task_dir):
        service = make_service(task_dir)
        (task_dir / "crontab").unlink()
        assert service.reload() is False
        assert len(service.list_jobs()) == 2


class TestChanges:
    """Test reacting to crontab file changes."""

    def test_delete_deregisters_all_jobs(self, task_dir):
        service = make_service(task_dir)
        service.handle_change(FileChange(ChangeKind.DELETE, service.crontab_path))
        assert service.list_jobs() == []

    @pytest.mark.parametrize("kind", [ChangeKind.CREATE, ChangeKind.MODIFY])
    def test_create_and_modify_reload(self, task_dir, kind):
        service = make_service(task_dir)
        service.reload = Mock(return_value=True)
        service.handle_change(FileChange(kind, service.crontab_path))
        service.reload.assert_called_once_with()


class TestRunning:
    """Test starting and stopping the service."""

    @pytest.mark.asyncio
    async def test_starts_on_construction(self, task_dir):
        service = make_service(task_dir, delay_start=False)
        assert service.is_running is True
        assert service.start() is False
        assert service.stop() is True
        assert service.is_running is False
        assert service.stop() is False

    @pytest.mark.asyncio
    async def test_stop_cancels_monitoring(self, task_dir):
        service = make_service(task_dir, watch=True)
        assert service.start() is True
        watcher = service._watcher
        assert watcher is not None

        service.stop()
        await asyncio.wait_for(watcher, 10)
        assert service._watcher is None

    @pytest.mark.asyncio
    async def test_file_changes_are_applied(self, task_dir):
        """Test editing and deleting a watched crontab."""
        service = make_service(task_dir, delay_start=False, watch=True)
        await asyncio.sleep(0.5)

        (task_dir / "crontab").write_text("@daily report_task.py\n@weekly report_task.py\n")
        deadline = time.monotonic() + 10
        while [job["schedule"] for job in service.list_jobs()] != ["@daily", "@weekly"]:
            assert time.monotonic() < deadline, "crontab change was not applied"
            await asyncio.sleep(0.05)

        (task_dir / "crontab").unlink()
        while service.list_jobs():
            assert time.monotonic() < deadline + 10, "crontab removal was not applied"
            await asyncio.sleep(0.05)

        service.stop()
