"""Tests for task executors."""

import pytest
import json
import time
from unittest.mock import Mock, patch
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from executors import WorkerExecutor, ProcessExecutor, run_module
from models import Isolation
from scheduler.executor import TaskExecutorManager


WORKER_TASK = """
import json
from pathlib import Path
Path(__file__).with_suffix(".out").write_text(json.dumps([__argv__, __name__]))
"""

PROCESS_TASK = """
import json
import sys
from pathlib import Path
Path(__file__).with_suffix(".out").write_text(json.dumps([sys.argv[1:], __name__]))
"""


def wait_for(path: Path, timeout: float = 10.0) -> str:
    """Poll until a task has written its output file."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if path.exists() and path.read_text():
            return path.read_text()
        time.sleep(0.05)
    raise AssertionError(f"{path} was not written")


class TestWorkerExecutor:
    """Test the same-process worker executor."""

    def test_run_module(self, tmp_path):
        task = tmp_path / "task.py"
        task.write_text(WORKER_TASK)
        run_module(str(task), ["1", "* * * * *"])
        assert json.loads((tmp_path / "task.out").read_text()) == [["1", "* * * * *"], "__main__"]

    def test_launch_runs_module_in_thread(self, tmp_path):
        task = tmp_path / "task.py"
        task.write_text(WORKER_TASK)
        argv = ["7", "@hourly", "2025-06-19T04:00:00+00:00", '["x"]']

        WorkerExecutor().launch(str(task), argv)

        argv_seen, name = json.loads(wait_for(tmp_path / "task.out"))
        assert argv_seen == argv
        assert name == "__main__"

    def test_launch_options(self):
        with patch("executors.worker_executor.threading.Thread") as MockThread:
            WorkerExecutor().launch("/tasks/a.py", ["3"], {"fork": False, "name": "custom"})

        MockThread.assert_called_once_with(
            target=run_module, args=("/tasks/a.py", ["3"]), name="custom", daemon=True
        )
        MockThread.return_value.start.assert_called_once()

    def test_default_thread_name(self):
        with patch("executors.worker_executor.threading.Thread") as MockThread:
            WorkerExecutor().launch("/tasks/a.py", ["3"])
        assert MockThread.call_args[1]["name"] == "cron-worker-3"

    def test_thread_creation_failure_propagates(self):
        with patch("executors.worker_executor.threading.Thread") as MockThread:
            MockThread.return_value.start.side_effect = RuntimeError("can't start new thread")
            with pytest.raises(RuntimeError):
                WorkerExecutor().launch("/tasks/a.py", ["3"])


class TestProcessExecutor:
    """Test the separate-process executor."""

    def test_launch_runs_module_in_process(self, tmp_path):
        task = tmp_path / "task.py"
        task.write_text(PROCESS_TASK)
        argv = ["2", "*/5 * * * *", "2025-06-19T03:25:00+00:00"]

        ProcessExecutor(sys.executable).launch(str(task), argv)

        argv_seen, name = json.loads(wait_for(tmp_path / "task.out"))
        assert argv_seen == argv
        assert name == "__main__"

    def test_launch_command_and_options(self):
        with patch("executors.process_executor.subprocess.Popen") as MockPopen:
            ProcessExecutor("/usr/bin/python3").launch(
                "/tasks/a.py", ["1", "x"], {"fork": True, "cwd": "/tmp"}
            )
        MockPopen.assert_called_once_with(["/usr/bin/python3", "/tasks/a.py", "1", "x"], cwd="/tmp")

    def test_default_interpreter(self):
        with patch("executors.process_executor.settings") as mock_settings:
            mock_settings.python_executable = "/opt/python"
            assert ProcessExecutor().python_executable == "/opt/python"

    def test_finished_children_are_reaped(self):
        finished, running = Mock(), Mock()
        finished.poll.return_value = 0
        running.poll.return_value = None
        executor = ProcessExecutor("/usr/bin/python3")

        with patch("executors.process_executor.subprocess.Popen", side_effect=[finished, running]):
            executor.launch("/tasks/a.py", ["1"])
            executor.launch("/tasks/a.py", ["2"])

        assert executor._children == {running}

    def test_process_creation_failure_propagates(self):
        with patch("executors.process_executor.subprocess.Popen", side_effect=OSError("fork failed")):
            with pytest.raises(OSError):
                ProcessExecutor("/usr/bin/python3").launch("/tasks/a.py", ["1"])


class TestTaskExecutorManager:
    """Test mapping isolation strategies to executors."""

    def test_default_executors(self):
        manager = TaskExecutorManager()
        assert isinstance(manager.get_executor(Isolation.WORKER), WorkerExecutor)
        assert isinstance(manager.get_executor(Isolation.PROCESS), ProcessExecutor)

    def test_launch_uses_matching_executor(self):
        manager = TaskExecutorManager()
        worker, process = Mock(), Mock()
        manager.register_executor(Isolation.WORKER, worker)
        manager.register_executor(Isolation.PROCESS, process)

        manager.launch(Isolation.PROCESS, "/tasks/a.py", ["1"], {"fork": True})

        process.launch.assert_called_once_with("/tasks/a.py", ["1"], {"fork": True})
        worker.launch.assert_not_called()

    def test_missing_executor(self):
        manager = TaskExecutorManager()
        manager.executors.clear()
        with pytest.raises(ValueError):
            manager.launch(Isolation.WORKER, "/tasks/a.py", ["1"])
