"""Tests for the supervisor control binary client."""

from unittest.mock import MagicMock, patch

from manifest_runner.supervisor import SupervisorClient, SupervisorResult


class TestSupervisorClient:
    def test_load_invokes_binary_without_shell(self):
        client = SupervisorClient("../launchctl")

        with patch("manifest_runner.supervisor.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)
            result = client.load("/home/user/proj/sa-wrapper.json")

        mock_run.assert_called_once_with(
            ["../launchctl", "load", "/home/user/proj/sa-wrapper.json"], check=False
        )
        assert "shell" not in mock_run.call_args.kwargs
        assert result.ok
        assert result.returncode == 0

    def test_output_is_not_captured(self):
        with patch("manifest_runner.supervisor.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)
            SupervisorClient().load("sa-wrapper.json")

        kwargs = mock_run.call_args.kwargs
        assert "capture_output" not in kwargs
        assert "stdout" not in kwargs

    def test_nonzero_exit_status_is_failure(self):
        with patch("manifest_runner.supervisor.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1)
            result = SupervisorClient().load("sa-wrapper.json")

        assert not result.ok
        assert result.returncode == 1
        assert result.command_line == "../launchctl load sa-wrapper.json"

    def test_missing_binary_is_failure(self):
        with patch("manifest_runner.supervisor.subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("No such file or directory")
            result = SupervisorClient("/nonexistent/launchctl").load("sa-wrapper.json")

        assert not result.ok
        assert result.returncode is None
        assert "No such file" in result.error

    def test_real_process_exit_status(self, make_supervisor_script, tmp_path):
        script = make_supervisor_script(2)

        result = SupervisorClient(str(script)).load(tmp_path / "m.json")

        assert result == SupervisorResult(
            command=[str(script), "load", str(tmp_path / "m.json")], returncode=2
        )
        assert (tmp_path / "calls.txt").read_text() == f"load {tmp_path / 'm.json'}\n"
