"""Tests for CLI scripts."""

import importlib.util
import logging
import os
import shlex
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from s3deploy.exceptions import BucketValidationError, UploadIncompleteError
from s3deploy.uploader import DirectoryUploadReport, FileDescriptor
from s3deploy.utils.config import ENV_VARIABLES, DeployConfiguration

# Project paths
project_root = Path(__file__).parent.parent
scripts_dir = project_root / "scripts"


def clean_environ():
    env = {key: value for key, value in os.environ.items() if key not in ENV_VARIABLES}
    env.pop("LOG_FORMAT", None)
    env["PYTHONIOENCODING"] = "utf-8"
    return env


@pytest.fixture
def deploy_script():
    spec = importlib.util.spec_from_file_location("deploy_script", scripts_dir / "deploy.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield module
    root.handlers[:] = handlers
    root.setLevel(level)


class TestDeployCLI:
    """Tests for deploy.py CLI script."""

    def test_help_message(self):
        """Test that --help works."""
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "deploy.py"), "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "Deploy the project's build output to an S3 bucket" in result.stdout
        assert "--skip-build" in result.stdout
        assert "--prepend-path" in result.stdout
        assert "--aws-bucket" in result.stdout

    def test_example_config(self):
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "deploy.py"), "--example-config"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "production:" in result.stdout
        assert "before_deploy:" in result.stdout

    def test_invalid_max_retries(self):
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "deploy.py"), "--max-retries", "0"],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0
        assert "--max-retries must be at least 1" in result.stderr

    def test_missing_bucket(self, tmp_path):
        """Without a bucket anywhere the deploy stops before building."""
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "deploy.py"), "--skip-build"],
            capture_output=True,
            text=True,
            cwd=tmp_path,
            env=clean_environ(),
        )
        assert result.returncode == 1
        assert "Configuration error" in result.stdout
        assert "bucket is required" in result.stdout

    def test_failed_build_prints_no_traceback(self, tmp_path):
        build = f"{shlex.quote(sys.executable)} -c {shlex.quote('raise SystemExit(1)')}"
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "deploy.py"), "--aws-bucket", "site", "--build-command", build],
            capture_output=True,
            text=True,
            cwd=tmp_path,
            env=clean_environ(),
        )
        assert result.returncode == 1
        assert "Build failed with error code: 1" in result.stdout
        assert "Traceback" not in result.stderr
        assert "raised BuildError" not in result.stderr


class TestDeployMain:
    """In-process tests for deploy.py main()."""

    def test_options_from_arguments(self, deploy_script):
        args = deploy_script.parse_args(
            ["-e", "production", "-p", "v2", "--skip-build", "--aws-bucket", "site", "-t", "30"]
        )

        options = deploy_script.build_options(args)

        assert options.environment == "production"
        assert options.prepend_path == "v2"
        assert options.skip_build is True
        assert options.config_overrides()["bucket"] == "site"
        assert options.config_overrides()["timeout_seconds"] == 30

    def test_successful_deploy(self, deploy_script, capsys):
        config = DeployConfiguration(bucket="site", environment="production")
        report = DirectoryUploadReport(attempts=2, duration_seconds=0.5)

        with patch.object(deploy_script, "load_deploy_config", return_value=config) as load, \
                patch.object(deploy_script, "DeployCommand") as command_class:
            command_class.return_value.run.return_value = report
            exit_code = deploy_script.main(["-e", "production", "--aws-bucket", "site"])

        assert exit_code == 0
        assert load.call_args.kwargs["environment"] == "production"
        assert load.call_args.kwargs["overrides"]["bucket"] == "site"
        assert "Deploy complete" in capsys.readouterr().out

    def test_incomplete_upload_lists_files(self, deploy_script, capsys):
        config = DeployConfiguration(bucket="site")
        failed = [FileDescriptor("b.css", "/tmp/dist/b.css", 50)]

        with patch.object(deploy_script, "load_deploy_config", return_value=config), \
                patch.object(deploy_script, "DeployCommand") as command_class:
            command_class.return_value.run.side_effect = UploadIncompleteError(failed, 5)
            exit_code = deploy_script.main([])

        output = capsys.readouterr().out
        assert exit_code == 1
        assert "Deploy failed: 1 file could not be uploaded" in output
        assert "b.css" in output

    def test_deploy_error(self, deploy_script, capsys):
        config = DeployConfiguration(bucket="site")

        with patch.object(deploy_script, "load_deploy_config", return_value=config), \
                patch.object(deploy_script, "DeployCommand") as command_class:
            command_class.return_value.run.side_effect = BucketValidationError("Cannot locate bucket site")
            exit_code = deploy_script.main([])

        assert exit_code == 1
        assert "Cannot locate bucket site" in capsys.readouterr().out

    def test_invalid_max_retries_from_environment(self, deploy_script, clean_env, monkeypatch, capsys):
        monkeypatch.setenv("S3_DEPLOY_BUCKET", "site")
        monkeypatch.setenv("S3_DEPLOY_MAX_RETRIES", "0")

        with patch.object(deploy_script, "DeployCommand") as command_class:
            exit_code = deploy_script.main(["--skip-build"])

        assert exit_code == 1
        command_class.assert_not_called()
        assert "max_retries must be at least 1" in capsys.readouterr().out

    def test_keyboard_interrupt(self, deploy_script):
        config = DeployConfiguration(bucket="site")

        with patch.object(deploy_script, "load_deploy_config", return_value=config), \
                patch.object(deploy_script, "DeployCommand") as command_class:
            command_class.return_value.run.side_effect = KeyboardInterrupt
            assert deploy_script.main([]) == 130

    def test_metrics_server_started(self, deploy_script):
        config = DeployConfiguration(bucket="site")

        with patch.object(deploy_script, "load_deploy_config", return_value=config), \
                patch.object(deploy_script, "DeployCommand") as command_class, \
                patch.object(deploy_script, "start_metrics_server") as server:
            command_class.return_value.run.return_value = MagicMock(
                uploaded=[], bytes_uploaded=0, attempts=0, duration_seconds=0.0
            )
            deploy_script.main(["--metrics-port", "9400"])

        server.assert_called_once_with(port=9400)
