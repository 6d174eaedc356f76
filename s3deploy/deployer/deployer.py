"""
The deploy command: build, then upload the build output to S3.

Phases, in order:
    1. inject ``process_env`` into the environment
    2. before_build hooks, build command, after_build hooks (unless skipped)
    3. before_deploy hooks, bucket validation, directory upload,
       after_deploy hooks

Any fatal error aborts the remaining phases. A failed build stops the deploy
before any file is read or any S3 call is made.
"""

import os
import shlex
import subprocess
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from s3deploy.deployer.hooks import run_steps
from s3deploy.exceptions import BuildError
from s3deploy.storage import ObjectStore
from s3deploy.ui import ProgressSink
from s3deploy.uploader import DirectoryUploadReport, upload_directory, validate_bucket
from s3deploy.utils.config import DeployConfiguration
from s3deploy.utils.logging import get_logger, log_function_call
from s3deploy.utils.retry import RetryPolicy

logger = get_logger(__name__)

# Environment variable telling the build tool which environment it builds for
BUILD_ENV_VARIABLE = "DEPLOY_ENV"


@dataclass
class DeployOptions:
    """
    Command-line options of one deploy invocation.

    Hook steps can forward any of these to their commands through
    ``include_options``.
    """

    environment: Optional[str] = None
    config: Optional[str] = None
    output_path: Optional[str] = None
    prepend_path: Optional[str] = None
    skip_build: bool = False
    aws_key: Optional[str] = None
    aws_secret: Optional[str] = None
    aws_bucket: Optional[str] = None
    aws_region: Optional[str] = None
    build_command: Optional[str] = None
    max_retries: Optional[int] = None
    timeout: Optional[int] = None
    verbose: bool = False

    def config_overrides(self) -> Dict[str, Any]:
        """Configuration fields these options override (None values are unset)."""
        return {
            "bucket": self.aws_bucket,
            "region": self.aws_region,
            "access_key": self.aws_key,
            "secret_key": self.aws_secret,
            "prepend_path": self.prepend_path,
            "output_path": self.output_path,
            "build_command": self.build_command,
            "max_retries": self.max_retries,
            "timeout_seconds": self.timeout,
        }

    def as_dict(self) -> Dict[str, Any]:
        values = asdict(self)
        # Credentials never reach hook command lines
        values.pop("aws_key")
        values.pop("aws_secret")
        return values


class DeployCommand:
    """
    Runs a complete deploy for one resolved configuration.

    Args:
        config: Resolved deploy configuration
        ui: Progress sink
        options: CLI options (for ``skip_build`` and hook ``include_options``)
        store_factory: Builds the bucket handle from the configuration

    Example:
        >>> config = load_deploy_config("config/deploy.yaml", environment="production")
        >>> DeployCommand(config, ConsoleUI(), DeployOptions(environment="production")).run()
    """

    def __init__(
        self,
        config: DeployConfiguration,
        ui: ProgressSink,
        options: Optional[DeployOptions] = None,
        store_factory: Callable[[DeployConfiguration], ObjectStore] = ObjectStore.from_config,
    ) -> None:
        self.config = config
        self.ui = ui
        self.options = options or DeployOptions(environment=config.environment)
        self.store_factory = store_factory

    @log_function_call
    def run(self) -> DirectoryUploadReport:
        """
        Build and deploy.

        Returns:
            Report of the directory upload

        Raises:
            DeployError: Any fatal error of any phase
        """
        os.environ[BUILD_ENV_VARIABLE] = self.config.environment
        self.set_process_envs(self.config.process_env)

        self.build()
        return self.deploy()

    def build(self) -> None:
        if self.options.skip_build:
            logger.info("Skipping build")
            return

        self.extra_step("before_build")

        self.ui.start("Building", ".")
        return_code = self._run_build_command()
        self.ui.stop()

        if return_code != 0:
            self.ui.write_line(f"Build failed with error code: {return_code}", "error")
            raise BuildError(f"Build failed with error code: {return_code}", return_code)

        self.ui.write_line("Build complete", "success")
        self.extra_step("after_build")

    def _run_build_command(self) -> int:
        command = shlex.split(self.config.build_command)
        logger.info(f"Running build: {self.config.build_command}")
        try:
            completed = subprocess.run(command, check=False)
        except OSError as e:
            self.ui.stop()
            raise BuildError(f"Cannot run build command '{self.config.build_command}': {e}") from e
        return completed.returncode

    def deploy(self) -> DirectoryUploadReport:
        self.extra_step("before_deploy")

        store = self.store_factory(self.config)
        validate_bucket(store, self.ui)
        report = upload_directory(
            store,
            self.ui,
            self.config.output_path,
            retry_policy=RetryPolicy(max_attempts=self.config.max_retries),
        )

        self.extra_step("after_deploy")
        return report

    def extra_step(self, when: str) -> None:
        """Run the hook steps configured for phase ``when``."""
        steps = self.config.hooks(when)
        self.ui.write_line(f"Running step: {when}", "success")
        run_steps(steps, self.options.as_dict(), self.ui)

    def set_process_envs(self, variables: Optional[Mapping[str, str]]) -> None:
        for key, value in (variables or {}).items():
            self.ui.write_line(f"Setting environment, {key} to {value}", "notice")
            os.environ[key] = value
