"""
Deploy configuration model and environment loader.

``DeployConfiguration`` is the read-only input to a deploy: target bucket and
credentials, object-key prefix, process environment overrides, hook steps,
and transfer settings. It is assembled once per CLI invocation by
``s3deploy.utils.config_loader.load_deploy_config`` from (lowest to highest
precedence) environment variables, the YAML deploy file, and CLI flags.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Defaults
DEFAULT_ENVIRONMENT = "development"
DEFAULT_OUTPUT_PATH = "dist/"
DEFAULT_BUILD_COMMAND = "npm run build"
DEFAULT_MAX_RETRIES = 5
DEFAULT_TIMEOUT_SECONDS = 60

# Hook phases, in the order a deploy runs them
HOOK_PHASES = ["before_build", "after_build", "before_deploy", "after_deploy"]

# Environment variable -> configuration field
ENV_VARIABLES = {
    "S3_DEPLOY_BUCKET": "bucket",
    "AWS_REGION": "region",
    "AWS_ACCESS_KEY_ID": "access_key",
    "AWS_SECRET_ACCESS_KEY": "secret_key",
    "S3_DEPLOY_PREPEND_PATH": "prepend_path",
    "S3_DEPLOY_TIMEOUT_SECONDS": "timeout_seconds",
    "S3_DEPLOY_MAX_RETRIES": "max_retries",
    "S3_DEPLOY_BUILD_COMMAND": "build_command",
    "S3_DEPLOY_OUTPUT_PATH": "output_path",
}

INTEGER_FIELDS = ("timeout_seconds", "max_retries")


@dataclass(frozen=True)
class HookStep:
    """
    A shell command run before or after the build or deploy phase.

    Attributes:
        command: Shell command line
        include_options: CLI option names appended as ``--name=value``
        fail: Whether a non-zero exit aborts the deploy (default: True)
    """

    command: str
    include_options: List[str] = field(default_factory=list)
    fail: bool = True

    @classmethod
    def from_value(cls, value: Any) -> "HookStep":
        """Build a step from a YAML entry: a bare command string or a mapping."""
        if isinstance(value, str):
            return cls(command=value)
        return cls(
            command=value["command"],
            include_options=list(value.get("include_options") or []),
            fail=bool(value.get("fail", True)),
        )


@dataclass
class DeployConfiguration:
    """Resolved deploy configuration for one environment."""

    bucket: str
    region: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    prepend_path: str = ""
    environment: str = DEFAULT_ENVIRONMENT
    output_path: str = DEFAULT_OUTPUT_PATH
    build_command: str = DEFAULT_BUILD_COMMAND
    process_env: Dict[str, str] = field(default_factory=dict)
    before_build: List[HookStep] = field(default_factory=list)
    after_build: List[HookStep] = field(default_factory=list)
    before_deploy: List[HookStep] = field(default_factory=list)
    after_deploy: List[HookStep] = field(default_factory=list)
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES

    def hooks(self, phase: str) -> List[HookStep]:
        """Return the steps configured for a hook phase (empty if none)."""
        if phase not in HOOK_PHASES:
            raise KeyError(f"Unknown hook phase: {phase}")
        return list(getattr(self, phase))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeployConfiguration":
        """
        Build a configuration from a flat, already-merged mapping.

        Unknown keys are ignored; hook lists are converted to HookStep and
        integer settings are coerced.

        Raises:
            ValueError: If ``bucket`` is missing or empty, or an integer
                setting is not a positive integer
        """
        if not data.get("bucket"):
            raise ValueError(
                "bucket is required. Set it in the deploy config file, "
                "export S3_DEPLOY_BUCKET, or pass --aws-bucket."
            )

        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known and value is not None}

        for phase in HOOK_PHASES:
            if phase in values:
                values[phase] = [HookStep.from_value(step) for step in values[phase]]

        for name in INTEGER_FIELDS:
            if name in values:
                values[name] = int(values[name])
                if values[name] < 1:
                    raise ValueError(f"{name} must be at least 1, got {values[name]}")

        if "process_env" in values:
            values["process_env"] = {
                str(key): str(value) for key, value in values["process_env"].items()
            }

        return cls(**values)

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "DeployConfiguration":
        """
        Load configuration from environment variables only.

        Loads ``.env`` from the working directory (or ``env_file``) first.

        Raises:
            ValueError: If S3_DEPLOY_BUCKET is not set
        """
        load_env_file(env_file)
        return cls.from_dict(read_env())


def load_env_file(env_file: Optional[Path] = None) -> bool:
    """
    Load a ``.env`` file into ``os.environ`` without overriding set values.

    Returns:
        True if a file was found and loaded
    """
    env_path = Path(env_file) if env_file else Path.cwd() / ".env"
    if not env_path.exists():
        return False
    return load_dotenv(env_path)


def read_env() -> Dict[str, Any]:
    """Collect configuration fields from the known environment variables."""
    values: Dict[str, Any] = {}
    for variable, name in ENV_VARIABLES.items():
        value = os.getenv(variable)
        if value:
            values[name] = value
    return values
