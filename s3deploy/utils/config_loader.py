"""
Deploy config file loader and validator.

Loads the YAML deploy file, validates it against the expected schema, and
resolves the section for one environment on top of the ``default`` section.

Example config file (config/deploy.yaml):
    ```yaml
    environment: development

    default:
      bucket: my-site-staging
      region: us-east-1
      process_env:
        API_HOST: https://staging-api.example.com
      before_deploy:
        - command: npm test
          include_options: [environment]
          fail: true

    production:
      bucket: my-site
      prepend_path: assets
      timeout_seconds: 120
      max_retries: 3
      process_env:
        API_HOST: https://api.example.com
    ```

Usage:
    >>> from s3deploy.utils.config_loader import load_deploy_config
    >>> config = load_deploy_config("config/deploy.yaml", environment="production")
    >>> print(config.bucket)
    my-site
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from s3deploy.exceptions import ConfigurationError
from s3deploy.utils.config import (
    DEFAULT_ENVIRONMENT,
    HOOK_PHASES,
    INTEGER_FIELDS,
    DeployConfiguration,
    load_env_file,
    read_env,
)
from s3deploy.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "deploy.yaml"

# Top-level keys that are not environment sections
RESERVED_KEYS = ["environment", "version"]

DEFAULT_SECTION = "default"

STRING_FIELDS = [
    "bucket",
    "region",
    "access_key",
    "secret_key",
    "prepend_path",
    "build_command",
    "output_path",
]


@dataclass
class ConfigError:
    """Validation error in configuration file."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        """Format error message."""
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value})"
        return f"{self.field}: {self.message}"


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load the deploy file from YAML.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Dictionary containing parsed configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If the path is not a file, or the file is empty or not a mapping
        yaml.YAMLError: If YAML is malformed
    """
    path = Path(config_path)
    logger.info(f"Loading deploy configuration from: {path}")

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Configuration path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise

    if config is None:
        raise ValueError("Configuration file is empty")

    if not isinstance(config, dict):
        raise ValueError(
            f"Configuration file must contain a mapping, got {type(config).__name__}"
        )

    logger.info(f"✓ Configuration loaded: {len(environment_sections(config))} section(s)")
    return dict(config)


def environment_sections(config: Mapping[str, Any]) -> List[str]:
    """Names of the environment sections (including ``default``)."""
    return [key for key in config if key not in RESERVED_KEYS]


def validate_config(config: Mapping[str, Any]) -> List[ConfigError]:
    """
    Validate a parsed deploy file against the expected schema.

    Args:
        config: Configuration dictionary to validate

    Returns:
        List of validation errors (empty if valid)

    Example:
        >>> errors = validate_config({"production": {"bucket": 42}})
        >>> print(errors[0])
        production.bucket: Must be a string (got: int)
    """
    errors: List[ConfigError] = []

    if "environment" in config and not isinstance(config["environment"], str):
        errors.append(
            ConfigError("environment", "Must be a string", type(config["environment"]).__name__)
        )

    for name in environment_sections(config):
        section = config[name]
        if section is None:
            continue
        if not isinstance(section, dict):
            errors.append(ConfigError(name, "Must be a mapping", type(section).__name__))
            continue
        errors.extend(_validate_section(name, section))

    if errors:
        logger.warning(f"Configuration validation failed with {len(errors)} errors")
    else:
        logger.debug("✓ Configuration validation passed")

    return errors


def _validate_section(name: str, section: Mapping[str, Any]) -> List[ConfigError]:
    """Validate one environment section."""
    errors: List[ConfigError] = []

    for field in STRING_FIELDS:
        if field in section and section[field] is not None and not isinstance(section[field], str):
            errors.append(
                ConfigError(f"{name}.{field}", "Must be a string", type(section[field]).__name__)
            )

    for field in INTEGER_FIELDS:
        if field not in section:
            continue
        value = section[field]
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(
                ConfigError(f"{name}.{field}", "Must be an integer", type(value).__name__)
            )
        elif value < 1:
            errors.append(ConfigError(f"{name}.{field}", "Must be at least 1", value))

    if "process_env" in section and not isinstance(section["process_env"], dict):
        errors.append(
            ConfigError(
                f"{name}.process_env", "Must be a mapping", type(section["process_env"]).__name__
            )
        )

    for phase in HOOK_PHASES:
        if phase in section:
            errors.extend(_validate_steps(f"{name}.{phase}", section[phase]))

    return errors


def _validate_steps(prefix: str, steps: Any) -> List[ConfigError]:
    """Validate a hook step list."""
    errors: List[ConfigError] = []

    if not isinstance(steps, list):
        errors.append(ConfigError(prefix, "Must be a list", type(steps).__name__))
        return errors

    for i, step in enumerate(steps):
        step_prefix = f"{prefix}[{i}]"

        if isinstance(step, str):
            continue

        if not isinstance(step, dict):
            errors.append(
                ConfigError(step_prefix, "Must be a command string or mapping", type(step).__name__)
            )
            continue

        if not isinstance(step.get("command"), str) or not step["command"].strip():
            errors.append(ConfigError(f"{step_prefix}.command", "Missing required field"))

        if "include_options" in step and not isinstance(step["include_options"], list):
            errors.append(
                ConfigError(
                    f"{step_prefix}.include_options",
                    "Must be a list",
                    type(step["include_options"]).__name__,
                )
            )

        if "fail" in step and not isinstance(step["fail"], bool):
            errors.append(
                ConfigError(f"{step_prefix}.fail", "Must be a boolean", type(step["fail"]).__name__)
            )

    return errors


def resolve_environment(config: Mapping[str, Any], environment: str) -> Dict[str, Any]:
    """
    Merge the ``default`` section with one environment's section.

    Values from the environment section win; ``process_env`` mappings are
    merged key by key.

    Raises:
        ConfigurationError: If the file has sections but neither the
            requested environment nor ``default``
    """
    sections = environment_sections(config)
    if sections and environment not in sections and DEFAULT_SECTION not in sections:
        raise ConfigurationError(
            f"Environment '{environment}' not found in deploy config "
            f"(available: {', '.join(sections)})"
        )

    base = dict(config.get(DEFAULT_SECTION) or {})
    override = dict(config.get(environment) or {}) if environment != DEFAULT_SECTION else {}

    if sections and environment not in sections:
        logger.warning(f"Environment '{environment}' not in deploy config, using defaults")

    merged = {**base, **override}
    if "process_env" in base and "process_env" in override:
        merged["process_env"] = {**base["process_env"], **override["process_env"]}
    return merged


def load_deploy_config(
    config_path: Optional[Union[str, Path]] = None,
    environment: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> DeployConfiguration:
    """
    Resolve the deploy configuration for one invocation.

    Layers, lowest precedence first: environment variables (after loading
    ``.env``), the YAML deploy file section for ``environment``, and
    ``overrides`` (CLI flags; ``None`` values are ignored).

    Args:
        config_path: Deploy file; ``config/deploy.yaml`` is used when it exists
        environment: Environment section to deploy; falls back to the file's
            ``environment`` key, then ``development``
        overrides: Field values that take precedence over everything else

    Returns:
        DeployConfiguration

    Raises:
        ConfigurationError: If the file cannot be read or is invalid, or no
            bucket is configured
    """
    load_env_file()
    values: Dict[str, Any] = read_env()

    raw: Dict[str, Any] = {}
    path = Path(config_path) if config_path else None
    if path is None and DEFAULT_CONFIG_PATH.exists():
        path = DEFAULT_CONFIG_PATH

    if path is not None:
        try:
            raw = load_config(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load deploy config {path}: {e}") from e

    errors = validate_config(raw)
    if errors:
        details = "; ".join(str(error) for error in errors)
        raise ConfigurationError(f"Invalid deploy config: {details}", errors)

    env_name = environment or raw.get("environment") or DEFAULT_ENVIRONMENT
    values.update(resolve_environment(raw, env_name))
    values.update({key: value for key, value in (overrides or {}).items() if value is not None})
    values["environment"] = env_name

    try:
        config = DeployConfiguration.from_dict(values)
    except (ValueError, TypeError, KeyError) as e:
        raise ConfigurationError(str(e)) from e

    logger.info(f"Deploy configuration resolved: environment={env_name}, bucket={config.bucket}")
    return config


def get_config_example() -> str:
    """Example deploy file, printed by ``scripts/deploy.py --example-config``."""
    return """environment: development

default:
  bucket: my-site-staging
  region: us-east-1
  build_command: npm run build
  output_path: dist/
  process_env:
    API_HOST: https://staging-api.example.com
  before_deploy:
    - command: npm test
      include_options: [environment]
      fail: true

production:
  bucket: my-site
  prepend_path: assets
  timeout_seconds: 120
  max_retries: 3
  process_env:
    API_HOST: https://api.example.com
  after_deploy:
    - command: ./scripts/invalidate-cdn.sh
      fail: false
"""
