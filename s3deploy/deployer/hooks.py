"""
Before/after hook steps.

A hook phase is a list of shell commands. Each step can forward selected CLI
options to its command as ``--name=value`` and decides whether its failure
aborts the deploy (``fail: true``, the default) or is only reported.
"""

import shlex
import subprocess
from typing import Any, List, Mapping, Sequence

from s3deploy.exceptions import HookError
from s3deploy.ui import ProgressSink
from s3deploy.utils.config import HookStep
from s3deploy.utils.logging import get_logger

logger = get_logger(__name__)


def build_command_line(step: HookStep, options: Mapping[str, Any]) -> str:
    """
    Command line for a step with its included options appended.

    Options that are unset (None or False) are left out; ``True`` is passed as
    a bare flag.

    Example:
        >>> step = HookStep("npm test", include_options=["environment"])
        >>> build_command_line(step, {"environment": "production"})
        'npm test --environment=production'
    """
    parts = [step.command]
    for name in step.include_options:
        value = options.get(name)
        if value is None or value is False:
            continue
        flag = "--" + name.replace("_", "-")
        if value is True:
            parts.append(flag)
        else:
            parts.append(f"{flag}={shlex.quote(str(value))}")
    return " ".join(parts)


def run_steps(steps: Sequence[HookStep], options: Mapping[str, Any], ui: ProgressSink) -> List[int]:
    """
    Run hook steps in order.

    Args:
        steps: Steps of one hook phase
        options: CLI options available to ``include_options``
        ui: Progress sink; command output is written to it line by line

    Returns:
        Return code of every step that ran

    Raises:
        HookError: On the first failing step with ``fail`` set; later steps
            do not run
    """
    return_codes: List[int] = []

    for step in steps:
        command = build_command_line(step, options)
        ui.write_line(f"Executing: {command}", "notice")
        logger.info(f"Running hook step: {command}")

        try:
            completed = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise HookError(f"Cannot run hook step '{command}': {e}", command) from e

        for line in (completed.stdout or "").splitlines():
            ui.write_line(line)
        for line in (completed.stderr or "").splitlines():
            ui.write_line(line, "warning")

        return_codes.append(completed.returncode)

        if completed.returncode == 0:
            continue

        message = f"Hook step '{command}' exited with code {completed.returncode}"
        if step.fail:
            ui.write_line(message, "error")
            raise HookError(message, command, completed.returncode)

        ui.write_line(f"{message} (ignored)", "warning")
        logger.warning(message)

    return return_codes
