"""
Deploy command: process environment, build, hooks, and upload.
"""

from .deployer import BUILD_ENV_VARIABLE, DeployCommand, DeployOptions
from .hooks import build_command_line, run_steps

__all__ = [
    "BUILD_ENV_VARIABLE",
    "DeployCommand",
    "DeployOptions",
    "build_command_line",
    "run_steps",
]
