"""
Utility modules for S3 Deploy.

This package provides shared utilities used across all deploy stages:
- logging: Structured logging with entry/exit decorators
- config: Deploy configuration model and environment loading
- config_loader: YAML deploy file loading and validation
- retry: Per-file retry policy for the upload queue
- metrics: Prometheus upload metrics
"""

from s3deploy.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
