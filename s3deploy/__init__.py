"""
S3 Deploy

Deploys a static build output directory (``dist/`` by default) to an S3
bucket with public-read objects and long-lived cache headers.

This package provides modular components for each stage of a deploy:
- uploader: file enumeration, per-file upload parameters, sequential upload
  with round-robin retry, and bucket validation
- deployer: build step, before/after hooks, and the deploy command
- storage: the shared S3 client handle
- ui: colored console progress reporting
- utils: logging, configuration, retry policy, and metrics
"""

__version__ = "0.1.0"

# Package-level imports
from s3deploy.utils.logging import setup_logging

# Initialize default logging configuration
setup_logging()
