#!/usr/bin/env python3
"""
Deploy a build output directory to an S3 bucket.

CLI wrapper for the deploy command providing command-line access to the
build + upload workflow with file- and environment-based configuration.

Usage:
    python scripts/deploy.py
    python scripts/deploy.py -e production
    python scripts/deploy.py -e production --skip-build -o build/
    python scripts/deploy.py --aws-bucket my-site --prepend-path v2

Copy config/deploy.example.yaml to config/deploy.yaml to start from a deploy file.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from s3deploy.deployer import DeployCommand, DeployOptions  # noqa: E402
from s3deploy.exceptions import ConfigurationError, DeployError, UploadIncompleteError  # noqa: E402
from s3deploy.ui import ConsoleUI  # noqa: E402
from s3deploy.utils.config_loader import get_config_example, load_deploy_config  # noqa: E402
from s3deploy.utils.logging import get_deploy_id, get_logger, setup_logging  # noqa: E402
from s3deploy.utils.metrics import start_metrics_server  # noqa: E402

logger = get_logger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Deploy the project's build output to an S3 bucket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build and deploy the development environment
  %(prog)s

  # Deploy production using config/deploy.yaml
  %(prog)s -e production

  # Deploy an existing build under a key prefix
  %(prog)s --skip-build -o build/ --prepend-path v2

  # Print an example deploy config file
  %(prog)s --example-config
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        help="Deploy config file (default: config/deploy.yaml if present)",
    )

    parser.add_argument(
        "-e",
        "--environment",
        help="Environment section of the config file to deploy",
    )

    parser.add_argument(
        "-o",
        "--output-path",
        help="Build output directory to upload (default: dist/)",
    )

    parser.add_argument(
        "-p",
        "--prepend-path",
        help="Prefix added to every object key",
    )

    parser.add_argument(
        "--skip-build",
        action="store_true",
        help="Upload the existing output directory without building",
    )

    parser.add_argument("--aws-key", help="AWS access key ID")
    parser.add_argument("--aws-secret", help="AWS secret access key")
    parser.add_argument("--aws-bucket", help="Target S3 bucket")
    parser.add_argument("--aws-region", help="Bucket region (corrected automatically)")

    parser.add_argument(
        "--build-command",
        help="Build command (default: npm run build)",
    )

    parser.add_argument(
        "--max-retries",
        type=int,
        help="Upload attempts per file before giving up (default: 5)",
    )

    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        help="S3 connect/read timeout in seconds (default: 60)",
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port while deploying",
    )

    parser.add_argument(
        "--example-config",
        action="store_true",
        help="Print an example deploy config file and exit",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    args = parser.parse_args(argv)

    if args.max_retries is not None and args.max_retries < 1:
        parser.error("--max-retries must be at least 1")
    if args.timeout is not None and args.timeout < 1:
        parser.error("--timeout must be at least 1")

    return args


def build_options(args) -> DeployOptions:
    return DeployOptions(
        environment=args.environment,
        config=args.config,
        output_path=args.output_path,
        prepend_path=args.prepend_path,
        skip_build=args.skip_build,
        aws_key=args.aws_key,
        aws_secret=args.aws_secret,
        aws_bucket=args.aws_bucket,
        aws_region=args.aws_region,
        build_command=args.build_command,
        max_retries=args.max_retries,
        timeout=args.timeout,
        verbose=args.verbose,
    )


def main(argv=None):
    """Main entry point for deploy CLI."""
    args = parse_args(argv)

    if args.example_config:
        print(get_config_example())
        return 0

    setup_logging(level="DEBUG" if args.verbose else "WARNING")
    logger.info(f"Deploy ID: {get_deploy_id()}")

    ui = ConsoleUI()
    options = build_options(args)

    try:
        config = load_deploy_config(
            args.config,
            environment=args.environment,
            overrides=options.config_overrides(),
        )
    except ConfigurationError as e:
        ui.write_line(f"❌ Configuration error: {e}", "error")
        ui.write_line("Set the bucket in config/deploy.yaml, S3_DEPLOY_BUCKET, or --aws-bucket.")
        return 1

    if options.environment is None:
        options.environment = config.environment

    if args.metrics_port:
        start_metrics_server(port=args.metrics_port)

    ui.write_line(f"📤 Deploying {config.output_path} to s3://{config.bucket}", "notice")
    ui.write_line(f"   Environment: {config.environment}")
    if config.prepend_path:
        ui.write_line(f"   Prefix: {config.prepend_path}")

    try:
        report = DeployCommand(config, ui, options).run()

    except KeyboardInterrupt:
        ui.write_line("\n⚠️  Deploy cancelled by user", "warning")
        return 130

    except UploadIncompleteError as e:
        ui.write_line(f"❌ {e}", "error")
        for file in e.failed:
            ui.write_line(f"  • {file.relative_path}", "error")
        return 1

    except DeployError as e:
        logger.debug("Deploy failed", exc_info=True)
        ui.write_line(f"❌ {e}", "error")
        return 1

    ui.write_line(
        f"✅ Deploy complete: {len(report.uploaded)} files, "
        f"{report.bytes_uploaded:,} bytes, {report.attempts} attempts "
        f"in {report.duration_seconds:.2f}s",
        "success",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
