"""
Command-line entry point for running the workflows outside Lambda.

Usage:
    lambda-perf deploy --memory 128 --arch x86_64
    lambda-perf deploy --memory 1024 --arch arm64 --manifest manifest.json
    lambda-perf invoke
    lambda-perf invoke --fast   # no settle/pacing delays (dry runs against LocalStack)
"""

import argparse
import logging
import sys

from botocore.exceptions import ClientError

from lambda_perf.config import DEFAULT_TIMINGS, FAST_TIMINGS, Settings
from lambda_perf.exceptions import BenchmarkError
from lambda_perf.function_deployer import run_deployer
from lambda_perf.trigger_invoker import run_invoker

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--manifest", help="Manifest path (default: $MANIFEST_PATH or manifest.json)")
    common.add_argument(
        "--fast", action="store_true", help="Skip fixed pacing delays (dry runs only)"
    )

    parser = argparse.ArgumentParser(
        prog="lambda-perf",
        description="Provision and trigger the Lambda cold-start benchmark",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy = subparsers.add_parser(
        "deploy", parents=[common], help="Deploy the fleet for one memory size and architecture"
    )
    deploy.add_argument("--memory", type=int, required=True, dest="memory_size", help="Memory size in MB")
    deploy.add_argument(
        "--arch", required=True, dest="architecture", help="Architecture (x86_64 or arm64)"
    )

    subparsers.add_parser(
        "invoke", parents=[common], help="Reset the results table and invoke the whole matrix"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
    args = build_parser().parse_args(argv)
    timings = FAST_TIMINGS if args.fast else DEFAULT_TIMINGS

    try:
        settings = Settings.from_env()
        if args.manifest:
            settings.manifest_path = args.manifest

        if args.command == "deploy":
            run_deployer(settings, args.memory_size, args.architecture, timings)
        else:
            run_invoker(settings, timings)
    except (BenchmarkError, ClientError) as e:
        log.error(f"✗ {e}")
        return 1
    except KeyboardInterrupt:
        log.warning("Aborted by user (KeyboardInterrupt)")
        return 130

    log.info("✓ success")
    return 0


if __name__ == "__main__":
    sys.exit(main())
