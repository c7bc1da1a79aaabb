"""
authprobe CLI: unified entrypoint for every run mode.

Usage examples:
    authprobe arn:aws:sns:us-east-1:123456789012:my-topic --read
    authprobe --compare <allow-arn> <deny-arn>
    authprobe --request-mutations <allow-arn> <deny-arn> --safe
    authprobe --session-errors <role-arn> <topic-arn> [<topic-arn> ...]
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from authprobe import __version__
from authprobe.actions import RunMode
from authprobe.base.config import ProbeConfig, get_config, set_config, setup_logging
from authprobe.engine import run_compare, run_probe, run_request_mutations, run_session_errors
from authprobe.errors import ProbeError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authprobe",
        description="Authorization-order probing for Amazon SNS topics",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("topic_arn", nargs="?", metavar="topic-arn", help="SNS topic ARN to test (probe mode)")

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--read", action="store_const", dest="mode", const=RunMode.READ,
                       help="Run only read actions (Get*, List*)")
    scope.add_argument("--safe", action="store_const", dest="mode", const=RunMode.SAFE,
                       help="Run non-destructive actions only")
    scope.add_argument("--all", action="store_const", dest="mode", const=RunMode.ALL,
                       help="Run all topic-specific actions (default)")

    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("--compare", nargs=2, metavar=("ALLOW_ARN", "DENY_ARN"),
                       help="Compare responses between an allowed and a denied topic")
    modes.add_argument("--request-mutations", nargs=2, metavar=("ALLOW_ARN", "DENY_ARN"),
                       help="Probe parameter mutations against allowed, denied and nonexistent topics")
    modes.add_argument("--session-errors", nargs="+", metavar="ARN",
                       help="Assume ROLE_ARN with a deny-all session policy and classify each topic's refusals")

    parser.add_argument("-r", "--region", help="Override AWS region (default: derived from ARN)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("-o", "--output", type=Path, help="Output directory (default: output)")
    parser.add_argument("--profile", help="AWS profile for the credential chain")
    parser.add_argument("--concurrency", type=int, help="Independent actions probed at once (default: 1)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default: 10)")
    parser.add_argument("--absent-codes-match", action="store_true", default=None,
                        help="Treat two responses without an error code as the same error")
    parser.set_defaults(mode=RunMode.ALL)
    return parser


def parse_options(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.session_errors is not None and len(args.session_errors) < 2:
        parser.error("--session-errors requires a role ARN and at least one topic ARN")
    if not (args.topic_arn or args.compare or args.request_mutations or args.session_errors):
        parser.error("topic ARN is required. Usage: authprobe <topic-arn>")
    return args


def config_from_args(args: argparse.Namespace, base: Optional[ProbeConfig] = None) -> ProbeConfig:
    """Apply command-line overrides on top of the environment configuration."""
    cfg = base or ProbeConfig.from_env()
    net, run, output, log_cfg, aws = cfg.net, cfg.run, cfg.output, cfg.log, cfg.aws

    if args.timeout is not None:
        net = dataclasses.replace(net, request_timeout=args.timeout)
    if args.concurrency is not None:
        run = dataclasses.replace(run, max_concurrent_actions=args.concurrency)
    if args.absent_codes_match:
        run = dataclasses.replace(run, absent_codes_match=True)
    if args.output is not None:
        output = dataclasses.replace(output, base_dir=args.output)
    if args.profile:
        aws = dataclasses.replace(aws, profile=args.profile)
    if args.verbose:
        log_cfg = dataclasses.replace(log_cfg, level="DEBUG")

    return ProbeConfig(net=net, run=run, output=output, log=log_cfg, aws=aws)


async def dispatch(args: argparse.Namespace, config: ProbeConfig):
    if args.session_errors:
        role_arn, *topics = args.session_errors
        return await run_session_errors(role_arn, topics, mode=args.mode, config=config)
    if args.request_mutations:
        allowed, denied = args.request_mutations
        return await run_request_mutations(
            allowed, denied, mode=args.mode, region=args.region, verbose=args.verbose, config=config
        )
    if args.compare:
        allowed, denied = args.compare
        return await run_compare(allowed, denied, mode=args.mode, region=args.region, verbose=args.verbose, config=config)
    return await run_probe(args.topic_arn, mode=args.mode, region=args.region, verbose=args.verbose, config=config)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_options(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ProbeError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    set_config(config)
    setup_logging(config)

    try:
        asyncio.run(dispatch(args, get_config()))
    except ProbeError as e:
        logger.debug(f"[CLI] Aborted: {e.to_json()}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
