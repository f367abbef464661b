"""
Command line entry point.

Usage:
    python -m cloudwatch_log_shipper log "disk almost full" --label WARN
    python -m cloudwatch_log_shipper upload
    python -m cloudwatch_log_shipper count
    python -m cloudwatch_log_shipper create-group my-app
    python -m cloudwatch_log_shipper create-stream device-1234
    python -m cloudwatch_log_shipper reset

Configuration is read from CW_SHIPPER_* environment variables, or from
a YAML file given with --config.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .config import ShipperConfig
from .exceptions import LogShipperError
from .logging_utils import configure_structured_logging
from .shipper import CloudWatchLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudwatch_log_shipper",
        description="Buffer log lines locally and ship them to CloudWatch Logs",
    )
    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    log_cmd = commands.add_parser("log", help="Store one log line")
    log_cmd.add_argument("message")
    log_cmd.add_argument("--label")
    log_cmd.add_argument("--phase")
    log_cmd.add_argument("--module")

    commands.add_parser("upload", help="Upload stored log lines")
    commands.add_parser("count", help="Show the number of stored log lines")

    stream_cmd = commands.add_parser("create-stream", help="Create and select a log stream")
    stream_cmd.add_argument("name")

    create_group_cmd = commands.add_parser("create-group", help="Create and select a log group")
    create_group_cmd.add_argument("name")

    group_cmd = commands.add_parser("set-group", help="Select the log group")
    group_cmd.add_argument("name")

    commands.add_parser("reset", help="Clear token, group, stream and app version")

    return parser


async def run(args: argparse.Namespace) -> int:
    config = ShipperConfig.from_yaml(args.config) if args.config else ShipperConfig.from_env()

    async with CloudWatchLogger(config) as cw:
        match args.command:
            case "log":
                await cw.log_async(
                    args.message, label=args.label, phase=args.phase, module=args.module
                )
                await cw.flush()
            case "upload":
                result = await cw.upload_logs()
                print(
                    json.dumps(
                        {
                            "uploaded_events": result.uploaded_events,
                            "batches_confirmed": result.batches_confirmed,
                            "remaining_events": result.remaining_events,
                            "aborted": result.aborted,
                        }
                    )
                )
                return 0 if result.success else 2
            case "count":
                print(await cw.get_saved_logs_count())
            case "create-stream":
                await cw.create_log_stream(args.name)
            case "create-group":
                await cw.create_log_group(args.name)
            case "set-group":
                await cw.set_log_group_name(args.name)
            case "reset":
                await cw.reset_logger_preferences()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_structured_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        return asyncio.run(run(args))
    except LogShipperError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
