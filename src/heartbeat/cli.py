"""
Command-line interface for the telemetry emitter.

Provides commands for:
- Running the emission loop against an OTLP collector (or file/console)
- Printing the resolved configuration
"""

import argparse
import json
import logging
import signal
import sys

from .app import StartupError, build_app
from .config import EXPORTER_KINDS, OTLP_PROTOCOLS, ConfigError, HeartbeatConfig, load_config
from .logging_setup import configure_logging, shutdown_logging

logger = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config file (default: $HEARTBEAT_CONFIG, else built-in defaults)",
    )
    parser.add_argument(
        "--service-name",
        type=str,
        default=None,
        help="service.name resource attribute for spans",
    )
    parser.add_argument(
        "--endpoint",
        type=str,
        default=None,
        help="OTLP endpoint (default: localhost:4317)",
    )
    parser.add_argument(
        "--protocol",
        choices=OTLP_PROTOCOLS,
        default=None,
        help="OTLP protocol (default: grpc)",
    )
    parser.add_argument(
        "--exporter",
        choices=EXPORTER_KINDS,
        default=None,
        help="Span exporter (default: otlp)",
    )
    parser.add_argument(
        "--output-file",
        type=str,
        default=None,
        help="JSONL span file; implies --exporter file",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Port for /metrics (default: 8080, 0 disables)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Rotating JSON log file (default: log/app.log, '' disables)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between ticks (default: 2)",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=None,
        help="Stop after this many ticks (default: run until interrupted)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random source",
    )
    parser.add_argument(
        "--join-children",
        action="store_true",
        help="Wait for work1/work2 spans before the next tick",
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Do not probe the OTLP collector at startup",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="heartbeat",
        description="Synthetic telemetry emitter: correlated logs, metrics and traces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Emit to a local OTLP gRPC collector, metrics on :8080/metrics
  heartbeat run

  # Ten quick ticks to a file, no collector needed
  heartbeat run --ticks 10 --interval 0.1 --output-file spans.jsonl

  # Show the resolved configuration
  heartbeat show-config --config heartbeat.yaml
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Run the emission loop")
    _add_common_arguments(run_parser)

    show_parser = subparsers.add_parser("show-config", help="Print the resolved configuration")
    _add_common_arguments(show_parser)

    return parser


def resolve_config(args: argparse.Namespace) -> HeartbeatConfig:
    """Load config from file/env, then apply CLI flags and re-validate."""
    config = load_config(args.config)
    if args.service_name:
        config.service_name = args.service_name
    if args.endpoint:
        config.exporter.endpoint = args.endpoint
    if args.protocol:
        config.exporter.protocol = args.protocol
    if args.exporter:
        config.exporter.kind = args.exporter
    if args.output_file:
        config.exporter.kind = "file"
        config.exporter.output_file = args.output_file
    if args.metrics_port is not None:
        config.metrics.port = args.metrics_port
    if args.log_file is not None:
        config.logging.file = args.log_file or None
    if args.interval is not None:
        config.loop.interval = args.interval
    if args.ticks is not None:
        config.loop.max_ticks = args.ticks
    if args.seed is not None:
        config.loop.seed = args.seed
    if args.join_children:
        config.loop.join_children = True
    if args.no_wait:
        config.exporter.wait_for_collector = False
    config.validate()
    return config


def cmd_run(args: argparse.Namespace) -> int:
    """Run the emission loop until interrupted or --ticks is reached."""
    config = resolve_config(args)
    configure_logging(config.logging)
    logger.info(
        "Starting %s (exporter=%s endpoint=%s metrics=%s:%d)",
        config.service_name,
        config.exporter.kind,
        config.exporter.endpoint,
        config.metrics.host,
        config.metrics.port,
    )

    app = build_app(config, install_global=True)
    signal.signal(signal.SIGTERM, lambda _signum, _frame: app.loop.stop(0))
    try:
        app.start()
        app.wait()
    except KeyboardInterrupt:
        logger.info("Generation interrupted")
    finally:
        app.shutdown()
        shutdown_logging()
    return 0


def cmd_show_config(args: argparse.Namespace) -> int:
    """Print the resolved configuration as JSON."""
    config = resolve_config(args)
    print(json.dumps(config.to_dict(), indent=2))
    return 0


def main(argv: list[str] | None = None):
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == "run":
            code = cmd_run(args)
        elif args.command == "show-config":
            code = cmd_show_config(args)
        else:
            parser.print_help()
            code = 1
    except (ConfigError, StartupError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
