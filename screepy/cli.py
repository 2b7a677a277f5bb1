"""Command line interface.

Usage:
    python -m screepy simulate --ticks 300
    python -m screepy simulate --config configs/default.yaml --log-format json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from enum import StrEnum

from screepy.config.loader import Config, get_default_config, load_config
from screepy.core.scheduler import Scheduler
from screepy.host.world import build_demo_world
from screepy.memory.store import InMemoryStateStore
from screepy.runtime.metrics import ColonyMetrics, MetricsCollector

logger = logging.getLogger(__name__)


class LogFormat(StrEnum):
    """CLI log formatter mode."""

    READABLE = "readable"
    JSON = "json"


class _JSONLogFormatter(logging.Formatter):
    """Compact JSON formatter for machine-readable logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


def _configure_logging(level: str = "INFO", log_format: str = LogFormat.READABLE.value) -> None:
    """Configure process-wide logging, replacing any handler installed earlier."""
    resolved_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not getattr(h, "_screepy_handler", False)]

    handler = logging.StreamHandler()
    handler._screepy_handler = True  # type: ignore[attr-defined]
    if log_format == LogFormat.JSON.value:
        formatter: logging.Formatter = _JSONLogFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(resolved_level)


def build_arg_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(prog="screepy", description="Colony tick controller")
    subparsers = parser.add_subparsers(dest="command")

    simulate_parser = subparsers.add_parser(
        "simulate", help="Run the colony against the in-memory host"
    )
    simulate_parser.add_argument("--ticks", type=int, default=None, help="Number of ticks to run")
    simulate_parser.add_argument("--config", type=str, default=None, help="Path to a YAML config")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Demo world RNG seed")
    simulate_parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: from config)",
    )
    simulate_parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=[fmt.value for fmt in LogFormat],
        help="Log formatter (default: from config)",
    )
    simulate_parser.add_argument(
        "--json", action="store_true", help="Print the final metrics as JSON"
    )
    return parser


def _resolve_config(path: str | None) -> Config:
    if path is not None:
        return load_config(path)
    try:
        return load_config()
    except FileNotFoundError:
        logger.debug("No default config file found, using built-in defaults")
        return get_default_config()


def _summarize(metrics: ColonyMetrics) -> str:
    lines = [
        f"ticks:           {metrics.ticks} (avg {metrics.avg_tick_time_ms:.2f} ms)",
        f"spawns:          {metrics.spawns_succeeded}/{metrics.spawns_requested} accepted",
        f"terminations:    {metrics.terminations}",
        f"records freed:   {metrics.records_collected} ({metrics.bytes_collected} bytes)",
        f"unit failures:   {metrics.unit_failures}",
    ]
    for kind, count in sorted(metrics.outcomes.items()):
        lines.append(f"outcome {kind + ':':<8} {count}")
    for label, count in sorted(metrics.rejections.items()):
        lines.append(f"rejected ({label}): {count}")
    return "\n".join(lines)


def simulate_command(args: argparse.Namespace) -> int:
    """Run the scheduler against a demo world and print a metrics summary."""
    config = _resolve_config(args.config)
    if args.seed is not None:
        config.simulation.seed = args.seed
    _configure_logging(
        level=args.log_level or config.logging.level,
        log_format=args.log_format or config.logging.format,
    )

    ticks = args.ticks if args.ticks is not None else config.simulation.ticks
    if ticks < 1:
        raise ValueError(f"--ticks must be positive, got {ticks}")

    store = InMemoryStateStore()
    world = build_demo_world(config.simulation, store)
    metrics = MetricsCollector()
    scheduler = Scheduler(world, store, config, metrics)

    logger.info("[SIM] Running %d ticks in room %s", ticks, config.simulation.room)
    scheduler.run(ticks, advance=world.advance)

    snapshot = metrics.get_metrics()
    if args.json:
        print(snapshot.model_dump_json(indent=2))
    else:
        print(_summarize(snapshot))
        for room in world.rooms():
            if room.controller is not None:
                print(f"controller {room.name}: progress {room.controller.progress}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint function."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    _configure_logging(
        level="INFO",
        log_format=str(getattr(args, "log_format", None) or LogFormat.READABLE.value),
    )

    try:
        if args.command == "simulate":
            return simulate_command(args)
        raise ValueError(f"Unsupported command: {args.command}")
    except Exception as exc:
        logger.error("[BOOT] CLI execution failed: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
