"""
Kronos · Entry Point.

Usage: kronos 1s 1m "*/5 * * * * *"
       kronos --preview 5 "0 0 12 * * 1-5"
       kronos --config /path/to/config.yaml 10s
       python -m kronos --version
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime
from itertools import islice
from pathlib import Path

from kronos import __version__
from kronos.config import KronosConfig, load_config
from kronos.cron.search import iter_matches
from kronos.errors import ConfigError, KronosError
from kronos.models import WILDCARD_TOPIC
from kronos.registry import Kronos
from kronos.timeframe import to_cron_rule
from kronos.utils.logging import get_logger, setup_logging


def _positive_int(value: str) -> int:
    count = int(value)
    if count < 1:
        raise argparse.ArgumentTypeError(f"muss mindestens 1 sein: {value}")
    return count


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Kommandozeilen-Argumente parsen."""
    parser = argparse.ArgumentParser(
        prog="kronos",
        description="Kronos · Zeit-Events aus Zeiträumen und Cron-Ausdrücken",
    )
    parser.add_argument(
        "timeframes",
        nargs="+",
        metavar="TIMEFRAME",
        help='Zeitraum ("5s", "2m", "1h", "1d") oder Cron-Ausdruck in Anführungszeichen',
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Kronos v{__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Pfad zur config.yaml (Default: ~/.kronos/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log-Level überschreiben",
    )
    parser.add_argument(
        "--preview",
        type=_positive_int,
        metavar="N",
        default=None,
        help="Nur die nächsten N Zeitpunkte je Zeitraum ausgeben und beenden",
    )
    return parser.parse_args(argv)


def preview(timeframes: list[str], count: int, config: KronosConfig) -> None:
    """Gibt die nächsten ``count`` Treffer jedes Zeitraums aus."""
    now = datetime.now(config.scheduler.job_timezone())
    for timeframe in timeframes:
        rule = to_cron_rule(timeframe)
        print(f"{timeframe}  ({rule})")
        matches = iter_matches(
            rule, now, horizon_seconds=config.scheduler.search_horizon_seconds
        )
        for instant in islice(matches, count):
            print(f"  {instant.isoformat()}")


async def run(timeframes: list[str], config: KronosConfig) -> None:
    """Abonniert alle Zeiträume und schreibt jedes Event als JSON auf stdout."""
    async with Kronos(config.scheduler) as kronos:
        stream = kronos.events.create_stream(maxsize=1000)
        for timeframe in timeframes:
            kronos.subscribe(timeframe)
        while True:
            topic, event = await stream.get()
            # Jeder Tick kommt zusätzlich auf TIME/* -- nur einmal ausgeben
            if topic == WILDCARD_TOPIC:
                continue
            print(event.model_dump_json(), flush=True)


def main(argv: list[str] | None = None) -> None:
    """Haupteintrittspunkt für Kronos."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Fehler: {exc}", file=sys.stderr)
        sys.exit(2)

    setup_logging(
        level=args.log_level or config.logging.level,
        log_dir=config.logging.log_dir,
        json_logs=config.logging.json_logs,
        console=config.logging.console,
    )
    log = get_logger("kronos")

    try:
        if args.preview is not None:
            preview(args.timeframes, args.preview, config)
        else:
            asyncio.run(run(args.timeframes, config))
    except KronosError as exc:
        log.error("kronos_failed", error=str(exc), error_code=exc.error_code)
        print(f"Fehler: {exc}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        log.info("kronos_interrupted")


if __name__ == "__main__":
    main()
