"""Command line entry point: run extractions once or on a cron schedule."""

from __future__ import annotations

import argparse
import logging
import os
import re
import signal
import sys
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Sequence

from dotenv import load_dotenv

from .config import load_config
from .extraction import DataExtractor
from .graph_client import TheGraphClient

log = logging.getLogger(__name__)

_INT_PATTERN = re.compile(r"[+-]?\d+")
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}

_MONTHS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_WEEKDAYS = {
    name: number
    for number, name in enumerate(("sun", "mon", "tue", "wed", "thu", "fri", "sat"))
}
_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}
_SEARCH_YEARS = 5


class CronError(ValueError):
    """Raised for an invalid cron expression or a schedule that never fires."""


def _parse_number(text: str, names: dict[str, int], label: str) -> int:
    named = names.get(text.lower())
    if named is not None:
        return named
    if not text.isdigit():
        raise CronError(f"invalid value {text!r} in {label} field")
    return int(text)


def _parse_field(text: str, low: int, high: int, names: dict[str, int], label: str):
    values: set[int] = set()
    star = False
    for part in text.split(","):
        range_part, has_step, step_text = part.partition("/")
        part_star = False
        if range_part in ("*", "?"):
            start, end = low, high
            part_star = True
            has_range = True
        else:
            first, dash, last = range_part.partition("-")
            start = _parse_number(first, names, label)
            end = _parse_number(last, names, label) if dash else start
            has_range = bool(dash)
        step = 1
        if has_step:
            step = _parse_number(step_text, {}, label)
            if step <= 0:
                raise CronError(f"step of {label} field must be positive: {part!r}")
            if not has_range:
                end = high
            if step > 1:
                part_star = False
        if start < low:
            raise CronError(f"beginning of {label} range ({start}) below minimum ({low})")
        if end > high:
            raise CronError(f"end of {label} range ({end}) above maximum ({high})")
        if start > end:
            raise CronError(f"beginning of {label} range ({start}) beyond end ({end})")
        values.update(range(start, end + 1, step))
        star = star or part_star
    return frozenset(values), star


@dataclass(frozen=True)
class CronSchedule:
    """A standard five-field cron schedule: minute hour day-of-month month day-of-week."""

    expression: str
    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]
    any_day: bool
    any_weekday: bool

    @classmethod
    def parse(cls, expression: str) -> CronSchedule:
        """Parse a cron expression or one of the @yearly..@hourly descriptors."""
        text = expression.strip()
        if text.startswith("@"):
            if text not in _DESCRIPTORS:
                raise CronError(f"unrecognized descriptor: {text}")
            text = _DESCRIPTORS[text]
        fields = text.split()
        if len(fields) != 5:
            raise CronError(f"expected exactly 5 fields, found {len(fields)}: {expression!r}")
        minutes, _ = _parse_field(fields[0], 0, 59, {}, "minute")
        hours, _ = _parse_field(fields[1], 0, 23, {}, "hour")
        days, any_day = _parse_field(fields[2], 1, 31, {}, "day of month")
        months, _ = _parse_field(fields[3], 1, 12, _MONTHS, "month")
        weekdays, any_weekday = _parse_field(fields[4], 0, 6, _WEEKDAYS, "day of week")
        return cls(expression, minutes, hours, days, months, weekdays, any_day, any_weekday)

    def _day_matches(self, moment: datetime) -> bool:
        day_match = moment.day in self.days
        weekday_match = (moment.weekday() + 1) % 7 in self.weekdays
        if self.any_day or self.any_weekday:
            return day_match and weekday_match
        return day_match or weekday_match

    def matches(self, moment: datetime) -> bool:
        """Whether the schedule fires in the minute containing ``moment``."""
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.month in self.months
            and self._day_matches(moment)
        )

    def next_after(self, moment: datetime) -> datetime:
        """The first minute strictly after ``moment`` at which the schedule fires."""
        current = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
        last_year = current.year + _SEARCH_YEARS
        while current.year <= last_year:
            if current.month not in self.months:
                if current.month == 12:
                    current = current.replace(year=current.year + 1, month=1, day=1, hour=0, minute=0)
                else:
                    current = current.replace(month=current.month + 1, day=1, hour=0, minute=0)
                continue
            if not self._day_matches(current):
                current = current.replace(hour=0, minute=0) + timedelta(days=1)
                continue
            if current.hour not in self.hours:
                current = current.replace(minute=0) + timedelta(hours=1)
                continue
            if current.minute not in self.minutes:
                current += timedelta(minutes=1)
                continue
            return current
        raise CronError(f"schedule {self.expression!r} never fires")


def env_or_default(key: str, default: str) -> str:
    """The environment value of ``key``, or ``default`` when unset or empty."""
    return os.environ.get(key) or default


def env_int(key: str, default: int) -> int:
    """The environment value of ``key`` as an integer, or ``default``."""
    value = os.environ.get(key, "")
    if value and _INT_PATTERN.fullmatch(value):
        return int(value)
    return default


def _bool_value(value: str) -> bool | None:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return None


def env_bool(key: str, default: bool) -> bool:
    """The environment value of ``key`` as a boolean, or ``default``."""
    parsed = _bool_value(os.environ.get(key, ""))
    return default if parsed is None else parsed


def _flag_bool(text: str) -> bool:
    parsed = _bool_value(text)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")
    return parsed


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line options, taking defaults from the environment."""
    parser = argparse.ArgumentParser(description="Extract subgraph data on a schedule.")
    parser.add_argument(
        "-output", "--output", default=env_or_default("OUTPUT_DIR", "data"),
        help="Output directory for extracted data",
    )
    parser.add_argument(
        "-concurrency", "--concurrency", type=int, default=env_int("CONCURRENCY", 8),
        help="Number of concurrent workers",
    )
    parser.add_argument(
        "-kafka", "--kafka", default=env_or_default("KAFKA_BROKERS", "localhost:9092"),
        help="Comma-separated list of Kafka brokers",
    )
    parser.add_argument(
        "-topic-prefix", "--topic-prefix", dest="topic_prefix",
        default=env_or_default("KAFKA_TOPIC_PREFIX", "thegraph"),
        help="Prefix for Kafka topics",
    )
    parser.add_argument(
        "-cron", "--cron", default=env_or_default("CRON_SCHEDULE", "*/5 * * * *"),
        help="Cron schedule for automatic extraction (default: every 5 minutes)",
    )
    parser.add_argument(
        "-once", "--once", nargs="?", const=True, type=_flag_bool,
        default=env_bool("RUN_ONCE", False),
        help="Run extraction once and exit (disable cron)",
    )
    parser.add_argument(
        "-enable-kafka", "--enable-kafka", dest="enable_kafka", nargs="?", const=True,
        type=_flag_bool, default=env_bool("ENABLE_KAFKA", True),
        help="Enable Kafka publishing",
    )
    return parser.parse_args(argv)


def _run_schedule(schedule: CronSchedule, job: Callable[[], None], stop: threading.Event) -> None:
    while True:
        now = datetime.now()
        delay = (schedule.next_after(now) - now).total_seconds()
        if stop.wait(max(0.0, delay)):
            return
        threading.Thread(target=job, name="scheduled-extraction", daemon=True).start()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the extraction service; return the process exit status."""
    logging.basicConfig(
        level=logging.DEBUG if os.environ.get("DEBUG") == "true" else logging.INFO,
        stream=sys.stdout,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    env_path = Path(".env")
    if env_path.is_file():
        try:
            load_dotenv(env_path)
        except (OSError, ValueError) as exc:
            log.warning("error loading .env file: %s", exc)

    options = parse_args(argv)
    brokers = options.kafka.split(",")
    log.info(
        "starting data extraction service output=%s concurrency=%d brokers=%s "
        "topic_prefix=%s cron=%s once=%s enable_kafka=%s",
        options.output,
        options.concurrency,
        options.kafka,
        options.topic_prefix,
        options.cron,
        options.once,
        options.enable_kafka,
    )

    try:
        config = load_config(".env")
    except Exception as exc:
        log.critical("failed to load configuration: %s", exc)
        return 1
    if not config.endpoints:
        log.critical("no endpoints configured; check the ENDPOINTS_JSON environment variable")
        return 1
    if not config.auth_token:
        log.critical("no auth token provided; check the GRAPHQL_AUTH_TOKEN environment variable")
        return 1

    stop = threading.Event()

    def handle_signal(signum: int, _frame: object) -> None:
        log.info("received shutdown signal %s", signal.Signals(signum).name)
        stop.set()

    previous_handlers = {}
    if threading.current_thread() is threading.main_thread():
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous_handlers[sig] = signal.signal(sig, handle_signal)

    client = TheGraphClient(config.auth_token)
    extractor = DataExtractor(
        client, config.endpoints, output_dir=options.output, concurrency=options.concurrency
    )
    if options.enable_kafka:
        log.warning(
            "Kafka publishing requested for brokers %s (topic prefix %s), but no message "
            "bus client is available; publishing disabled",
            brokers,
            options.topic_prefix,
        )
    else:
        log.info("Kafka publishing disabled")

    def run_extraction() -> None:
        log.info("starting scheduled data extraction")
        started = time.monotonic()
        try:
            extractor.extract_all(stop)
        except Exception as exc:
            log.error("extraction failed: %s", exc)
            return
        log.info(
            "scheduled data extraction completed successfully in %.3fs",
            time.monotonic() - started,
        )

    try:
        if options.once:
            log.info(
                "running single extraction endpoints=%d workers=%d output=%s",
                len(config.endpoints),
                options.concurrency,
                options.output,
            )
            run_extraction()
            log.info("single extraction completed, exiting")
            return 0

        try:
            schedule = CronSchedule.parse(options.cron)
        except CronError as exc:
            log.critical("failed to add cron job schedule=%s: %s", options.cron, exc)
            return 1

        log.info(
            "starting cron scheduler endpoints=%d workers=%d output=%s schedule=%s",
            len(config.endpoints),
            options.concurrency,
            options.output,
            options.cron,
        )
        scheduler = threading.Thread(
            target=_run_schedule, args=(schedule, run_extraction, stop),
            name="cron-scheduler", daemon=True,
        )
        scheduler.start()

        log.info("running initial extraction")
        run_extraction()
        log.info("cron scheduler started; press Ctrl+C to stop")

        while not stop.wait(1.0):
            pass
        log.info("shutdown signal received, stopping cron scheduler")
        scheduler.join()
        time.sleep(2.0)
        log.info("graceful shutdown completed")
        return 0
    finally:
        try:
            extractor.close()
        except Exception as exc:
            log.error("error during service shutdown: %s", exc)
        client.close()
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)


if __name__ == "__main__":
    raise SystemExit(main())