"""CLI entry point del suscriptor de dataloggers."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import signal
import sys
import threading
from typing import List, Optional

from common.config import Settings, get_settings

from .core.receiver import DatalogReceiver

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Datalogger MQTT subscriber (topic classification + CSV datalog)"
    )
    p.add_argument("--env-file", default=None, help="path to a .env file")
    p.add_argument("--output-folder", default=None, help="CSV output folder")
    p.add_argument("--output-file", default=None, help="CSV output file name")
    p.add_argument("--topic", default=None, help="MQTT topic filter to subscribe to")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    return p


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "output_folder": args.output_folder,
        "output_file": args.output_file,
        "mqtt_topic": args.topic,
        "log_level": args.log_level.upper() if args.log_level else None,
    }
    return dataclasses.replace(
        settings, **{k: v for k, v in overrides.items() if v is not None}
    )


def _wait_for_shutdown() -> None:
    stop = threading.Event()

    def _handle_signal(signum, frame):
        logger.info("Signal %d received, shutting down", signum)
        stop.set()

    signal.signal(signal.SIGTERM, _handle_signal)

    if sys.stdin is not None and sys.stdin.isatty():
        logger.info("Application is running. Press Enter to disconnect and exit.")
        try:
            input()
        except EOFError:
            stop.wait()
    else:
        stop.wait()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = apply_overrides(get_settings(args.env_file), args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    logger.info("Datalogger Subscriber")
    logger.info(
        "Config: broker=%s:%d transport=%s topic=%s output=%s",
        settings.mqtt_broker_host,
        settings.mqtt_broker_port,
        settings.mqtt_transport,
        settings.mqtt_topic,
        settings.output_path,
    )

    receiver = DatalogReceiver(settings)
    if not receiver.start():
        receiver.stop()
        return 1

    try:
        _wait_for_shutdown()
    except KeyboardInterrupt:
        pass
    finally:
        receiver.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
