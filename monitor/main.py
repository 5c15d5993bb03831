# =============================================================================
# Double Vision - Monitor Orchestrator
# =============================================================================
# Entry point for the command-line monitor. Wires the connection manager, the
# AI backend adapter and the monitoring scheduler together, then either:
#   - runs continuous monitoring until Ctrl+C (default),
#   - takes one snapshot and prints its analysis document (--once),
#   - sends a single device command (--command),
#   - prints generated interface code for a description (--generate).
# =============================================================================

import argparse
import logging
import sys
import threading
from typing import Dict, List, Optional

from config import get_config, resolve_provider
from device.connection import ConnectionManager
from monitor.notifier import LoggingNotifier
from monitor.scheduler import MonitoringScheduler
from monitor.suggestions import render_analysis_document
from providers.adapter import AIBackendAdapter
from shared.errors import DoubleVisionError
from shared.schemas import AnalysisRecord, utc_now

logger = logging.getLogger(__name__)


class MonitorPipeline:
    """
    Orchestrator that ties together the camera link, AI backend and
    monitoring scheduler for one session.

    Args:
        config: The global Config instance with all tunable parameters.
    """

    def __init__(self, config):
        self._config = config

        logger.info("Initializing connection manager (port=%d)", config.camera_port)
        self._connection = ConnectionManager.from_config(config)

        backend_config = config.backend_config()
        logger.info("Initializing AI backend → %s", backend_config.provider_kind.value)
        self._adapter = AIBackendAdapter(backend_config)

        self._scheduler = MonitoringScheduler.from_config(
            config,
            self._connection,
            self._adapter,
            notifier=LoggingNotifier(),
        )

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def scheduler(self) -> MonitoringScheduler:
        return self._scheduler

    def connect(self) -> None:
        self._connection.connect(self._config.camera_host, self._config.camera_port)
        print(f"Connected to ESP32 camera at {self._config.camera_host}:{self._config.camera_port}")

    def analyze_once(self) -> str:
        """Take one snapshot, analyze it, and return the analysis document."""
        snapshot = self._connection.take_snapshot()
        text = self._adapter.analyze(snapshot)
        record = AnalysisRecord(
            text=text,
            produced_at=utc_now(),
            captured_at=snapshot.captured_at,
            trigger="manual",
            provider=self._adapter.provider_kind,
        )
        return render_analysis_document(record)

    def send_command(self, name: str, params: Dict[str, str]) -> None:
        response = self._connection.send_command(name, params)
        print(response.model_dump_json(indent=2))

    def generate(self, description: str) -> str:
        return self._adapter.generate_interface_code(description)

    def run(self) -> None:
        """
        Start continuous monitoring.

        Blocks until interrupted with Ctrl+C.
        """
        print("\n" + "=" * 60)
        print("  Double Vision — ESP32 Display Monitor")
        print("=" * 60)
        print(f"  Camera      : {self._config.camera_url}")
        print(f"  Provider    : {self._adapter.provider_kind.value}")
        print(f"  Interval    : {self._config.monitoring_interval_ms}ms")
        print(f"  Debounce    : {self._config.debounce_ms}ms")
        print(f"  History     : {self._config.history_capacity}")
        print("=" * 60 + "\n")

        self._scheduler.start()
        logger.info("Monitoring — press Ctrl+C to stop.")

        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received. Shutting down...")
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop monitoring and close the camera link."""
        self._scheduler.stop()
        self._connection.disconnect()
        logger.info("Monitor pipeline stopped.")


def _parse_params(pairs: Optional[List[str]]) -> Dict[str, str]:
    params = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {pair!r}")
        params[key] = value
    return params


def main():
    """CLI entry point for the monitor."""
    parser = argparse.ArgumentParser(
        description="Double Vision — AI monitoring of an ESP32 camera/display",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", type=str, default=None, help="Camera IPv4 address (overrides config)")
    parser.add_argument("--port", type=int, default=None, help="Camera HTTP port")
    parser.add_argument(
        "--provider", type=str, default=None,
        help="AI backend: local, openai, anthropic or google",
    )
    parser.add_argument("--api-key", type=str, default=None, help="API key for external backends")
    parser.add_argument("--interval", type=int, default=None, help="Monitoring interval in ms")
    parser.add_argument(
        "--once", action="store_true",
        help="Take one snapshot, print its analysis and exit",
    )
    parser.add_argument("--command", type=str, default=None, help="Send a device command and exit")
    parser.add_argument(
        "--param", action="append", default=None, metavar="KEY=VALUE",
        help="Parameter for --command, e.g. value=10 (repeatable)",
    )
    parser.add_argument(
        "--generate", type=str, default=None, metavar="DESCRIPTION",
        help="Print LVGL interface code for a description and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = get_config()
    if args.host is not None:
        config.camera_host = args.host
    if args.port is not None:
        config.camera_port = args.port
    if args.provider is not None:
        try:
            config.ai_provider = resolve_provider(args.provider).value
        except ValueError:
            parser.error(f"unknown provider {args.provider!r}")
    if args.api_key is not None:
        config.ai_api_key = args.api_key
    if args.interval is not None:
        config.monitoring_interval_ms = args.interval

    config.camera_url = f"http://{config.camera_host}:{config.camera_port}"

    try:
        params = _parse_params(args.param)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))

    pipeline = MonitorPipeline(config)

    try:
        if args.generate is not None:
            print(pipeline.generate(args.generate))
            return

        pipeline.connect()
        if args.command is not None:
            pipeline.send_command(args.command, params)
        elif args.once:
            print(pipeline.analyze_once())
        else:
            pipeline.run()
            return
        pipeline.stop()
    except DoubleVisionError as exc:
        logger.error("%s", exc)
        pipeline.stop()
        sys.exit(1)


if __name__ == "__main__":
    main()
