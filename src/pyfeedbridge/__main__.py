"""Command line entry point: ``python -m pyfeedbridge serve|watch``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from pyfeedbridge.bridge import run_bridge
from pyfeedbridge.client import FeedClient
from pyfeedbridge.config import BridgeConfig, ClientConfig
from pyfeedbridge.exceptions import FeedBridgeConfigError
from pyfeedbridge.models.samples import DerivedSamples

_logger = logging.getLogger("pyfeedbridge")


def _format_samples(samples: DerivedSamples, client: FeedClient) -> str:
    hr = samples.heart_ox
    geo = samples.geo
    travel = client.travel
    parts = [
        f"steps={samples.motion.steps}",
        f"kcal={samples.motion.calories}",
        f"hr={hr.heart_rate}",
        f"spo2={hr.spo2}",
        f"temp={samples.temperature.celsius}",
        f"pos=({geo.lat}, {geo.lon})",
        f"dist={travel.distance_text}",
        f"speed={travel.speed_text}",
    ]
    return " ".join(parts)


async def _watch(config: ClientConfig) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    client: FeedClient | None = None

    def _on_update(samples: DerivedSamples) -> None:
        if client is not None:
            _logger.info("%s", _format_samples(samples, client))

    def _on_connection(connected: bool) -> None:
        _logger.info("Push channel %s", "connected" if connected else "disconnected")

    async with FeedClient(config, on_update=_on_update, on_connection_change=_on_connection) as client:
        await stop.wait()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pyfeedbridge",
        description="Bridge broker sensor feeds to local viewers, or watch a running bridge.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the bridge (reads AIO_USER, AIO_KEY, FEEDS, PORT)")
    serve.add_argument("--host", help="Listen address (default: 0.0.0.0)")
    serve.add_argument("--port", type=int, help="Listen port (default: $PORT or 3000)")
    serve.add_argument("--no-mqtt", action="store_true", help="Serve pull routes only")

    watch = sub.add_parser("watch", help="Follow a running bridge and print derived samples")
    watch.add_argument("--url", help="Bridge base URL (default: $FEEDBRIDGE_URL or http://localhost:3000)")
    watch.add_argument("--poll-interval", type=float, help="Seconds between pull sweeps")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "serve":
            overrides: dict[str, object] = {}
            if args.host:
                overrides["host"] = args.host
            if args.port is not None:
                overrides["port"] = args.port
            if args.no_mqtt:
                overrides["mqtt_enabled"] = False
            bridge_config = BridgeConfig.from_env(**overrides)
            run_bridge(bridge_config)
        else:
            client_overrides: dict[str, object] = {}
            if args.url:
                client_overrides["base_url"] = args.url
            if args.poll_interval is not None:
                client_overrides["poll_interval"] = args.poll_interval
            asyncio.run(_watch(ClientConfig.from_env(**client_overrides)))
    except FeedBridgeConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
