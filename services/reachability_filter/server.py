"""
Reachability Filter — removes obstacle-invalidated spheres from a
reachability map.

Listens for planning scenes (octomap) and the reachability map on the
message bus, filters the map at a fixed rate and publishes the filtered
and colliding maps. A small HTTP surface reports health and loop status.

Port: 8095 (configurable via REACHABILITY_FILTER_PORT env var)

Usage:
    python -m services.reachability_filter.server                # circumscribed sphere
    python -m services.reachability_filter.server voxel
    python -m services.reachability_filter.server inscribe --rate 2 --debug
    python -m services.reachability_filter.server voxel --no-http
"""
from dotenv import load_dotenv
load_dotenv()

import argparse
import logging
import signal
import sys
import threading
import time
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI

from shared.bus.publisher import SyncEventPublisher
from shared.bus.subscriber import SyncEventSubscriber
from shared.bus.topics import Topics
from shared.config.service_registry import ServiceConfig
from shared.messages.health import ServiceHealthMessage
from shared.utils.logging_config import setup_logging
from src.map.reachability_filter import FilterType, InvalidFilterTypeError
from src.map.remove_obstacles import ReachabilityFilterNode

logger = logging.getLogger("reachfilter.reachability_filter")

# ---------------------------------------------------------------------------
# CLI args
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Remove obstacle-colliding spheres from a reachability map"
    )
    parser.add_argument(
        "filter_type",
        nargs="?",
        default=None,
        help="voxel | inscribe | circumscribe (default: circumscribe)",
    )
    parser.add_argument("--rate", type=float, default=None, help="Loop rate in Hz")
    parser.add_argument("--redis-url", default=None, help="Message bus URL")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: from service registry)")
    parser.add_argument("--no-http", action="store_true", help="Run without the health/status server")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    parser.add_argument("--log-dir", type=str, default=None, help="Custom log directory")
    return parser


def resolve_filter_type(selector: Optional[str]) -> FilterType:
    """CLI selector, then FILTER_TYPE env, then the default."""
    if selector is None:
        selector = ServiceConfig.FILTER_TYPE
    if selector is None:
        logger.info("No filter type provided. Defaulting to CIRCUMSCRIBED SPHERE!")
        return FilterType.default()
    filter_type = FilterType.parse(selector)
    logger.info("Setting filter type to %s", filter_type.label)
    return filter_type


# ---------------------------------------------------------------------------
# Bus wiring
# ---------------------------------------------------------------------------


@contextmanager
def run_node(
    node: ReachabilityFilterNode,
    publisher: Any = None,
    subscriber: Any = None,
):
    """Connect the bus, run the loop, and tear everything down on exit."""
    if publisher is not None:
        publisher.connect()
    if subscriber is not None and subscriber.connect():
        node.on_map_cached = lambda: subscriber.unsubscribe(Topics.REACHABILITY_MAP)
        subscriber.subscribe(Topics.PLANNING_SCENE, node.handle_planning_scene)
        subscriber.subscribe(Topics.REACHABILITY_MAP, node.handle_reachability_map)
        subscriber.listen()
    else:
        logger.warning("Message bus subscriber not available (no input will arrive)")

    node.start()
    try:
        yield node
    finally:
        node.stop()
        if subscriber is not None:
            subscriber.close()
        if publisher is not None:
            publisher.close()
        logger.info("Shutting down remove obstacles reachability")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------


def create_app(
    node: ReachabilityFilterNode,
    publisher: Any = None,
    subscriber: Any = None,
    port: int = ServiceConfig.REACHABILITY_FILTER_PORT,
) -> FastAPI:
    started_at = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        with run_node(node, publisher, subscriber):
            logger.info("Reachability filter ready (%s)", node.filter_type.label)
            yield

    app = FastAPI(
        title="Reachability Filter",
        description="Removes obstacle-colliding spheres from a reachability map",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health", response_model=ServiceHealthMessage)
    async def health():
        """Health check endpoint."""
        status = node.status()
        bus_ok = bool(publisher is not None and publisher.is_connected)
        if not status["running"]:
            state = "degraded"
        elif status["map_received"] and status["obstacles_ready"]:
            state = "healthy"
        else:
            state = "waiting"
        return ServiceHealthMessage(
            service_name="reachability_filter",
            status=state,
            port=port,
            uptime_s=round(time.time() - started_at, 1),
            dependencies={"redis": "healthy" if bus_ok else "unavailable"},
            metrics={
                "filter_type": status["filter_type"],
                "cycles": status["cycles"],
                "publishes": status["publishes"],
                "decode_failures": status["decode_failures"],
            },
            timestamp=time.time(),
        )

    @app.get("/api/status")
    async def get_status():
        """Loop state flags, input sizes and the last result."""
        return {**node.status(), "timestamp": time.time()}

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _run_headless(node: ReachabilityFilterNode, publisher, subscriber) -> None:
    stop = threading.Event()

    def _on_signal(signum, frame):
        logger.info("Received signal %d, stopping", signum)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)
    with run_node(node, publisher, subscriber):
        stop.wait()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(server_name="reachability_filter", debug=args.debug, log_dir=args.log_dir)

    try:
        filter_type = resolve_filter_type(args.filter_type)
    except InvalidFilterTypeError as e:
        logger.error("%s. Shutting Down!", e)
        return 2

    rate = args.rate if args.rate is not None else ServiceConfig.FILTER_SPIN_RATE_HZ
    try:
        node = ReachabilityFilterNode(filter_type, rate_hz=rate)
    except ValueError as e:
        logger.error("Invalid loop configuration: %s", e)
        return 2

    redis_url = args.redis_url or ServiceConfig.REDIS_URL
    publisher = SyncEventPublisher(redis_url)
    subscriber = SyncEventSubscriber(redis_url)
    node.publisher = publisher

    if args.no_http:
        _run_headless(node, publisher, subscriber)
        return 0

    port = args.port or ServiceConfig.REACHABILITY_FILTER_PORT
    logger.info("Starting Reachability Filter on port %d", port)
    uvicorn.run(
        create_app(node, publisher, subscriber, port=port),
        host=args.host,
        port=port,
        log_level="info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
