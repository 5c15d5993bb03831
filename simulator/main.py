# =============================================================================
# Double Vision - Device Simulator Entry Point
# =============================================================================
# CLI entry point for serving the simulated ESP32 camera with uvicorn.
# =============================================================================

import argparse
import logging

import uvicorn

from config import get_config


def main():
    """Parse CLI arguments, apply overrides, and start the simulator."""
    parser = argparse.ArgumentParser(
        description="Double Vision — ESP32 camera simulator",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", type=str, default=None, help="Simulator bind address")
    parser.add_argument("--port", type=int, default=None, help="Simulator bind port")
    parser.add_argument("--fps", type=float, default=None, help="WebSocket push frame rate")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = get_config()

    if args.host is not None:
        config.simulator_host = args.host
    if args.port is not None:
        config.simulator_port = args.port
    if args.fps is not None:
        config.simulator_fps = args.fps

    print("\n" + "=" * 60)
    print("  Double Vision — ESP32 Camera Simulator")
    print("=" * 60)
    print(f"  Listening  : {config.simulator_host}:{config.simulator_port}")
    print(f"  Stream     : ws://{config.simulator_host}:{config.simulator_port}/ws")
    print(f"  Push rate  : {config.simulator_fps} fps")
    print("=" * 60 + "\n")

    uvicorn.run(
        "simulator.app:app",
        host=config.simulator_host,
        port=config.simulator_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
