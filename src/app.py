#!/usr/bin/env python3

import logging
import signal
import sys
import threading

from whale_of_a_time.config import load_config
from whale_of_a_time.errors import (
    EXIT_CONFIG_ERROR,
    EXIT_OK,
    EXIT_STARTUP_ERROR,
    ConfigError,
    StartupError,
)
from whale_of_a_time.server import WelcomeServer

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
LOG = logging.getLogger()


def main(argv=None) -> int:
    try:
        config, args = load_config(argv)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.debug:
        logging.getLogger().setLevel(level=logging.DEBUG)

    # serve until asked to stop
    stopping = threading.Event()

    def request_stop(signum, frame):
        LOG.info(f"Received {signal.Signals(signum).name}, shutting down")
        stopping.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    server = WelcomeServer(config)
    try:
        server.start()
    except (StartupError, OSError) as e:
        print(f"Startup failed: {e}", file=sys.stderr)
        return EXIT_STARTUP_ERROR

    stopping.wait()
    server.stop()
    return EXIT_OK


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
