"""
Startup orchestration: wires the cache client, Flask app and HTTP listener
together and walks them through the service lifecycle.
"""

import enum
import logging
import sys
from pathlib import Path
from typing import Optional

from . import create_app
from .cache_client import CacheClient
from .config import Config
from .errors import LifecycleError
from .listener import HttpListener

LOG = logging.getLogger()


class LifecycleState(enum.IntEnum):
    INITIALIZING = 0
    STARTING = 1
    READY = 2
    STOPPING = 3
    STOPPED = 4


class WelcomeServer:
    def __init__(self, config: Config, out=None):
        self.config = config
        self.state = LifecycleState.INITIALIZING
        self.cache: Optional[CacheClient] = None
        self.app = None
        self.listener: Optional[HttpListener] = None
        self._out = out

    @property
    def port(self) -> Optional[int]:
        return self.listener.port if self.listener else None

    def _transition(self, state: LifecycleState):
        # transitions only move forward; restarting requires a new process
        if state <= self.state:
            raise LifecycleError(f"Cannot move from {self.state.name} to {state.name}")
        LOG.debug(f"Lifecycle {self.state.name} -> {state.name}")
        self.state = state

    def start(self) -> int:
        """
        Start every component in dependency order and publish the bound port.
        Any startup failure stops whatever was already started and is re-raised.
        """
        self._transition(LifecycleState.STARTING)
        try:
            if self.config.cache_enabled:
                self.cache = CacheClient.from_config(self.config)
                self.cache.connect()

            self.app = create_app(self.config, cache_client=self.cache)
            self.listener = HttpListener(
                self.app,
                self.config.http_host,
                self.config.http_port,
                shutdown_grace=self.config.shutdown_grace_ms / 1000,
            )
            port = self.listener.start()
            self.publish_port(port)
        except BaseException:
            self.stop()
            raise

        self._transition(LifecycleState.READY)
        return port

    def publish_port(self, port: int):
        out = self._out or sys.stdout
        print(f"PORT={port}", file=out, flush=True)
        if self.config.port_file:
            Path(self.config.port_file).write_text(f"{port}\n")
            LOG.debug(f"Wrote port {port} to {self.config.port_file}")

    def stop(self):
        if self.state >= LifecycleState.STOPPING:
            return
        self._transition(LifecycleState.STOPPING)
        try:
            if self.listener:
                self.listener.stop()
        finally:
            if self.cache:
                self.cache.close()
            self._transition(LifecycleState.STOPPED)
