"""
HTTP listener: a threaded Werkzeug WSGI server on its own thread
"""

import errno
import logging
import socket
import threading
from typing import Optional

from werkzeug.serving import BaseWSGIServer, get_sockaddr, make_server, select_address_family
from werkzeug.wsgi import ClosingIterator

from .errors import BindError

LOG = logging.getLogger()

_BIND_ERRNOS = (errno.EADDRINUSE, errno.EACCES, errno.EADDRNOTAVAIL)


class InFlightRequests:
    """
    WSGI middleware counting requests that have started but whose response has
    not been fully written yet (idle keep-alive connections are not counted).
    """

    def __init__(self, app):
        self._app = app
        self._count = 0
        self._idle = threading.Condition()

    @property
    def count(self) -> int:
        with self._idle:
            return self._count

    def _leave(self):
        with self._idle:
            self._count -= 1
            if self._count == 0:
                self._idle.notify_all()

    def __call__(self, environ, start_response):
        with self._idle:
            self._count += 1
        try:
            response = self._app(environ, start_response)
        except BaseException:
            self._leave()
            raise
        return ClosingIterator(response, self._leave)

    def wait_idle(self, timeout: float) -> bool:
        with self._idle:
            return self._idle.wait_for(lambda: self._count == 0, timeout)


class HttpListener:
    def __init__(self, app, host: str = "0.0.0.0", port: int = 0, shutdown_grace: float = 5.0):
        self.host = host
        self.requested_port = port
        self.shutdown_grace = shutdown_grace
        self.requests = InFlightRequests(app)
        self._server: Optional[BaseWSGIServer] = None
        self._thread: Optional[threading.Thread] = None
        self._port: Optional[int] = None

    @property
    def port(self) -> Optional[int]:
        """Port accepting connections, known once start() has returned"""
        return self._port

    def _bind(self) -> socket.socket:
        # bind ourselves so that an unavailable port surfaces as an exception
        # (Werkzeug's own bind path prints and exits instead)
        family = select_address_family(self.host, self.requested_port)
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(get_sockaddr(self.host, self.requested_port, family))
            sock.listen(socket.SOMAXCONN)
        except OSError as e:
            sock.close()
            if e.errno in _BIND_ERRNOS:
                raise BindError(self.host, self.requested_port, e.strerror or str(e)) from e
            raise
        return sock

    def start(self) -> int:
        if self._server is not None:
            raise RuntimeError("HTTP listener already started")

        sock = self._bind()
        try:
            self._server = make_server(self.host, self.requested_port, self.requests, threaded=True, fd=sock.fileno())
        finally:
            # the server holds its own duplicate of the descriptor
            sock.close()

        self._port = self._server.port
        self._thread = threading.Thread(target=self._server.serve_forever, name="http-listener", daemon=True)
        self._thread.start()
        LOG.info(f"Listening on {self.host}:{self._port}")
        return self._port

    def stop(self):
        if self._server is None:
            return
        server, self._server = self._server, None

        # stop accepting connections, then give in-flight requests a chance to finish
        server.shutdown()
        self._thread.join()
        if not self.requests.wait_idle(self.shutdown_grace):
            LOG.warning(
                f"Abandoning {self.requests.count} in-flight requests after {self.shutdown_grace}s shutdown grace"
            )
        server.server_close()
        LOG.info(f"Stopped listening on {self.host}:{self._port}")
