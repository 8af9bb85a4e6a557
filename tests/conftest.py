import io
import socket

import pytest

from whale_of_a_time import create_app
from whale_of_a_time.config import Config
from whale_of_a_time.server import WelcomeServer


@pytest.fixture
def closed_port() -> int:
    """
    A local port with nothing listening on it (bound then released)
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture(scope="module")
def test_client():
    flask_app = create_app(Config())

    # create test client using the Flask app configured for testing
    with flask_app.test_client() as testing_client:
        # establish application context
        with flask_app.app_context():
            yield testing_client  # this is where the testing happens!


@pytest.fixture
def live_server():
    """
    A WelcomeServer running in-process on an ephemeral port, with no cache
    """
    out = io.StringIO()
    server = WelcomeServer(Config(http_host="127.0.0.1", shutdown_grace_ms=1000), out=out)
    server.start()
    yield server
    server.stop()
