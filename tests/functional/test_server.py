import io
import os
import signal
import socket
import subprocess
import sys
from pathlib import Path

import pytest
import requests

from whale_of_a_time.config import Config
from whale_of_a_time.errors import CacheUnavailable, EXIT_CONFIG_ERROR, EXIT_STARTUP_ERROR
from whale_of_a_time.server import LifecycleState, WelcomeServer

APP = Path(__file__).resolve().parents[2] / "src" / "app.py"


def test_reported_port_accepts_connections(live_server):
    """
    GIVEN a server started on an ephemeral port
    WHEN a real HTTP connection is made to the reported port
    THEN the welcome page is served
    """
    assert live_server.state == LifecycleState.READY
    assert live_server.port > 0
    assert live_server._out.getvalue() == f"PORT={live_server.port}\n"

    response = requests.get(f"http://localhost:{live_server.port}/", timeout=5)
    assert response.status_code == 200
    assert "Get it on GitHub" in response.text

    response = requests.get(f"http://localhost:{live_server.port}/does-not-exist", timeout=5)
    assert response.status_code == 404


def test_repeated_requests_are_byte_identical(live_server):
    with requests.Session() as session:
        bodies = {session.get(f"http://127.0.0.1:{live_server.port}/", timeout=5).content for _ in range(10)}
    assert len(bodies) == 1


def test_stop_releases_port(live_server):
    port = live_server.port
    live_server.stop()
    assert live_server.state == LifecycleState.STOPPED

    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", port), timeout=1)


def test_port_file_is_written(tmp_path):
    port_file = tmp_path / "port"
    server = WelcomeServer(Config(http_host="127.0.0.1", port_file=str(port_file)), out=io.StringIO())
    port = server.start()
    try:
        assert port_file.read_text() == f"{port}\n"
    finally:
        server.stop()


def test_unreachable_optional_cache_still_serves(closed_port):
    config = Config.from_mapping(
        {"http.host": "127.0.0.1", "cache.host": "127.0.0.1", "cache.port": closed_port, "cache.timeout.ms": 200}
    )
    server = WelcomeServer(config, out=io.StringIO())
    server.start()
    try:
        assert server.state == LifecycleState.READY
        assert not server.cache.ready

        response = requests.get(f"http://127.0.0.1:{server.port}/", timeout=5)
        assert response.status_code == 200
        response = requests.get(f"http://127.0.0.1:{server.port}/health/cache", timeout=5)
        assert response.status_code == 503
    finally:
        server.stop()


def test_unreachable_required_cache_fails_startup():
    config = Config.from_mapping(
        {
            "http.host": "127.0.0.1",
            "cache.host": "127.0.0.1",
            "cache.port": 1,
            "cache.required": True,
            "cache.retries": 2,
            "cache.backoff.base.ms": 1,
            "cache.backoff.cap.ms": 10,
        }
    )
    out = io.StringIO()
    server = WelcomeServer(config, out=out)
    with pytest.raises(CacheUnavailable):
        server.start()

    assert server.state == LifecycleState.STOPPED
    assert server.listener is None
    assert out.getvalue() == ""


def run_app(*args, **kwargs):
    return subprocess.Popen(
        [sys.executable, str(APP), *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env={**os.environ, "PYTHONUNBUFFERED": "1"},
        **kwargs,
    )


def test_process_reports_port_and_exits_cleanly():
    """
    GIVEN the service started as a process on an ephemeral port
    WHEN the PORT line is read from stdout and SIGTERM is sent afterwards
    THEN the page is served on that port and the process exits with 0
    """
    proc = run_app("--host", "127.0.0.1", "--port", "0", "--shutdown-grace-ms", "500")
    try:
        line = proc.stdout.readline().strip()
        assert line.startswith("PORT=")
        port = int(line.split("=", 1)[1])

        response = requests.get(f"http://localhost:{port}/", timeout=5)
        assert response.status_code == 200
        assert "Welcome to My Spring Boot Application" in response.text
    finally:
        proc.send_signal(signal.SIGTERM)
        proc.communicate(timeout=10)

    assert proc.returncode == 0


def test_process_exits_1_on_bad_config():
    proc = run_app("--port", "eighty")
    _, err = proc.communicate(timeout=10)
    assert proc.returncode == EXIT_CONFIG_ERROR
    assert "http.port" in err


def test_process_exits_2_when_required_cache_unavailable():
    proc = run_app(
        "--port",
        "0",
        "--cache-required",
        "--cache-host",
        "127.0.0.1",
        "--cache-port",
        "1",
        "--cache-retries",
        "3",
        "--cache-backoff-cap-ms",
        "200",
    )
    out, err = proc.communicate(timeout=30)
    assert proc.returncode == EXIT_STARTUP_ERROR
    assert "PORT=" not in out
    assert "Startup failed" in err
