"""
Exceptions raised by the welcome service and the process exit codes they map to
"""

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_STARTUP_ERROR = 2


class WelcomeError(Exception):
    pass


class ConfigError(WelcomeError):
    """Malformed configuration, detected before anything is bound"""


class StartupError(WelcomeError):
    pass


class BindError(StartupError):
    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Could not bind {host}:{port} ({reason})")
        self.host = host
        self.port = port


class CacheUnavailable(StartupError):
    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Cache {host}:{port} unavailable ({reason})")
        self.host = host
        self.port = port


class HandlerError(WelcomeError):
    """Unexpected failure while handling a request (always a bug)"""


class LifecycleError(WelcomeError):
    pass
