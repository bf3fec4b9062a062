from typing import Optional

from approute import log
from approute import optmanager

CONF_DIR = "~/.approute"
CONF_BASENAME = "approute"
DAEMON_PORT = 47800
LOG_LIMIT = 500


class Options(optmanager.OptManager):
    def __init__(self, **kwargs) -> None:
        super().__init__()
        self.add_option(
            "confdir",
            str,
            CONF_DIR,
            "Location of the default approute configuration files.",
        )

        # Daemon connection
        self.add_option(
            "daemon_host",
            str,
            "127.0.0.1",
            "Address the proxy daemon's control API listens on.",
        )
        self.add_option(
            "daemon_port",
            int,
            DAEMON_PORT,
            "Port of the proxy daemon's control API.",
        )
        self.add_option(
            "daemon_socket",
            Optional[str],
            None,
            """
            Path of a unix socket for the daemon's control API. Takes precedence
            over daemon_host and daemon_port when set.
            """,
        )
        self.add_option(
            "request_timeout",
            float,
            10.0,
            "Seconds to wait for the daemon to answer a single request.",
        )

        # Apply scheduling
        self.add_option(
            "apply_delay",
            float,
            0.35,
            """
            Debounce delay in seconds between the last mode or rule edit and
            pushing the new configuration to the daemon.
            """,
        )
        self.add_option(
            "apply_retry_delay",
            float,
            0.5,
            """
            Delay in seconds before re-checking when an edit settles while a
            previous apply is still in flight.
            """,
        )

        # Observed state
        self.add_option(
            "process_poll_interval",
            float,
            4.0,
            "Seconds between two refreshes of the running process list.",
        )
        self.add_option(
            "log_limit",
            int,
            LOG_LIMIT,
            "Maximum number of daemon log lines kept in memory.",
        )
        self.add_option(
            "log_tail_limit",
            int,
            200,
            "Number of lines requested when (re)loading the daemon's log tail.",
        )
        self.add_option(
            "log_verbosity", str, "info", "Log verbosity.", choices=log.LogLevels
        )

        self.update(**kwargs)
