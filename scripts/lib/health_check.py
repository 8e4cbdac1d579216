# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""TCP availability probe for the Gerrit test server.

Gerrit opens its HTTP port only once the site has finished starting, so
a successful TCP connect is the signal that the REST API can be used.

Usage::

    from health_check import wait_for_port

    wait_for_port("localhost", 8080)   # blocks until the port accepts
"""

from __future__ import annotations

import logging
import socket
import time

logger = logging.getLogger(__name__)

# Seconds between connection attempts
DEFAULT_POLL_INTERVAL = 0.1

# Connect timeout for a single attempt
_CONNECT_TIMEOUT = 1.0

# Log a progress line every this many attempts (≈10s at the default interval)
_PROGRESS_EVERY = 100


def tcp_port_check(
    host: str,
    port: int,
    timeout: float = _CONNECT_TIMEOUT,
) -> bool:
    """Check whether a TCP port is accepting connections.

    Parameters
    ----------
    host:
        Hostname or IP address.
    port:
        Port number.
    timeout:
        Connection timeout in seconds.

    Returns
    -------
    bool
        *True* if the connection succeeded.
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def wait_for_port(
    host: str,
    port: int,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> int:
    """Block until *host*:*port* accepts a TCP connection.

    There is no timeout and no retry limit: when the server never
    comes up, this waits forever.  The function only
    returns after a connection attempt has succeeded.

    Parameters
    ----------
    host:
        Hostname or IP address.
    port:
        Port number.
    interval:
        Seconds to sleep between attempts.

    Returns
    -------
    int
        Number of attempts it took, the successful one included.
    """
    logger.info("Waiting for %s:%d to accept connections…", host, port)
    attempt = 1

    while not tcp_port_check(host, port):
        if attempt % _PROGRESS_EVERY == 0:
            logger.info(
                "  Still waiting for %s:%d (%d attempts)", host, port, attempt
            )
        time.sleep(interval)
        attempt += 1

    logger.info("%s:%d is reachable ✅", host, port)
    return attempt
