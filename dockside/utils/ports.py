"""Host port checks used before publishing container ports."""

import socket

from ..core.log import get_logger

logger = get_logger(__name__)


def is_port_available(port: int, host: str = "127.0.0.1") -> bool:
    """True if nothing on this host is bound to ``port``."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            return True
    except OSError:
        return False


def find_free_port(host: str = "127.0.0.1") -> int:
    """Ask the kernel for a currently unused port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        port = sock.getsockname()[1]
    logger.debug("Found free port %s", port)
    return port
