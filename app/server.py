"""
Process bootstrap: checks configuration, picks a free port and runs the service under uvicorn.
"""

import errno
import logging
import socket
import sys
from typing import Optional

import uvicorn

from config.app_config import settings
from config.llm_config import MissingAPIKeyError, require_api_key

logger = logging.getLogger(__name__)


class PortUnavailableError(RuntimeError):
    """Raised when no port in the retry range can be bound."""


def port_is_free(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                return False
            raise
    return True


def find_available_port(host: str, start_port: int, retries: int) -> int:
    """
    Return start_port, or the first free port after it.

    Args:
        host: Interface to bind
        start_port: Preferred port
        retries: How many following ports to try when the preferred one is busy

    Raises:
        PortUnavailableError: If every candidate port is in use
    """
    for port in range(start_port, start_port + retries + 1):
        if port_is_free(host, port):
            return port
        logger.warning(f"Port {port} is busy, trying alternative port...")
    raise PortUnavailableError(f"No free port in {start_port}-{start_port + retries}")


def main(argv: Optional[list] = None) -> int:
    logging.basicConfig(level=logging.INFO)

    try:
        require_api_key()
    except MissingAPIKeyError as e:
        logger.error(str(e))
        return 1

    try:
        port = find_available_port(settings.APP_HOST, settings.APP_PORT, settings.PORT_RETRIES)
    except PortUnavailableError as e:
        logger.error(f"Failed to start server: {e}")
        return 1

    from app import create_app

    application = create_app()
    application.state.port = port
    logger.info(f"Server running on port {port}")
    uvicorn.run(application, host=settings.APP_HOST, port=port)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
