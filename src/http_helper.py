# HTTP Helper for the setup-code API
# Session configuration for outbound HTTPS calls

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_api_session(timeout_seconds: float = 10) -> aiohttp.ClientSession:
    """
    Create aiohttp session for the setup-code API
    Single short-lived request per session, connections closed on exit
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
