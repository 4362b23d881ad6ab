"""
Access Point Onboarding Server - Main Entry Point
"""

import asyncio
import sys
import logging
from pathlib import Path
import os

from services.onboarding_server import OnboardingServer

logger = logging.getLogger(__name__)

async def main():
    """Main entry point"""

    # SIGINT/SIGTERM are handled by uvicorn while it serves
    server = None

    try:
        # Get config file path from environment variable or use default
        config_path = os.environ.get('CONFIG_FILE', 'config/config.yaml')
        logger.info(f"Using configuration file name from environment: {config_path}")
        server = OnboardingServer(config_path=config_path)

        await server.start()

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Server failed: {e}")
        return 1
    finally:
        if server:
            await server.stop()

    return 0

def run():
    """Console script entry point"""
    # Ensure logs directory exists
    Path("logs").mkdir(exist_ok=True)

    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)

if __name__ == "__main__":
    run()
