"""
Onboarding Server - wires configuration, logging and the HTTP API together
"""

import logging
from typing import Optional

import uvicorn

from config_loader import load_config, setup_logging
from adoption.orchestrator import detect_tools
from api.main_api import OnboardingAPI

logger = logging.getLogger(__name__)

class OnboardingServer:
    """Main server hosting the scan/adopt API"""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = load_config(config_path)
        setup_logging(self.config)

        self.api = OnboardingAPI(self.config)
        self.server: Optional[uvicorn.Server] = None

    async def start(self):
        """Start the API server; returns when uvicorn exits"""
        logger.info("Starting Access Point Onboarding Server...")

        tools = detect_tools()
        logger.info(f"SSH tooling at startup: {tools} (re-checked on every adoption)")

        try:
            await self._start_api_server()
        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise

    async def stop(self):
        """Stop the API server gracefully"""
        logger.info("Stopping server...")
        if self.server:
            self.server.should_exit = True
        logger.info("Server stopped")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )

        self.server = uvicorn.Server(config)

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")
        logger.info(f"Discovery broadcasts to {self.config['discovery']['broadcast_address']}:{self.config['discovery']['port']}")

        await self.server.serve()
