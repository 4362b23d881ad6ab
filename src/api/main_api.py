"""
Local HTTP API for the Access Point Onboarding Server
Front ends call these endpoints to validate a setup code, scan and adopt
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, Optional
import logging

from discovery import AccessPointDiscovery
from adoption import adopt_device
from setup_code_service import SetupCodeService

# Import modular route factories
from .device_routes import create_device_routes
from .setup_routes import create_setup_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)


class OnboardingAPI:
    """Local HTTP API for access point onboarding"""

    def __init__(self, config: Dict,
                 discovery: Optional[AccessPointDiscovery] = None,
                 setup_service: Optional[SetupCodeService] = None,
                 adopt_fn=adopt_device):
        self.config = config
        self.discovery = discovery or AccessPointDiscovery(config['discovery'])
        self.setup_service = setup_service or SetupCodeService(config)
        self.adopt_fn = adopt_fn
        self.app = FastAPI(
            title="Access Point Onboarding Server",
            description="Discover factory-default access points and point them at a controller",
            version="1.0.0"
        )
        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self):
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config['api'].get('cors_origins', ['*']),
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        self.app.include_router(create_setup_routes(self.setup_service))
        self.app.include_router(create_device_routes(self.discovery, self.config['adoption'], self.adopt_fn))
        self.app.include_router(create_system_routes(self.config))
