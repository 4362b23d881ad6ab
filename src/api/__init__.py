"""
API module for access point onboarding
"""

from .main_api import OnboardingAPI
from .device_routes import create_device_routes
from .setup_routes import create_setup_routes
from .system_routes import create_system_routes

__all__ = ['OnboardingAPI', 'create_device_routes', 'create_setup_routes', 'create_system_routes']
