"""
Server orchestration module
"""

from .onboarding_server import OnboardingServer

__all__ = ['OnboardingServer']
