"""
Setup Code Service
Exchanges an installer setup code for the controller inform URL
"""

import os
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Any

import aiohttp

from http_helper import create_api_session

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://ubiquitywizard.onrender.com"
API_BASE_ENV = "VIVASPOT_API_URL"


class SetupCodeError(Exception):
    """Setup code lookup failed"""


class InvalidSetupCodeError(SetupCodeError):
    """Code is unknown"""


class ExpiredSetupCodeError(SetupCodeError):
    """Code existed but has expired"""


class SetupCodeNetworkError(SetupCodeError):
    """The API could not be reached"""


@dataclass
class SetupCodeResult:
    inform_url: str
    site_id: str
    site_name: str

    def to_dict(self) -> Dict[str, str]:
        return {'informUrl': self.inform_url, 'siteId': self.site_id, 'siteName': self.site_name}


class SetupCodeService:
    """Validates setup codes against the onboarding API"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config.get('setup_code', {})
        self.api_base = os.environ.get(API_BASE_ENV) or self.config.get('api_base', DEFAULT_API_BASE)
        self.timeout_seconds = self.config.get('timeout_seconds', 10)

    async def validate(self, code: str) -> SetupCodeResult:
        """Look up a setup code; raises a SetupCodeError subclass on failure"""
        url = f"{self.api_base.rstrip('/')}/api/setup-code"
        logger.info(f"Validating setup code: {code}")

        try:
            async with create_api_session(self.timeout_seconds) as session:
                async with session.get(url, params={'code': code}) as response:
                    if response.status == 200:
                        data = await response.json()
                        result = SetupCodeResult(
                            inform_url=data['informUrl'],
                            site_id=data['siteId'],
                            site_name=data['siteName'],
                        )
                        logger.info(f"Setup code valid - site: {result.site_name}, inform URL: {result.inform_url}")
                        return result

                    elif response.status == 404:
                        data = await response.json()
                        message = data.get('error', 'Invalid setup code')
                        if data.get('expired', False):
                            raise ExpiredSetupCodeError(message)
                        raise InvalidSetupCodeError(message)

                    else:
                        raise SetupCodeError(f"Unexpected response: {response.status}")

        except (aiohttp.ClientConnectorError, asyncio.TimeoutError) as e:
            logger.warning(f"Setup code API unreachable: {e}")
            raise SetupCodeNetworkError("Can't connect to VivaSpot. Check your internet connection.") from e

        except (aiohttp.ContentTypeError, KeyError, ValueError) as e:
            raise SetupCodeError(f"Failed to parse response: {e}") from e

        except aiohttp.ClientError as e:
            raise SetupCodeError(f"Request failed: {e}") from e
