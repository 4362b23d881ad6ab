"""
Access point scan and adoption API routes
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional
import logging

from discovery import AccessPointDiscovery, ScanError
from adoption import FailureKind, adopt_device, format_user_error

logger = logging.getLogger(__name__)

# Request models
class AdoptRequest(BaseModel):
    ip: str
    informUrl: str
    customPassword: Optional[str] = None

# Response models
class DeviceResponse(BaseModel):
    mac: str
    ip: str
    reportedIp: str
    model: str
    firmware: str
    hostname: str
    isManaged: bool

class ScanResponse(BaseModel):
    devices: List[DeviceResponse]
    durationSeconds: float = Field(0.0)

class AdoptResponse(BaseModel):
    success: bool
    output: str


# HTTP status per failure kind
FAILURE_STATUS = {
    FailureKind.AUTHENTICATION_FAILED: 401,
    FailureKind.COMMAND_FAILED: 422,
    FailureKind.CONNECTION_TIMEOUT: 504,
    FailureKind.CONNECTION_REFUSED: 502,
    FailureKind.OTHER: 502,
}


def create_device_routes(discovery: AccessPointDiscovery, adoption_config: dict, adopt_fn=adopt_device):
    """Create scan/adopt routes"""
    router = APIRouter(prefix="/api/devices", tags=["devices"])

    @router.post("/scan", response_model=ScanResponse)
    async def scan_devices():
        """Broadcast discovery on the local subnet"""
        try:
            result = await discovery.scan()
        except ScanError as e:
            logger.error(f"Scan failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        return ScanResponse(
            devices=[DeviceResponse(**device.to_dict()) for device in result.devices],
            durationSeconds=result.duration_seconds
        )

    @router.post("/adopt", response_model=AdoptResponse)
    async def adopt_access_point(request: AdoptRequest):
        """Run set-inform on one access point"""
        outcome = await adopt_fn(request.ip, request.informUrl, request.customPassword, adoption_config)

        if not outcome.success:
            raise HTTPException(
                status_code=FAILURE_STATUS[outcome.failure_kind],
                detail=format_user_error(outcome)
            )

        return AdoptResponse(success=True, output=outcome.output)

    return router
