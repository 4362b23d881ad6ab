"""
Setup code API routes
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
import logging

from setup_code_service import (
    SetupCodeService, SetupCodeError, InvalidSetupCodeError,
    ExpiredSetupCodeError, SetupCodeNetworkError
)

logger = logging.getLogger(__name__)

class ValidateCodeRequest(BaseModel):
    code: str

class ValidateCodeResponse(BaseModel):
    informUrl: str
    siteId: str
    siteName: str


def create_setup_routes(setup_service: SetupCodeService):
    """Create setup code routes"""
    router = APIRouter(prefix="/api/setup-code", tags=["setup"])

    @router.post("/validate", response_model=ValidateCodeResponse)
    async def validate_code(request: ValidateCodeRequest):
        """Exchange a setup code for the controller inform URL"""
        try:
            result = await setup_service.validate(request.code.strip())
            return ValidateCodeResponse(**result.to_dict())
        except (InvalidSetupCodeError, ExpiredSetupCodeError) as e:
            raise HTTPException(status_code=404, detail=str(e))
        except SetupCodeNetworkError as e:
            raise HTTPException(status_code=502, detail=str(e))
        except SetupCodeError as e:
            logger.error(f"Setup code validation failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    return router
