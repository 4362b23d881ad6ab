"""
System health API routes
"""

from fastapi import APIRouter
from datetime import datetime, timezone
import logging

from adoption.orchestrator import detect_tools

logger = logging.getLogger(__name__)

def create_system_routes(config):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api/system", tags=["system"])

    @router.get("/health")
    async def system_health():
        """System health check with ssh tooling availability (checked per request)"""
        tools = detect_tools()
        if tools['ssh'] and tools['sshpass']:
            preferred = "sshpass"
        elif tools['ssh'] and tools['expect']:
            preferred = "expect"
        else:
            preferred = "native"

        return {
            "status": "healthy",
            "tools": tools,
            "preferred_strategy": preferred,
            "discovery_port": config.get('discovery', {}).get('port'),
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return router
