"""
PromptSketch Backend - Health Check Route
===========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Reports whether each provider credential is configured. It makes no
       upstream calls: a probe every few seconds must not spend provider
       quota.
Who:   Called by container health checks and uptime monitors.

Status levels:
    healthy:   every provider credential is configured
    degraded:  at least one is missing; the routes that need it return 500
"""

import logging

from fastapi import APIRouter, Depends

from promptsketch import __version__
from promptsketch.config import CREDENTIAL_ENV_NAMES, Settings
from promptsketch.dependencies import get_settings
from promptsketch.schemas.proxy import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

PROVIDER_NAMES = {
    "openai_api_key": "openai",
    "stability_key": "stability",
    "imgbb_api_key": "imgbb",
}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    missing = set(settings.missing_credentials())
    providers = {
        PROVIDER_NAMES[field]: "missing" if env_name in missing else "configured"
        for field, env_name in CREDENTIAL_ENV_NAMES.items()
    }
    overall = "healthy" if not missing else "degraded"
    if missing:
        logger.debug("Health check degraded, missing: %s", ", ".join(sorted(missing)))

    return HealthResponse(status=overall, version=__version__, providers=providers)
