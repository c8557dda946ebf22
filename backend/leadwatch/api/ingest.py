"""
LinkUp ingestion endpoints

Thin bearer-token proxies over the LinkUp API. Errors are reported in the
``{error, message, mock}`` shape the ingestion callers expect rather than
the global error envelope.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from leadwatch.core.exceptions import LinkUpAPIError, MissingAPIKeyError
from leadwatch.core.logging import setup_logging
from leadwatch.dependencies import get_linkup_client, require_ingest_token
from leadwatch.schemas.integration import IngestEngagementRequest, IngestLeadsRequest
from leadwatch.services.linkup_client import LinkUpClient

logger = setup_logging(__name__)

router = APIRouter(
    prefix="/ingest",
    tags=["ingest"],
    dependencies=[Depends(require_ingest_token)],
)


def _ingestion_error(error: Exception) -> JSONResponse:
    if isinstance(error, MissingAPIKeyError):
        return JSONResponse(
            status_code=500,
            content={
                "error": "configuration_error",
                "message": "Missing LINKUP_API_KEY - API key is required when mock mode is disabled",
                "mock": False,
            },
        )

    status_code = error.status if isinstance(error, LinkUpAPIError) else 500
    message = getattr(error, "message", None) or str(error) or "Unknown error"
    return JSONResponse(
        status_code=status_code,
        content={"error": "ingestion_failed", "message": message, "mock": False},
    )


@router.post("/engagement")
async def ingest_engagement(
    request: IngestEngagementRequest,
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    try:
        result = await linkup.ingest("/engagement/post", {"postUrl": str(request.post_url)})
    except Exception as e:
        logger.error(f"Engagement ingestion failed: {e}")
        return _ingestion_error(e)

    logger.info(f"Engagement ingestion completed: source={request.post_url} count={len(result.items)} mock={result.mock}")
    return {
        "success": True,
        "engagement": result.data,
        "items": result.items,
        "count": len(result.items),
        "mock": result.mock,
    }


@router.post("/leads")
async def ingest_leads(
    request: IngestLeadsRequest,
    linkup: LinkUpClient = Depends(get_linkup_client),
):
    body = request.model_dump(mode="json", by_alias=True, exclude_none=True)
    try:
        result = await linkup.ingest("/leads/search", body)
    except Exception as e:
        logger.error(f"Leads ingestion failed: {e}")
        return _ingestion_error(e)

    logger.info(f"Leads ingestion completed: source={request.post_url or 'search'} count={len(result.items)} mock={result.mock}")
    return {
        "success": True,
        "leads": result.items,
        "count": len(result.items),
        "mock": result.mock,
    }
