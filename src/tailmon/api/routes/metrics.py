from fastapi import APIRouter, Request
from fastapi.responses import Response
from prometheus_client import REGISTRY
from prometheus_client.exposition import choose_encoder

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics(request: Request):
    # Scrapers asking for OpenMetrics get it; everything else gets the text format
    encoder, content_type = choose_encoder(request.headers.get("accept"))
    return Response(content=encoder(REGISTRY), media_type=content_type)
