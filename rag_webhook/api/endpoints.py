"""
API endpoints for the webhook and health check using FastAPI.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from rag_webhook.chat.turn_controller import TurnController
from rag_webhook.models.query import HealthResponse
from rag_webhook.services.dependencies import get_turn_controller
from rag_webhook.utils.logging_config import setup_logging

log = setup_logging("api_endpoints.log", logging.DEBUG)

router = APIRouter(prefix="/api/v1", tags=["chat"])
webhook_router = APIRouter(tags=["webhook"])


@router.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="API is running")


async def _read_body(request: Request) -> bytes:
    return await request.body()


@webhook_router.post("/")
@router.post("/webhook")
def webhook_handler(
        request: Request,
        body: bytes = Depends(_read_body),
        controller: TurnController = Depends(get_turn_controller),
):
    """Answer one conversation turn. Always replies 200 with an HTML body."""
    log.info(f"Received {len(body)} bytes from {request.client.host if request.client else 'unknown'}")
    reply = controller.handle(request.headers, body)
    return Response(content=reply.body, status_code=reply.status, media_type=reply.content_type)
