import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from ..deps import get_service
from ..service import MobileMoneyService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/provider/{provider}/webhook")
async def provider_webhook(provider: str, request: Request, service: MobileMoneyService = Depends(get_service)):
    """
    Status notification pushed by MTN / Orange / Wave.
    The signature is checked against the raw body, so it is read before any
    JSON parsing. Header name depends on the provider (X-Signature by default).
    """
    adapter = service.registry.get(provider)
    if adapter is None:
        raise HTTPException(status_code=404, detail=f"Provider Mobile Money non supporté: {provider}")

    body = await request.body()
    signature = request.headers.get(adapter.webhook_signature_header)

    result = await service.handle_webhook(adapter.name, body, signature)
    if not result.success:
        logger.warning("%s webhook refused: %s", adapter.name, result.message)
        raise HTTPException(status_code=400, detail=result.message)

    return {"ok": True, "event": result.data}
