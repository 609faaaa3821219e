import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from relay.config import settings
from relay.dependencies import get_message_router
from relay.logging_config import get_logger
from relay.routers.payload import parse_json_body
from relay.schemas.whatsapp import WebhookResponse, WhatsAppWebhookPayload
from relay.services.message_router import MessageRouter

logger = get_logger("whatsapp_webhook")

router = APIRouter()


def is_valid_verify_token(token: Optional[str]) -> bool:
    expected = settings.whatsapp_verify_token
    if not expected or not token:
        return False
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


@router.get("/webhook/whatsapp")
def verify_whatsapp_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    """Meta subscription handshake: echo the challenge when the token matches."""
    if mode == "subscribe" and is_valid_verify_token(token):
        return PlainTextResponse(challenge or "", status_code=200)
    logger.warning("WhatsApp webhook verification rejected", extra={"context": {"mode": mode}})
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("/webhook/whatsapp", response_model=WebhookResponse)
async def handle_whatsapp_webhook(request: Request, relay: MessageRouter = Depends(get_message_router)):
    try:
        body = await parse_json_body(request)
        logger.debug(f"WhatsApp webhook received: {body}")

        payload = WhatsAppWebhookPayload.model_validate(body)
        handled = await run_in_threadpool(relay.handle_whatsapp_update, payload)
        return WebhookResponse(success=True, message=f"Handled {handled} message(s)")

    except Exception as e:
        logger.error(f"WhatsApp webhook error: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal Error"})
