from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from relay.dependencies import get_message_router
from relay.logging_config import get_logger
from relay.routers.payload import parse_json_body
from relay.schemas.telegram import TelegramUpdate, TelegramWebhookResponse
from relay.services.message_router import MessageRouter

logger = get_logger("telegram_webhook")

router = APIRouter()


@router.post("/webhook/telegram", response_model=TelegramWebhookResponse)
async def handle_telegram_webhook(request: Request, relay: MessageRouter = Depends(get_message_router)):
    """
    Handle Telegram webhook updates from the admin chat:
    - admin commands (/ai, /instruction, /status)
    - replies to WhatsApp contacts (thread replies, /reply, @number)
    """
    try:
        body = await parse_json_body(request)
        logger.debug(f"Telegram webhook received: {body}")

        update = TelegramUpdate(**body)
        return await run_in_threadpool(relay.handle_telegram_update, update)

    except Exception as e:
        logger.error(f"Telegram webhook error: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal Error"})
