from fastapi import FastAPI

from relay.config import settings
from relay.database import init_db
from relay.logging_config import get_logger, setup_logging
from relay.routers import telegram_webhook, whatsapp_webhook
from relay.services.capability_cache import GroupCapabilityCache

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="WhatsApp Telegram Relay",
    description="Relays WhatsApp Business conversations into a Telegram admin group",
    version="0.1.0",
    debug=settings.debug,
)

app.include_router(whatsapp_webhook.router)
app.include_router(telegram_webhook.router)

# One per process; shared by every request's MessageRouter.
app.state.capability_cache = GroupCapabilityCache()


@app.on_event("startup")
def bootstrap_storage() -> None:
    if settings.storage_backend == "sql":
        init_db()
        logger.info("SQL storage ready")
    else:
        logger.info(f"Using {settings.storage_backend} storage")


@app.get("/health")
async def health():
    return {"status": "ok"}
