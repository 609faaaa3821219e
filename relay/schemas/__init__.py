from relay.schemas.telegram import TelegramUpdate, TelegramWebhookResponse
from relay.schemas.whatsapp import WebhookResponse, WhatsAppWebhookPayload

__all__ = ["TelegramUpdate", "TelegramWebhookResponse", "WhatsAppWebhookPayload", "WebhookResponse"]
