import html
from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

import httpx

from relay.logging_config import get_logger
from relay.services.directory.base import ContactRecord

logger = get_logger("telegram_service")

# sendMessage text limit
MAX_MESSAGE_LENGTH = 4096
ELLIPSIS = "…"

# Descriptions Telegram returns (with error_code 400) when a forum topic is gone.
STALE_THREAD_MARKERS = (
    "message thread not found",
    "topic_deleted",
    "topic_id_invalid",
)


class TelegramAPIError(Exception):
    """Telegram Bot API answered with ok=false (or could not be reached)."""

    def __init__(self, description: str, error_code: Optional[int] = None, method: Optional[str] = None):
        super().__init__(description)
        self.description = description
        self.error_code = error_code
        self.method = method

    @property
    def is_stale_thread(self) -> bool:
        if self.error_code != 400:
            return False
        description = (self.description or "").lower()
        return any(marker in description for marker in STALE_THREAD_MARKERS)


class TelegramService:
    """Client for the Telegram Bot API methods the relay needs."""

    BASE_URL = "https://api.telegram.org/bot{token}"

    def __init__(self, bot_token: str, timeout: float = 30.0):
        self.bot_token = bot_token
        self.base_url = self.BASE_URL.format(token=bot_token)
        self.timeout = timeout

    def _make_request(self, method: str, data: Optional[dict] = None) -> dict:
        """Make request to Telegram API. Transport failures come back as ok=false."""
        url = f"{self.base_url}/{method}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=data or {})
                return response.json()
        except Exception as e:
            logger.error(f"Telegram API error: {e}")
            return {"ok": False, "description": str(e)}

    def call(self, method: str, data: Optional[dict] = None):
        """Call a Bot API method and return its ``result``; raise TelegramAPIError otherwise."""
        response = self._make_request(method, data)
        if not response.get("ok"):
            error = TelegramAPIError(
                response.get("description") or "Telegram API error",
                error_code=response.get("error_code"),
                method=method,
            )
            logger.warning(
                "Telegram call failed",
                extra={"context": {"method": method, "error_code": error.error_code, "error": error.description}},
            )
            raise error
        return response.get("result")

    def send_message(
        self,
        chat_id: str,
        text: str,
        parse_mode: Optional[str] = "HTML",
        message_thread_id: Optional[int] = None,
        reply_to_message_id: Optional[int] = None,
    ) -> dict:
        """Send message to Telegram chat."""
        data = {
            "chat_id": chat_id,
            "text": text,
        }
        if parse_mode:
            data["parse_mode"] = parse_mode
        if message_thread_id:
            data["message_thread_id"] = message_thread_id
        if reply_to_message_id:
            data["reply_to_message_id"] = reply_to_message_id

        return self.call("sendMessage", data)

    def create_forum_topic(self, chat_id: str, name: str) -> int:
        """Create forum topic in supergroup. Returns its message_thread_id."""
        result = self.call("createForumTopic", {"chat_id": chat_id, "name": name})
        thread_id = result.get("message_thread_id")
        if thread_id is None:
            raise TelegramAPIError(f"createForumTopic returned no thread id: {result}", method="createForumTopic")
        return thread_id

    def get_chat(self, chat_id: str) -> dict:
        return self.call("getChat", {"chat_id": chat_id})


def _localize(value: Optional[datetime], tz_name: str) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name))


def _cut_html(text: str, limit: int) -> str:
    """First ``limit`` characters of escaped text, never ending inside an ``&...;`` entity."""
    if len(text) <= limit:
        return text
    cut = text[:limit]
    amp = cut.rfind("&")
    if amp != -1 and ";" not in cut[amp:]:
        cut = cut[:amp]
    return cut


def truncate_html(text: str, limit: int) -> str:
    """Shorten escaped text to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return _cut_html(text, limit - len(ELLIPSIS)) + ELLIPSIS


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split a message into sendable chunks, on line boundaries where possible."""
    chunks = []
    current = None
    for line in text.split("\n"):
        while len(line) > limit:
            if current is not None:
                chunks.append(current)
                current = None
            piece = _cut_html(line, limit) or line[:limit]
            chunks.append(piece)
            line = line[len(piece):]
        if current is None:
            current = line
        elif len(current) + 1 + len(line) <= limit:
            current = f"{current}\n{line}"
        else:
            chunks.append(current)
            current = line
    if current is not None:
        chunks.append(current)
    # Telegram rejects empty texts.
    return [chunk for chunk in chunks if chunk.strip()]



def build_topic_name(display_name: str, wa_id: str) -> str:
    # The trailing "(<number>)" is what lets an unbound topic be recovered.
    return f"{display_name} ({wa_id})"


def format_thread_intro(display_name: str, wa_id: str) -> str:
    return (
        "🔥 New WhatsApp conversation\n"
        f"👤 Contact: {html.escape(display_name)}\n"
        f"📞 Number: {wa_id}"
    )


def format_inbound_message(text: str, display_name: str, wa_id: str, forum_mode: bool) -> str:
    """Format a WhatsApp message for the admin chat.

    The body is shortened so the whole message fits one ``sendMessage``.
    """
    name = html.escape(display_name)
    if forum_mode:
        header = f"💬 <b>{name}</b>\n\n"
        footer = ""
    else:
        header = f"💬 <b>{name}</b> ({wa_id})\n\n"
        footer = f"\n\n<i>Reply with: /reply {wa_id} your_message</i>"
    body = truncate_html(html.escape(text), MAX_MESSAGE_LENGTH - len(header) - len(footer))
    return f"{header}{body}{footer}"


def format_reply_instructions() -> str:
    return "📝 How to reply:\n<code>/reply PHONE_NUMBER message</code>\n<code>@PHONE_NUMBER message</code>"


def format_contact_status(contact: ContactRecord, tz_name: str) -> str:
    ai_status = "🟢 ON" if contact.ai_enabled else "🔴 OFF"
    updated_at = _localize(contact.updated_at, tz_name)
    last_seen = updated_at.strftime("%d/%m/%Y %H:%M") if updated_at else "Never"
    thread_info = f"Thread: {contact.thread_id}" if contact.thread_id else "No thread"

    return (
        f"📱 <b>Status for {contact.wa_id}:</b>\n\n"
        f"🤖 AI: {ai_status}\n"
        f"📅 Last seen: {last_seen}\n"
        f"🧵 {thread_info}"
    )


def format_status_report(contacts: List[ContactRecord], tz_name: str, forum_mode: bool) -> str:
    """Format the all-contacts AI status overview with on/off totals."""
    lines = ["📱 <b>AI status for all contacts:</b>", ""]
    on_count = 0
    off_count = 0

    for contact in contacts:
        updated_at = _localize(contact.updated_at, tz_name)
        last_seen = updated_at.strftime("%d/%m/%Y") if updated_at else "Never"
        marker = "🟢" if contact.ai_enabled else "🔴"
        lines.append(f"{marker} <code>{contact.wa_id}</code> - {last_seen}")
        if contact.ai_enabled:
            on_count += 1
        else:
            off_count += 1

    lines += [
        "",
        "📊 <b>Summary:</b>",
        f"🟢 AI ON: {on_count}",
        f"🔴 AI OFF: {off_count}",
        "",
        "<i>Usage:</i>",
        "<code>/status PHONE_NUMBER</code> - Contact details",
        "<code>/ai PHONE_NUMBER on|off</code> - Toggle AI",
    ]
    if forum_mode:
        lines += [
            "<code>/status</code> - Status inside a thread",
            "<code>/ai on|off</code> - Toggle AI inside a thread",
        ]
    return "\n".join(lines)
