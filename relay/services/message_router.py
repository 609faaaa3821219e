import html
from typing import Optional

from relay.logging_config import contact_logger, get_logger
from relay.schemas.telegram import TelegramMessage, TelegramUpdate, TelegramWebhookResponse
from relay.schemas.whatsapp import WhatsAppMessage, WhatsAppValue, WhatsAppWebhookPayload
from relay.services.ai_gate import AIGate
from relay.services.capability_cache import GroupCapabilityCache
from relay.services.commands import (
    MalformedCommand,
    Reply,
    SetInstruction,
    Status,
    ToggleAi,
    Unrecognized,
    parse_admin_text,
    usage_for,
)
from relay.services.directory import GLOBAL_INSTRUCTION_KEY, DirectoryStore
from relay.services.state_machine import MessageStage, transition
from relay.services.telegram_service import (
    TelegramService,
    format_contact_status,
    format_inbound_message,
    format_reply_instructions,
    format_status_report,
    split_message,
)
from relay.services.thread_resolver import ThreadResolver
from relay.services.whatsapp_service import WhatsAppAPIError, WhatsAppService

logger = get_logger("message_router")

AI_PREFIX = "🤖 AI: "
UNBOUND_THREAD_TEXT = "❌ This thread is not linked to a WhatsApp number"
UNRESOLVED_THREAD_TEXT = "⚠️ This thread is not linked to a WhatsApp contact and no number could be found."


class MessageRouter:
    """Moves messages between WhatsApp contacts and the Telegram admin chat.

    One instance per webhook request; the capability cache passed in is the
    process-wide one.
    """

    def __init__(
        self,
        store: DirectoryStore,
        telegram: TelegramService,
        whatsapp: WhatsAppService,
        capabilities: GroupCapabilityCache,
        ai_gate: AIGate,
        admin_chat_id: str,
        display_timezone: str = "Asia/Jakarta",
    ):
        self.store = store
        self.telegram = telegram
        self.whatsapp = whatsapp
        self.capabilities = capabilities
        self.ai_gate = ai_gate
        self.admin_chat_id = str(admin_chat_id)
        self.display_timezone = display_timezone
        self.resolver = ThreadResolver(store, telegram, capabilities, self.admin_chat_id)

    def _forum_mode(self) -> bool:
        return self.capabilities.ensure_initialized(self.telegram, self.admin_chat_id)

    def _notify(
        self,
        text: str,
        thread_id: Optional[int] = None,
        reply_to_message_id: Optional[int] = None,
    ) -> None:
        # Long reports go out as several messages; only the first is a reply.
        for chunk in split_message(text):
            self.telegram.send_message(
                chat_id=self.admin_chat_id,
                text=chunk,
                message_thread_id=thread_id,
                reply_to_message_id=reply_to_message_id,
            )
            reply_to_message_id = None

    def _mark_last_read(self, wa_id: str) -> bool:
        """Best-effort read receipt for the contact's last inbound message."""
        contact = self.store.get_contact(wa_id)
        if not contact or not contact.last_message_id:
            return False
        try:
            self.whatsapp.mark_read(contact.last_message_id)
        except WhatsAppAPIError as e:
            contact_logger(logger, wa_id).warning(
                "Failed to mark message as read",
                extra={"context": {"message_id": contact.last_message_id, "error": e.message}},
            )
            return False
        return True

    # WhatsApp -> Telegram

    def handle_whatsapp_update(self, payload: WhatsAppWebhookPayload) -> int:
        """Relay every message in a WhatsApp webhook. Returns how many were handled."""
        handled = 0
        for entry in payload.entry:
            for change in entry.changes:
                for message in change.value.messages:
                    self.process_whatsapp_message(message, change.value)
                    handled += 1
        return handled

    def process_whatsapp_message(self, message: WhatsAppMessage, value: WhatsAppValue) -> MessageStage:
        wa_id = message.from_number
        stage = MessageStage.RECEIVED

        self.store.upsert_contact(wa_id, last_message_id=message.id)
        stage = transition(stage, MessageStage.CONTACT_RESOLVED)

        forum_mode = self._forum_mode()
        display_name = value.display_name_for(wa_id)
        thread_id = self.resolver.resolve_or_create(wa_id, display_name)
        stage = transition(stage, MessageStage.THREAD_RESOLVED)

        text = message.relay_text()
        thread_id = self.resolver.send_to_thread(
            wa_id,
            display_name,
            format_inbound_message(text, display_name, wa_id, forum_mode),
            thread_id,
        )
        stage = transition(stage, MessageStage.FORWARDED)

        if message.is_text and self.store.is_ai_enabled(wa_id):
            stage = self._answer_with_ai(wa_id, display_name, text, thread_id, forum_mode, stage)

        contact_logger(logger, wa_id).info(
            "WhatsApp message relayed",
            extra={"context": {"message_id": message.id, "thread_id": thread_id, "stage": stage.value}},
        )
        return stage

    def _answer_with_ai(
        self,
        wa_id: str,
        display_name: str,
        text: str,
        thread_id: Optional[int],
        forum_mode: bool,
        stage: MessageStage,
    ) -> MessageStage:
        answer = self.ai_gate.maybe_respond(wa_id, text)
        if not answer:
            return stage

        thread_id = self.resolver.send_to_thread(
            wa_id,
            display_name,
            format_inbound_message(f"{AI_PREFIX}{answer}", display_name, wa_id, forum_mode),
            thread_id,
        )

        try:
            self.whatsapp.send_text(wa_id, answer)
        except WhatsAppAPIError as e:
            contact_logger(logger, wa_id).error("Failed to deliver AI reply", extra={"context": {"error": e.message}})
            self._notify(f"❌ Failed to send AI reply to WhatsApp: {html.escape(e.message)}", thread_id)
            return transition(stage, MessageStage.REPORTED)

        stage = transition(stage, MessageStage.AI_FORWARDED)
        if self._mark_last_read(wa_id):
            stage = transition(stage, MessageStage.READ_MARKED)
        return stage

    # Telegram -> WhatsApp

    def handle_telegram_update(self, update: TelegramUpdate) -> TelegramWebhookResponse:
        message = update.message
        if message is None:
            return TelegramWebhookResponse(success=True, message="No actionable content")

        if str(message.chat.id) != self.admin_chat_id:
            logger.info(f"Ignoring message from non-admin chat {message.chat.id}")
            return TelegramWebhookResponse(success=True, message="Ignoring foreign chat")

        if message.from_user and message.from_user.is_bot:
            return TelegramWebhookResponse(success=True, message="Ignoring bot message")

        if not message.text:
            return TelegramWebhookResponse(success=True, message="No text in message")

        forum_mode = self._forum_mode()
        thread_id = message.message_thread_id if forum_mode else None
        command = parse_admin_text(message.text)

        if isinstance(command, ToggleAi):
            return self._toggle_ai(command, message, thread_id, forum_mode)
        if isinstance(command, SetInstruction):
            return self._instruction(command, thread_id)
        if isinstance(command, Status):
            return self._status(command, message, thread_id, forum_mode)
        if isinstance(command, Reply):
            return self._deliver(command.target, command.body, message, thread_id)
        if isinstance(command, MalformedCommand):
            return self._usage(command.verb, thread_id, forum_mode)
        return self._free_text(command, message, thread_id, forum_mode)

    def _contact_for_thread(self, thread_id: int, message: TelegramMessage) -> Optional[str]:
        wa_id = self.store.resolve_contact_for_thread(thread_id)
        if wa_id:
            return wa_id
        return self.resolver.recover_contact(thread_id, message.reply_to_message)

    def _usage(self, verb: str, thread_id: Optional[int], forum_mode: bool) -> TelegramWebhookResponse:
        if verb == "reply":
            self._notify(format_reply_instructions(), thread_id)
        else:
            self._notify(html.escape(usage_for(verb, forum_mode)), thread_id)
        return TelegramWebhookResponse(success=True, message=f"Usage sent for /{verb}")

    def _toggle_ai(
        self,
        command: ToggleAi,
        message: TelegramMessage,
        thread_id: Optional[int],
        forum_mode: bool,
    ) -> TelegramWebhookResponse:
        wa_id = command.target
        if wa_id is None:
            if thread_id is None:
                return self._usage("ai", thread_id, forum_mode)
            wa_id = self._contact_for_thread(thread_id, message)
            if wa_id is None:
                self._notify(UNBOUND_THREAD_TEXT, thread_id)
                return TelegramWebhookResponse(success=False, message="Thread not linked")

        self.store.set_ai_status(wa_id, command.enabled)
        state = "ON" if command.enabled else "OFF"
        logger.info(f"AI for {wa_id} set to {state}")
        self._notify(f"🤖 AI for {wa_id} is now {state}", thread_id)
        return TelegramWebhookResponse(success=True, message=f"AI {state}")

    def _instruction(self, command: SetInstruction, thread_id: Optional[int]) -> TelegramWebhookResponse:
        if command.text is None:
            current = self.store.get_setting(GLOBAL_INSTRUCTION_KEY) or "(empty)"
            self._notify(f"Current instruction: {html.escape(current)}", thread_id)
            return TelegramWebhookResponse(success=True, message="Instruction shown")

        self.store.set_setting(GLOBAL_INSTRUCTION_KEY, command.text)
        self._notify(f"Global instruction set:\n{html.escape(command.text)}", thread_id)
        return TelegramWebhookResponse(success=True, message="Instruction set")

    def _status(
        self,
        command: Status,
        message: TelegramMessage,
        thread_id: Optional[int],
        forum_mode: bool,
    ) -> TelegramWebhookResponse:
        wa_id = command.target
        if wa_id is None and thread_id is not None:
            wa_id = self._contact_for_thread(thread_id, message)

        if wa_id is not None:
            contact = self.store.get_contact(wa_id)
            if contact is None:
                self._notify(f"❌ Number {wa_id} has never sent a message", thread_id)
                return TelegramWebhookResponse(success=False, message="Unknown contact")
            self._notify(format_contact_status(contact, self.display_timezone), thread_id)
            return TelegramWebhookResponse(success=True, message="Status sent")

        contacts = self.store.list_contacts()
        if not contacts:
            self._notify("📱 No contacts registered yet", thread_id)
        else:
            self._notify(format_status_report(contacts, self.display_timezone, forum_mode), thread_id)
        return TelegramWebhookResponse(success=True, message="Status report sent")

    def _free_text(
        self,
        command: Unrecognized,
        message: TelegramMessage,
        thread_id: Optional[int],
        forum_mode: bool,
    ) -> TelegramWebhookResponse:
        if command.is_command:
            return TelegramWebhookResponse(success=True, message="Ignoring unknown command")

        if forum_mode:
            if thread_id is None:
                return TelegramWebhookResponse(success=True, message="Ignoring message outside threads")
            wa_id = self._contact_for_thread(thread_id, message)
            if wa_id is None:
                self._notify(UNRESOLVED_THREAD_TEXT, thread_id)
                return TelegramWebhookResponse(success=False, message="Thread not linked")
            return self._deliver(wa_id, message.text, message, thread_id)

        self._notify(format_reply_instructions())
        return TelegramWebhookResponse(success=True, message="Reply instructions sent")

    def _deliver(
        self,
        wa_id: str,
        body: str,
        message: TelegramMessage,
        thread_id: Optional[int],
    ) -> TelegramWebhookResponse:
        """Send an admin reply to WhatsApp. Failures are reported in the chat, not retried."""
        try:
            self.whatsapp.send_text(wa_id, body)
        except WhatsAppAPIError as e:
            contact_logger(logger, wa_id).error("WhatsApp send failed", extra={"context": {"error": e.message}})
            self._notify(
                f"❌ Failed to send to WhatsApp: {html.escape(e.message)}",
                thread_id,
                reply_to_message_id=message.message_id,
            )
            return TelegramWebhookResponse(success=False, message=e.message)

        logger.info(f"Admin reply delivered to {wa_id}")
        self._mark_last_read(wa_id)
        return TelegramWebhookResponse(success=True, message="Delivered")
