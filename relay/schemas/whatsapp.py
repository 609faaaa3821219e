from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class WhatsAppProfile(BaseModel):
    name: Optional[str] = None


class WhatsAppContact(BaseModel):
    wa_id: str
    profile: Optional[WhatsAppProfile] = None


class WhatsAppText(BaseModel):
    body: str


class WhatsAppMessage(BaseModel):
    id: str
    # "from" is reserved in Python
    from_number: str = Field(validation_alias=AliasChoices("from", "from_number"))
    timestamp: Optional[str] = None
    type: str = "text"
    text: Optional[WhatsAppText] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def is_text(self) -> bool:
        return self.type == "text" and self.text is not None

    def relay_text(self) -> str:
        """Text body, or a ``[<type> message]`` placeholder for anything else."""
        if self.text is not None:
            return self.text.body
        return f"[{self.type} message]"


class WhatsAppValue(BaseModel):
    messaging_product: Optional[str] = None
    metadata: Optional[dict] = None
    contacts: list[WhatsAppContact] = []
    messages: list[WhatsAppMessage] = []
    statuses: Optional[list[Any]] = None

    def display_name_for(self, wa_id: str) -> str:
        """Profile name from the webhook's contact list, falling back to the number."""
        for contact in self.contacts:
            if contact.wa_id == wa_id and contact.profile and contact.profile.name:
                return contact.profile.name
        return wa_id


class WhatsAppChange(BaseModel):
    field: Optional[str] = None
    value: WhatsAppValue = WhatsAppValue()


class WhatsAppEntry(BaseModel):
    id: Optional[str] = None
    changes: list[WhatsAppChange] = []


class WhatsAppWebhookPayload(BaseModel):
    object: Optional[str] = None
    entry: list[WhatsAppEntry] = []


class WebhookResponse(BaseModel):
    success: bool
    message: str
