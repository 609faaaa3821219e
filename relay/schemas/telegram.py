from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None


class TelegramChat(BaseModel):
    id: int
    type: str  # private, group, supergroup, channel
    title: Optional[str] = None
    username: Optional[str] = None
    is_forum: Optional[bool] = None


class TelegramForumTopicCreated(BaseModel):
    name: str
    icon_color: Optional[int] = None
    icon_custom_emoji_id: Optional[str] = None


class TelegramMessage(BaseModel):
    message_id: int
    date: int
    chat: TelegramChat
    # "from" is reserved in Python
    from_user: Optional[TelegramUser] = Field(
        default=None,
        validation_alias=AliasChoices("from", "from_user"),
    )
    text: Optional[str] = None
    message_thread_id: Optional[int] = None  # Topic ID for forum groups
    reply_to_message: Optional["TelegramMessage"] = None
    forum_topic_created: Optional[TelegramForumTopicCreated] = None
    sender_chat: Optional[TelegramChat] = None

    model_config = ConfigDict(populate_by_name=True)


class TelegramUpdate(BaseModel):
    update_id: int
    message: Optional[TelegramMessage] = None
    edited_message: Optional[TelegramMessage] = None


class TelegramWebhookResponse(BaseModel):
    success: bool
    message: Optional[str] = None


TelegramMessage.model_rebuild()
