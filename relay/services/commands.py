"""Admin command grammar for messages posted in the Telegram admin chat.

``parse_admin_text`` turns the raw text into exactly one of the command
types below; the message router dispatches on the type.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

COMMAND_PATTERN = re.compile(r"^/(?P<verb>[A-Za-z_]+)(?:@\w+)?(?:\s+(?P<args>.*))?$", re.DOTALL)
REPLY_COMMAND_PATTERN = re.compile(r"^/reply(?:@\w+)?\s+(\d+)\s+(.+)$", re.DOTALL | re.IGNORECASE)
MENTION_PATTERN = re.compile(r"^@(\d+)\s+(.+)$", re.DOTALL)
PHONE_PATTERN = re.compile(r"^\d+$")

AI_STATES = {"on": True, "off": False}

AI_USAGE = "Usage: /ai PHONE_NUMBER on|off"
AI_USAGE_FORUM = "Usage: /ai on|off (inside a thread) or /ai PHONE_NUMBER on|off"
STATUS_USAGE = "Usage: /status or /status PHONE_NUMBER"
REPLY_USAGE = "Usage: /reply PHONE_NUMBER message"


@dataclass(frozen=True)
class ToggleAi:
    # None means "the contact bound to the current thread"
    target: Optional[str]
    enabled: bool


@dataclass(frozen=True)
class SetInstruction:
    # None means "show the current instruction"
    text: Optional[str]


@dataclass(frozen=True)
class Status:
    target: Optional[str] = None


@dataclass(frozen=True)
class Reply:
    target: str
    body: str


@dataclass(frozen=True)
class MalformedCommand:
    verb: str


@dataclass(frozen=True)
class Unrecognized:
    text: str
    is_command: bool = False


AdminCommand = Union[ToggleAi, SetInstruction, Status, Reply, MalformedCommand, Unrecognized]


def _parse_ai(args: list) -> AdminCommand:
    if len(args) == 1 and args[0].lower() in AI_STATES:
        return ToggleAi(target=None, enabled=AI_STATES[args[0].lower()])
    if len(args) == 2 and PHONE_PATTERN.match(args[0]) and args[1].lower() in AI_STATES:
        return ToggleAi(target=args[0], enabled=AI_STATES[args[1].lower()])
    return MalformedCommand("ai")


def _parse_status(args: list) -> AdminCommand:
    if not args:
        return Status()
    if len(args) == 1 and PHONE_PATTERN.match(args[0]):
        return Status(target=args[0])
    return MalformedCommand("status")


def parse_admin_text(text: str) -> AdminCommand:
    """Parse one admin chat message. Verbs are case-insensitive."""
    stripped = (text or "").strip()

    mention = MENTION_PATTERN.match(stripped)
    if mention:
        return Reply(target=mention.group(1), body=mention.group(2).strip())

    command = COMMAND_PATTERN.match(stripped)
    if not command:
        return Unrecognized(text=text)

    verb = command.group("verb").lower()
    raw_args = (command.group("args") or "").strip()
    args = raw_args.split()

    if verb == "ai":
        return _parse_ai(args)
    if verb == "instruction":
        return SetInstruction(text=raw_args or None)
    if verb == "status":
        return _parse_status(args)
    if verb == "reply":
        reply = REPLY_COMMAND_PATTERN.match(stripped)
        if not reply:
            return MalformedCommand("reply")
        return Reply(target=reply.group(1), body=reply.group(2).strip())

    return Unrecognized(text=text, is_command=True)


def usage_for(verb: str, forum_mode: bool) -> str:
    if verb == "ai":
        return AI_USAGE_FORUM if forum_mode else AI_USAGE
    if verb == "status":
        return STATUS_USAGE
    return REPLY_USAGE
