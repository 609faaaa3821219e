from relay.models.contact import Contact
from relay.models.setting import Setting
from relay.models.thread import ThreadBinding

__all__ = [
    "Contact",
    "ThreadBinding",
    "Setting",
]
