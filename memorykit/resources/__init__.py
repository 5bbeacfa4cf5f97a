from .base import Resource, encode_path
from .chats import ChatsResource
from .feedback import FeedbackResource
from .memories import MemoriesResource
from .status import StatusResource
from .users import UsersResource
from .webhooks import WebhooksResource


__all__ = [
    "ChatsResource",
    "FeedbackResource",
    "MemoriesResource",
    "Resource",
    "StatusResource",
    "UsersResource",
    "WebhooksResource",
    "encode_path",
]
