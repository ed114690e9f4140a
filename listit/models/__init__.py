from listit.models.user import User
from listit.models.listing import Listing, ListingImage
from listit.models.conversation import Conversation, Message, MessageImage
from listit.models.audit_event import AuditEvent

__all__ = [
    "User",
    "Listing",
    "ListingImage",
    "Conversation",
    "Message",
    "MessageImage",
    "AuditEvent",
]
