from typing import Any
import asyncio
import logging

from sqlalchemy.exc import IntegrityError

from smartroommate.core.dto import ConversationSummaryDTO, MessageDTO
from smartroommate.core.exceptions import (
    AccessDenied, EmptyBody, InsufficientMembers, InvalidRecipient, NotFound, ValidationFailed
)
from smartroommate.core.interfaces import ConversationInterface, PropertyInterface, UserInterface
from .notifier import BaseNotifier, new_message_mail


def direct_key(first_user_id: int, second_user_id: int, property_id: int | None) -> str:
    """Order-independent key of a direct conversation, unique per pair and property."""
    low, high = sorted((first_user_id, second_user_id))
    return f"{low}:{high}:{property_id if property_id is not None else '-'}"


def parse_user_id(value: Any) -> int:
    """Accepts an int or a string of digits; anything else raises InvalidRecipient."""
    if isinstance(value, bool):
        raise InvalidRecipient()
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidRecipient()


class ConversationDirectory:
    """
    Conversation, membership and message bookkeeping.

    Direct conversations (two members, optionally about one property) are
    deduplicated: the store is checked for an existing conversation with
    exactly that member pair and property, and new ones carry a unique
    direct key so that two concurrent requests cannot both create one.
    Group conversations are always created fresh.

    Every member has a read position (last_read_at). Posting moves the
    sender's position to the new message, listing moves the reader's
    position to the newest message it returned. Unread counts are the
    messages from other members created after that position.

    Attributes:
        notify_timeout: upper bound, in seconds, on the mail notification
            attempt made after a message is stored
    """

    def __init__(
            self,
            conversation_gateway: ConversationInterface,
            user_gateway: UserInterface,
            property_gateway: PropertyInterface,
            notifier: BaseNotifier,
            logger: logging.Logger | None = None,
            notify_timeout: float = 5.0
    ):
        self._conversations = conversation_gateway
        self._users = user_gateway
        self._properties = property_gateway
        self._notifier = notifier
        self.logger = logger or logging.getLogger(__name__)
        self.notify_timeout = notify_timeout

    async def find_or_create_direct(
            self,
            requester_id: int,
            recipient_id: Any,
            property_id: int | None = None,
            initial_message: str | None = None
    ) -> tuple[int, bool]:
        """
        Returns the direct conversation between two users about a property
        (or about nothing), creating it when it does not exist yet.

        Args:
            requester_id: user starting the conversation
            recipient_id: the other member
            property_id: listing the conversation is about, if any
            initial_message: posted by the requester only when a conversation is created

        Returns:
            (conversation id, created)

        Raises:
            InvalidRecipient: when the recipient id is not an integer or is the requester
            NotFound: when the recipient or the property does not exist
        """
        recipient_id = parse_user_id(recipient_id)
        if recipient_id == requester_id:
            raise InvalidRecipient("You cannot message yourself.")
        if await self._users.get_user_by_id(recipient_id) is None:
            raise NotFound("Recipient not found")
        if property_id is not None and await self._properties.get_property(property_id) is None:
            raise NotFound("Property not found")

        existing = await self._conversations.find_direct(requester_id, recipient_id, property_id)
        if existing is not None:
            return existing, False

        key = direct_key(requester_id, recipient_id, property_id)
        try:
            conversation = await self._conversations.create_conversation(
                member_ids=sorted((requester_id, recipient_id)),
                property_id=property_id,
                direct_key=key
            )
        except IntegrityError:
            # lost a race against an identical request
            winner = await self._conversations.get_by_direct_key(key)
            if winner is None:
                raise
            self.logger.info("Direct conversation %s already created concurrently", winner)
            return winner, False

        self.logger.info(
            "Direct conversation %s created for users %s and %s",
            conversation.id, requester_id, recipient_id
        )
        await self._post_initial(conversation.id, requester_id, initial_message)
        return conversation.id, True

    async def create_group(
            self,
            requester_id: int,
            member_ids: Any,
            name: str | None = None,
            initial_message: str | None = None
    ) -> int:
        """
        Creates a conversation with the requester and the given users.
        Never deduplicated, even for two members.

        Raises:
            InvalidRecipient: when member_ids is not a list of integer ids
            InsufficientMembers: when nobody besides the requester was selected
            NotFound: when a selected user does not exist
        """
        if not isinstance(member_ids, (list, tuple)):
            raise InvalidRecipient()
        members = list(dict.fromkeys([*(parse_user_id(member_id) for member_id in member_ids), requester_id]))
        if len(members) < 2:
            raise InsufficientMembers("Select at least one other person.")

        for member_id in members:
            if member_id != requester_id and await self._users.get_user_by_id(member_id) is None:
                raise NotFound(f"User {member_id} not found")

        conversation = await self._conversations.create_conversation(
            member_ids=members,
            name=(name or "").strip() or None
        )
        self.logger.info("Group conversation %s created with %d members", conversation.id, len(members))
        await self._post_initial(conversation.id, requester_id, initial_message)
        return conversation.id

    async def _post_initial(self, conversation_id: int, sender_id: int, initial_message: str | None) -> None:
        if initial_message and initial_message.strip():
            await self.post_message(conversation_id, sender_id, initial_message)

    async def _require_member(self, conversation_id: int, user_id: int) -> None:
        if await self._conversations.get_conversation(conversation_id) is None:
            raise NotFound("Conversation not found")
        if not await self._conversations.is_member(conversation_id, user_id):
            raise AccessDenied()

    async def post_message(self, conversation_id: int, sender_id: int, body: str | None) -> int:
        """
        Appends a message from a member and marks it read for the sender.
        Other members who opted in are mailed afterwards; that attempt is
        bounded by notify_timeout and its failures are only logged.

        Returns:
            id of the new message
        """
        await self._require_member(conversation_id, sender_id)
        text = (body or "").strip()
        if not text:
            raise EmptyBody()

        message = await self._conversations.add_message(conversation_id, sender_id, text)
        await self._notify_recipients(conversation_id, sender_id, text)
        return message.id

    async def _notify_recipients(self, conversation_id: int, sender_id: int, body: str) -> None:
        try:
            await asyncio.wait_for(
                self._send_notifications(conversation_id, sender_id, body),
                timeout=self.notify_timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning("Email notification for conversation %s timed out", conversation_id)
        except Exception as e:
            self.logger.error("Email notification error: %s", e, exc_info=True)

    async def _send_notifications(self, conversation_id: int, sender_id: int, body: str) -> None:
        recipients = [
            recipient
            for recipient in await self._conversations.get_recipients(conversation_id, sender_id)
            if recipient.email_opt_in
        ]
        if not recipients:
            return

        sender = await self._users.get_user_by_id(sender_id)
        subject, text, html = new_message_mail(sender.name if sender else "Someone", body)
        for recipient in recipients:
            try:
                await self._notifier.notify(recipient.email, subject, text, html)
            except Exception as e:
                self.logger.warning("Could not notify user %s: %s", recipient.id, e)

    async def list_messages(self, conversation_id: int, requester_id: int) -> list[MessageDTO]:
        """Messages oldest first; the requester's read position moves to the newest one returned."""
        await self._require_member(conversation_id, requester_id)
        return await self._conversations.read_messages(conversation_id, requester_id)

    async def list_conversations_for(self, user_id: int) -> list[ConversationSummaryDTO]:
        return await self._conversations.list_summaries(user_id)

    async def unread_count(self, user_id: int) -> int:
        return await self._conversations.count_unread(user_id)

    async def rename(self, conversation_id: int, requester_id: int, name: str | None) -> None:
        new_name = (name or "").strip()
        if not new_name:
            raise ValidationFailed("Name is required.")
        await self._require_member(conversation_id, requester_id)
        await self._conversations.rename(conversation_id, new_name)
