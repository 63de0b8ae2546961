from datetime import date
from typing import Any
import json
import logging

from sqlalchemy import select, insert, update, delete, func, case, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from .database import User, Property, Conversation, ConversationMember, Message, utcnow
from .interfaces import UserInterface, PropertyInterface, ConversationInterface
from .dto import (
    UserDTO, UserCredentialsDTO, MemberDTO, RecipientDTO, PropertyDTO,
    ConversationDTO, ConversationSummaryDTO, MessageDTO
)
from .db_manager import BaseDatabaseManager


def _user_to_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        name=user.name,
        email=user.email,
        birthdate=user.birthdate,
        age=user.age,
        gender=user.gender,
        location=user.location,
        budget=user.budget,
        habits=user.habits,
        bio=user.bio,
        profile_image_url=user.profile_image_url,
        tidiness=user.tidiness,
        social_energy=user.social_energy,
        noise_tolerance=user.noise_tolerance,
        profile_complete=bool(user.profile_complete),
        email_opt_in=bool(user.email_opt_in),
        created_at=user.created_at
    )


def _parse_gallery_column(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        return []
    return parsed if isinstance(parsed, list) else []


def _property_to_dto(prop: Property, owner_name: str | None, owner_image_url: str | None) -> PropertyDTO:
    return PropertyDTO(
        id=prop.id,
        user_id=prop.user_id,
        title=prop.title,
        location=prop.location,
        price=prop.price,
        description=prop.description,
        rooms=prop.rooms,
        property_type=prop.property_type,
        main_image_url=prop.main_image_url or None,
        gallery_images=_parse_gallery_column(prop.gallery_image_urls),
        latitude=prop.latitude,
        longitude=prop.longitude,
        created_at=prop.created_at,
        owner_name=owner_name,
        owner_image_url=owner_image_url
    )


def _conversation_to_dto(conversation: Conversation) -> ConversationDTO:
    return ConversationDTO(
        id=conversation.id,
        name=conversation.name,
        property_id=conversation.property_id,
        created_at=conversation.created_at
    )


class UserGateway(UserInterface):
    __slots__ = ("_db_manager", "_logger")

    def __init__(self, db_manager: BaseDatabaseManager, logger: logging.Logger | None = None):
        self._db_manager = db_manager
        self._logger = logger or logging.getLogger(__name__)

    async def create_user(
            self,
            name: str,
            email: str,
            hashed_password: str,
            birthdate: date,
            age: int | None,
            email_opt_in: bool,
            terms_accepted: bool
    ) -> UserDTO:
        async with self._db_manager.session() as session:
            try:
                stmt = insert(User).values(
                    name=name,
                    email=email,
                    hashed_password=hashed_password,
                    birthdate=birthdate,
                    age=age,
                    email_opt_in=email_opt_in,
                    terms_accepted=terms_accepted,
                    profile_complete=False,
                    created_at=utcnow()
                ).returning(User)
                result = await session.execute(stmt)
                return _user_to_dto(result.scalars().first())
            except Exception as e:
                self._logger.error("Error creating user in database: %s", e)
                raise

    async def get_user_by_id(self, user_id: int) -> UserDTO | None:
        async with self._db_manager.session() as session:
            try:
                stmt = select(User).where(User.id == user_id)
                result = await session.execute(stmt)
                user = result.scalars().first()
                return _user_to_dto(user) if user else None
            except Exception as e:
                self._logger.error("Error getting user by id in database: %s", e)
                raise

    async def get_credentials_by_email(self, email: str) -> UserCredentialsDTO | None:
        async with self._db_manager.session() as session:
            try:
                stmt = select(User.id, User.email, User.hashed_password).where(
                    func.lower(User.email) == email.lower()
                )
                result = await session.execute(stmt)
                row = result.first()
                if row is None:
                    return None
                return UserCredentialsDTO(id=row.id, email=row.email, hashed_password=row.hashed_password)
            except Exception as e:
                self._logger.error("Error getting credentials by email in database: %s", e)
                raise

    async def update_profile(self, user_id: int, values: dict[str, Any]) -> UserDTO | None:
        async with self._db_manager.session() as session:
            try:
                stmt = update(User).where(
                    User.id == user_id
                ).values(**values).returning(User)
                result = await session.execute(stmt)
                user = result.scalars().first()
                return _user_to_dto(user) if user else None
            except Exception as e:
                self._logger.error("Error updating profile in database: %s", e)
                raise

    async def update_password(self, user_id: int, hashed_password: str) -> bool:
        async with self._db_manager.session() as session:
            try:
                stmt = update(User).where(
                    User.id == user_id
                ).values(hashed_password=hashed_password)
                result = await session.execute(stmt)
                return result.rowcount > 0
            except Exception as e:
                self._logger.error("Error updating password in database: %s", e)
                raise

    async def get_complete_profiles(self, exclude_user_id: int) -> list[UserDTO]:
        async with self._db_manager.session() as session:
            try:
                stmt = select(User).where(
                    User.profile_complete == True,
                    User.id != exclude_user_id
                ).order_by(User.created_at.desc(), User.id.desc())
                result = await session.execute(stmt)
                return [_user_to_dto(user) for user in result.scalars().all()]
            except Exception as e:
                self._logger.error("Error getting complete profiles in database: %s", e)
                raise


class PropertyGateway(PropertyInterface):
    __slots__ = ("_db_manager", "_logger")

    def __init__(self, db_manager: BaseDatabaseManager, logger: logging.Logger | None = None):
        self._db_manager = db_manager
        self._logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _with_owner():
        return select(Property, User.name, User.profile_image_url).join(User, User.id == Property.user_id)

    @staticmethod
    def _to_columns(values: dict[str, Any]) -> dict[str, Any]:
        columns = dict(values)
        gallery = columns.pop("gallery_images", None)
        columns["gallery_image_urls"] = json.dumps(gallery) if gallery else None
        return columns

    async def _fetch(self, session: AsyncSession, property_id: int) -> PropertyDTO | None:
        result = await session.execute(self._with_owner().where(Property.id == property_id))
        row = result.first()
        if row is None:
            return None
        return _property_to_dto(*row)

    async def create_property(self, user_id: int, values: dict[str, Any]) -> PropertyDTO:
        async with self._db_manager.session() as session:
            try:
                stmt = insert(Property).values(
                    user_id=user_id,
                    created_at=utcnow(),
                    **self._to_columns(values)
                ).returning(Property.id)
                result = await session.execute(stmt)
                return await self._fetch(session, result.scalar_one())
            except Exception as e:
                self._logger.error("Error creating property in database: %s", e)
                raise

    async def get_property(self, property_id: int) -> PropertyDTO | None:
        async with self._db_manager.session() as session:
            try:
                return await self._fetch(session, property_id)
            except Exception as e:
                self._logger.error("Error getting property in database: %s", e)
                raise

    async def list_properties(self, owner_id: int | None = None) -> list[PropertyDTO]:
        async with self._db_manager.session() as session:
            try:
                stmt = self._with_owner()
                if owner_id is not None:
                    stmt = stmt.where(Property.user_id == owner_id)
                stmt = stmt.order_by(Property.created_at.desc(), Property.id.desc())
                result = await session.execute(stmt)
                return [_property_to_dto(*row) for row in result.all()]
            except Exception as e:
                self._logger.error("Error listing properties in database: %s", e)
                raise

    async def update_property(self, property_id: int, values: dict[str, Any]) -> PropertyDTO | None:
        async with self._db_manager.session() as session:
            try:
                stmt = update(Property).where(
                    Property.id == property_id
                ).values(**self._to_columns(values))
                result = await session.execute(stmt)
                if not result.rowcount:
                    return None
                return await self._fetch(session, property_id)
            except Exception as e:
                self._logger.error("Error updating property in database: %s", e)
                raise

    async def delete_property(self, property_id: int) -> bool:
        async with self._db_manager.session() as session:
            try:
                stmt = delete(Property).where(Property.id == property_id)
                result = await session.execute(stmt)
                return result.rowcount > 0
            except Exception as e:
                self._logger.error("Error deleting property in database: %s", e)
                raise


class ConversationGateway(ConversationInterface):
    __slots__ = ("_db_manager", "_logger")

    def __init__(self, db_manager: BaseDatabaseManager, logger: logging.Logger | None = None):
        self._db_manager = db_manager
        self._logger = logger or logging.getLogger(__name__)

    @staticmethod
    async def _mark_read(session: AsyncSession, conversation_id: int, user_id: int, read_at) -> None:
        # last_read_at only ever moves forward
        stmt = update(ConversationMember).where(
            ConversationMember.conversation_id == conversation_id,
            ConversationMember.user_id == user_id,
            or_(
                ConversationMember.last_read_at.is_(None),
                ConversationMember.last_read_at < read_at
            )
        ).values(last_read_at=read_at)
        await session.execute(stmt)

    async def find_direct(self, first_user_id: int, second_user_id: int, property_id: int | None) -> int | None:
        async with self._db_manager.session() as session:
            try:
                pair = [first_user_id, second_user_id]
                exact_pair = (
                    select(ConversationMember.conversation_id)
                    .group_by(ConversationMember.conversation_id)
                    .having(func.count() == 2)
                    .having(func.sum(case((ConversationMember.user_id.in_(pair), 1), else_=0)) == 2)
                )
                if property_id is None:
                    same_property = Conversation.property_id.is_(None)
                else:
                    same_property = Conversation.property_id == property_id

                stmt = select(Conversation.id).where(
                    Conversation.id.in_(exact_pair),
                    same_property
                ).order_by(Conversation.id).limit(1)
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
            except Exception as e:
                self._logger.error("Error finding direct conversation in database: %s", e)
                raise

    async def get_by_direct_key(self, direct_key: str) -> int | None:
        async with self._db_manager.session() as session:
            try:
                stmt = select(Conversation.id).where(Conversation.direct_key == direct_key)
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
            except Exception as e:
                self._logger.error("Error getting conversation by direct key in database: %s", e)
                raise

    async def create_conversation(
            self,
            member_ids: list[int],
            name: str | None = None,
            property_id: int | None = None,
            direct_key: str | None = None
    ) -> ConversationDTO:
        async with self._db_manager.session() as session:
            try:
                stmt = insert(Conversation).values(
                    name=name,
                    property_id=property_id,
                    direct_key=direct_key,
                    created_at=utcnow()
                ).returning(Conversation)
                result = await session.execute(stmt)
                conversation = result.scalars().first()

                await session.execute(
                    insert(ConversationMember),
                    [
                        {"conversation_id": conversation.id, "user_id": member_id, "last_read_at": None}
                        for member_id in member_ids
                    ]
                )
                return _conversation_to_dto(conversation)
            except Exception as e:
                self._logger.warning("Conversation was not created: %s", e)
                raise

    async def get_conversation(self, conversation_id: int) -> ConversationDTO | None:
        async with self._db_manager.session() as session:
            try:
                stmt = select(Conversation).where(Conversation.id == conversation_id)
                result = await session.execute(stmt)
                conversation = result.scalars().first()
                return _conversation_to_dto(conversation) if conversation else None
            except Exception as e:
                self._logger.error("Error getting conversation in database: %s", e)
                raise

    async def is_member(self, conversation_id: int, user_id: int) -> bool:
        async with self._db_manager.session() as session:
            try:
                stmt = select(ConversationMember.user_id).where(
                    ConversationMember.conversation_id == conversation_id,
                    ConversationMember.user_id == user_id
                )
                result = await session.execute(stmt)
                return result.first() is not None
            except Exception as e:
                self._logger.error("Error checking membership in database: %s", e)
                raise

    @staticmethod
    async def _lock_conversation(session: AsyncSession, conversation_id: int, shared: bool = False) -> None:
        # posts and reads of one conversation take their timestamps in turn (no-op on SQLite)
        stmt = select(Conversation.id).where(
            Conversation.id == conversation_id
        ).with_for_update(read=shared)
        await session.execute(stmt)

    async def add_message(self, conversation_id: int, sender_id: int, body: str) -> MessageDTO:
        async with self._db_manager.session() as session:
            try:
                await self._lock_conversation(session, conversation_id)
                created_at = utcnow()
                stmt = insert(Message).values(
                    conversation_id=conversation_id,
                    sender_id=sender_id,
                    body=body,
                    created_at=created_at
                ).returning(Message)
                result = await session.execute(stmt)
                msg = result.scalars().first()

                # a sender has read everything up to their own message
                await self._mark_read(session, conversation_id, sender_id, created_at)

                return MessageDTO(
                    id=msg.id,
                    conversation_id=msg.conversation_id,
                    sender_id=msg.sender_id,
                    body=msg.body,
                    created_at=msg.created_at
                )
            except Exception as e:
                self._logger.error("Error creating message in database: %s", e)
                raise

    async def read_messages(self, conversation_id: int, reader_id: int) -> list[MessageDTO]:
        async with self._db_manager.session() as session:
            try:
                await self._lock_conversation(session, conversation_id, shared=True)
                stmt = select(Message, User.name).join(
                    User, User.id == Message.sender_id
                ).where(
                    Message.conversation_id == conversation_id
                ).order_by(Message.created_at.asc(), Message.id.asc())
                result = await session.execute(stmt)
                messages = [
                    MessageDTO(
                        id=m.id,
                        conversation_id=m.conversation_id,
                        sender_id=m.sender_id,
                        sender_name=sender_name,
                        body=m.body,
                        created_at=m.created_at
                    ) for m, sender_name in result.all()
                ]

                # the reader has seen up to the newest message returned, not up to now
                if messages:
                    await self._mark_read(session, conversation_id, reader_id, messages[-1].created_at)
                return messages
            except Exception as e:
                self._logger.error("Error reading messages in database: %s", e)
                raise

    async def list_summaries(self, user_id: int) -> list[ConversationSummaryDTO]:
        async with self._db_manager.session() as session:
            try:
                last_message = (
                    select(Message.body)
                    .where(Message.conversation_id == Conversation.id)
                    .order_by(Message.created_at.desc(), Message.id.desc())
                    .limit(1)
                    .scalar_subquery()
                )
                last_message_at = (
                    select(func.max(Message.created_at))
                    .where(Message.conversation_id == Conversation.id)
                    .scalar_subquery()
                )
                unread = (
                    select(func.count(Message.id))
                    .where(
                        Message.conversation_id == Conversation.id,
                        Message.sender_id != user_id,
                        or_(
                            ConversationMember.last_read_at.is_(None),
                            Message.created_at > ConversationMember.last_read_at
                        )
                    )
                    .scalar_subquery()
                )

                stmt = select(
                    Conversation,
                    last_message.label("last_message"),
                    last_message_at.label("last_message_at"),
                    unread.label("unread_count")
                ).join(
                    ConversationMember,
                    and_(
                        ConversationMember.conversation_id == Conversation.id,
                        ConversationMember.user_id == user_id
                    )
                )
                result = await session.execute(stmt)
                rows = result.all()
                if not rows:
                    return []

                ids = [row.Conversation.id for row in rows]
                members_stmt = select(
                    ConversationMember.conversation_id,
                    User.id,
                    User.name,
                    User.profile_image_url
                ).join(
                    User, User.id == ConversationMember.user_id
                ).where(
                    ConversationMember.conversation_id.in_(ids),
                    ConversationMember.user_id != user_id
                ).order_by(User.id)
                members_result = await session.execute(members_stmt)

                grouped: dict[int, list[MemberDTO]] = {}
                for conversation_id, member_id, member_name, image_url in members_result.all():
                    grouped.setdefault(conversation_id, []).append(
                        MemberDTO(id=member_id, name=member_name, profile_image_url=image_url)
                    )

                summaries = [
                    ConversationSummaryDTO(
                        id=row.Conversation.id,
                        name=row.Conversation.name,
                        property_id=row.Conversation.property_id,
                        created_at=row.Conversation.created_at,
                        members=grouped.get(row.Conversation.id, []),
                        last_message=row.last_message,
                        last_message_at=row.last_message_at,
                        unread_count=row.unread_count or 0
                    ) for row in rows
                ]
                summaries.sort(key=lambda s: (s.last_activity_at, s.id), reverse=True)
                return summaries
            except Exception as e:
                self._logger.error("Error listing conversations in database: %s", e)
                raise

    async def count_unread(self, user_id: int) -> int:
        async with self._db_manager.session() as session:
            try:
                stmt = select(func.count(Message.id)).join(
                    ConversationMember,
                    and_(
                        ConversationMember.conversation_id == Message.conversation_id,
                        ConversationMember.user_id == user_id
                    )
                ).where(
                    Message.sender_id != user_id,
                    or_(
                        ConversationMember.last_read_at.is_(None),
                        Message.created_at > ConversationMember.last_read_at
                    )
                )
                result = await session.execute(stmt)
                return result.scalar_one() or 0
            except Exception as e:
                self._logger.error("Error counting unread messages in database: %s", e)
                raise

    async def get_recipients(self, conversation_id: int, exclude_user_id: int) -> list[RecipientDTO]:
        async with self._db_manager.session() as session:
            try:
                stmt = select(User.id, User.name, User.email, User.email_opt_in).join(
                    ConversationMember, ConversationMember.user_id == User.id
                ).where(
                    ConversationMember.conversation_id == conversation_id,
                    User.id != exclude_user_id
                )
                result = await session.execute(stmt)
                return [
                    RecipientDTO(id=row.id, name=row.name, email=row.email, email_opt_in=bool(row.email_opt_in))
                    for row in result.all()
                ]
            except Exception as e:
                self._logger.error("Error getting recipients in database: %s", e)
                raise

    async def rename(self, conversation_id: int, name: str) -> bool:
        async with self._db_manager.session() as session:
            try:
                stmt = update(Conversation).where(
                    Conversation.id == conversation_id
                ).values(name=name)
                result = await session.execute(stmt)
                return result.rowcount > 0
            except Exception as e:
                self._logger.error("Error renaming conversation in database: %s", e)
                raise
