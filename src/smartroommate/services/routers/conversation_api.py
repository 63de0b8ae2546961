from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from dishka.integrations.fastapi import inject
from dishka import FromDishka
import logging

from smartroommate.services.conversations import ConversationDirectory
from .auth_api import AuthAPI
from ..models.conversation_api_models import *


class ConversationAPI:
    """
    Conversation and message endpoints.

    Messaging is request driven: clients list conversations (with unread
    counts), fetch a conversation's messages (which marks them read) and post
    new ones. Only members can read, post to or rename a conversation.

    Attributes:
        logger: Logger instance for tracking operations
        auth_api: Authentication API instance for user validation
        conversation_router: FastAPI router containing conversation endpoints
    """

    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI
    ):
        self.logger = logger
        self.auth_api = auth_api
        self._conversation_router = APIRouter(prefix="/conversations", tags=["Conversations"])
        self._register_endpoints()

    @property
    def conversation_router(self) -> APIRouter:
        return self._conversation_router

    def get_router(self) -> APIRouter:
        return self._conversation_router

    def _register_endpoints(self):
        @self.conversation_router.get("", response_model=list[ConversationResponse])
        @inject
        async def list_conversations(
                directory: FromDishka[ConversationDirectory],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            """
            Conversations of the caller, most recent activity first, each with
            the other members, the last message and the caller's unread count.
            """
            user_id = await self.auth_api.get_current_user(token)
            summaries = await directory.list_conversations_for(user_id)
            return [ConversationResponse(**summary.model_dump()) for summary in summaries]

        @self.conversation_router.post("", response_model=ConversationCreatedResponse)
        @inject
        async def create_conversation(
                conversation_data: ConversationCreateRequest,
                directory: FromDishka[ConversationDirectory],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            """
            Start a conversation.

            With recipient_id the direct conversation with that user (scoped by
            property_id) is returned when it already exists (200) and created
            otherwise (201). With member_ids a new group is always created (201).
            """
            user_id = await self.auth_api.get_current_user(token)

            if conversation_data.recipient_id is not None:
                conversation_id, created = await directory.find_or_create_direct(
                    requester_id=user_id,
                    recipient_id=conversation_data.recipient_id,
                    property_id=conversation_data.property_id,
                    initial_message=conversation_data.initial_message
                )
            else:
                conversation_id = await directory.create_group(
                    requester_id=user_id,
                    member_ids=conversation_data.member_ids or [],
                    name=conversation_data.name,
                    initial_message=conversation_data.initial_message
                )
                created = True

            return JSONResponse(
                status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
                content=ConversationCreatedResponse(id=conversation_id, created=created).model_dump()
            )

        @self.conversation_router.get("/unread-count", response_model=UnreadCountResponse)
        @inject
        async def get_unread_count(
                directory: FromDishka[ConversationDirectory],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            return UnreadCountResponse(count=await directory.unread_count(user_id))

        @self.conversation_router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
        @inject
        async def list_messages(
                conversation_id: int,
                directory: FromDishka[ConversationDirectory],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            messages = await directory.list_messages(conversation_id, user_id)
            return [MessageResponse(**message.model_dump()) for message in messages]

        @self.conversation_router.post(
            "/{conversation_id}/messages",
            status_code=status.HTTP_201_CREATED,
            response_model=MessageCreatedResponse
        )
        @inject
        async def post_message(
                conversation_id: int,
                message_data: MessageSendRequest,
                directory: FromDishka[ConversationDirectory],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            message_id = await directory.post_message(conversation_id, user_id, message_data.body)
            return MessageCreatedResponse(id=message_id)

        @self.conversation_router.put("/{conversation_id}")
        @inject
        async def rename_conversation(
                conversation_id: int,
                rename_data: ConversationRenameRequest,
                directory: FromDishka[ConversationDirectory],
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            await directory.rename(conversation_id, user_id, rename_data.name)
            return {"message": "Conversation updated"}
