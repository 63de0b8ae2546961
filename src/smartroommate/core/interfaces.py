from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from .dto import *

class UserInterface(ABC):
    @abstractmethod
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
        """
        Creates a new user in the database.
        :param name:
        :param email:
        :param hashed_password:
        :param birthdate:
        :param age: derived from birthdate
        :param email_opt_in: receive message notifications by mail
        :param terms_accepted:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def get_user_by_id(
            self,
            user_id: int
    ) -> UserDTO | None:
        """
        Get user by User.id
        :param user_id:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def get_credentials_by_email(
            self,
            email: str
    ) -> UserCredentialsDTO | None:
        """
        Get id and password hash by User.email
        :param email:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def update_profile(
            self,
            user_id: int,
            values: dict[str, Any]
    ) -> UserDTO | None:
        """
        Writes profile columns and returns the updated user.
        :param user_id:
        :param values: column name -> new value
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def update_password(
            self,
            user_id: int,
            hashed_password: str
    ) -> bool:
        """
        Replaces the password hash of a user.
        :param user_id:
        :param hashed_password:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def get_complete_profiles(
            self,
            exclude_user_id: int
    ) -> list[UserDTO]:
        """
        Gets every user with a complete profile except one, newest first.
        :param exclude_user_id:
        :return:
        """
        raise NotImplementedError()


class PropertyInterface(ABC):
    @abstractmethod
    async def create_property(self, user_id: int, values: dict[str, Any]) -> PropertyDTO:
        raise NotImplementedError()

    @abstractmethod
    async def get_property(self, property_id: int) -> PropertyDTO | None:
        raise NotImplementedError()

    @abstractmethod
    async def list_properties(self, owner_id: int | None = None) -> list[PropertyDTO]:
        """
        Lists properties newest first, optionally only those of one owner.
        :param owner_id:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def update_property(self, property_id: int, values: dict[str, Any]) -> PropertyDTO | None:
        raise NotImplementedError()

    @abstractmethod
    async def delete_property(self, property_id: int) -> bool:
        raise NotImplementedError()


class ConversationInterface(ABC):
    @abstractmethod
    async def find_direct(
            self,
            first_user_id: int,
            second_user_id: int,
            property_id: int | None
    ) -> int | None:
        """
        Finds a conversation whose members are exactly the two users
        and whose property matches (both null counts as a match).
        :param first_user_id:
        :param second_user_id:
        :param property_id:
        :return: conversation id
        """
        raise NotImplementedError()

    @abstractmethod
    async def get_by_direct_key(
            self,
            direct_key: str
    ) -> int | None:
        """
        Gets a conversation id by its unique direct key.
        :param direct_key:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def create_conversation(
            self,
            member_ids: list[int],
            name: str | None = None,
            property_id: int | None = None,
            direct_key: str | None = None
    ) -> ConversationDTO:
        """
        Creates a conversation with its members in one transaction.
        Raises sqlalchemy IntegrityError when direct_key is already taken.
        :param member_ids:
        :param name:
        :param property_id:
        :param direct_key:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def get_conversation(
            self,
            conversation_id: int
    ) -> ConversationDTO | None:
        raise NotImplementedError()

    @abstractmethod
    async def is_member(
            self,
            conversation_id: int,
            user_id: int
    ) -> bool:
        raise NotImplementedError()

    @abstractmethod
    async def add_message(
            self,
            conversation_id: int,
            sender_id: int,
            body: str
    ) -> MessageDTO:
        """
        Appends a message and advances the sender's read position
        in the same transaction.
        :param conversation_id:
        :param sender_id:
        :param body:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def read_messages(
            self,
            conversation_id: int,
            reader_id: int
    ) -> list[MessageDTO]:
        """
        Gets messages oldest first and advances the reader's read position
        in the same transaction.
        :param conversation_id:
        :param reader_id:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def list_summaries(
            self,
            user_id: int
    ) -> list[ConversationSummaryDTO]:
        raise NotImplementedError()

    @abstractmethod
    async def count_unread(
            self,
            user_id: int
    ) -> int:
        raise NotImplementedError()

    @abstractmethod
    async def get_recipients(
            self,
            conversation_id: int,
            exclude_user_id: int
    ) -> list[RecipientDTO]:
        """
        Gets the members of a conversation except one (the sender).
        :param conversation_id:
        :param exclude_user_id:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def rename(
            self,
            conversation_id: int,
            name: str
    ) -> bool:
        raise NotImplementedError()
