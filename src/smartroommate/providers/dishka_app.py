from dishka import Provider, Scope, provide
from typing import AsyncIterable
import redis
import logging

from smartroommate.config import Config, load_config
from smartroommate.core.db_manager import BaseDatabaseManager, create_db_manager
from smartroommate.core.gateways import UserGateway, PropertyGateway, ConversationGateway
from smartroommate.services.conversations import ConversationDirectory
from smartroommate.services.listings import ListingService
from smartroommate.services.notifier import BaseNotifier, MailNotifier
from smartroommate.services.security import PasswordHasher, ResetTokenStore
from smartroommate.services.storage import BaseBlobStore, LocalBlobStore
from smartroommate.services.users import UserService

from smartroommate.services.routers import AuthAPI, UserAPI, PropertyAPI, ConversationAPI, UploadAPI

class AdaptersProvider(Provider):
    def __init__(self, config: Config | None = None):
        super().__init__()
        self._config = config

    @provide(scope=Scope.APP)
    def get_config(self) -> Config:
        return self._config or load_config(".env")

    @provide(scope=Scope.APP)
    def get_logger(self) -> logging.Logger:
        return logging.getLogger("smartroommate")

    @provide(scope=Scope.APP)
    def get_redis(self, config: Config) -> redis.Redis:
        return redis.Redis(host=config.redis.host, port=config.redis.port, db=0)

    @provide(scope=Scope.APP)
    async def get_db_manager(self, config: Config) -> AsyncIterable[BaseDatabaseManager]:
        db_manager = create_db_manager(config)
        await db_manager.initialize()
        await db_manager.create_tables()
        yield db_manager
        await db_manager.close()

    @provide(scope=Scope.APP)
    def get_notifier(self, config: Config, logger: logging.Logger) -> BaseNotifier:
        return MailNotifier(config.smtp, logger)

    @provide(scope=Scope.APP)
    def get_blob_store(self, config: Config, logger: logging.Logger) -> BaseBlobStore:
        return LocalBlobStore(config.storage, logger)

    @provide(scope=Scope.APP)
    def get_password_hasher(self) -> PasswordHasher:
        return PasswordHasher()

    @provide(scope=Scope.APP)
    def get_reset_token_store(self, redis: redis.Redis, logger: logging.Logger) -> ResetTokenStore:
        return ResetTokenStore(redis, logger)

class GatewaysProvider(Provider):
    @provide(scope=Scope.REQUEST)
    def get_user_gateway(
            self,
            db_manager: BaseDatabaseManager,
            logger: logging.Logger
    ) -> UserGateway:
        return UserGateway(db_manager, logger)

    @provide(scope=Scope.REQUEST)
    def get_property_gateway(
            self,
            db_manager: BaseDatabaseManager,
            logger: logging.Logger
    ) -> PropertyGateway:
        return PropertyGateway(db_manager, logger)

    @provide(scope=Scope.REQUEST)
    def get_conversation_gateway(
            self,
            db_manager: BaseDatabaseManager,
            logger: logging.Logger
    ) -> ConversationGateway:
        return ConversationGateway(db_manager, logger)

    @provide(scope=Scope.REQUEST)
    def get_user_service(
            self,
            user_gateway: UserGateway,
            logger: logging.Logger
    ) -> UserService:
        return UserService(user_gateway, logger)

    @provide(scope=Scope.REQUEST)
    def get_listing_service(
            self,
            property_gateway: PropertyGateway,
            logger: logging.Logger
    ) -> ListingService:
        return ListingService(property_gateway, logger)

    @provide(scope=Scope.REQUEST)
    def get_conversation_directory(
            self,
            conversation_gateway: ConversationGateway,
            user_gateway: UserGateway,
            property_gateway: PropertyGateway,
            notifier: BaseNotifier,
            config: Config,
            logger: logging.Logger
    ) -> ConversationDirectory:
        return ConversationDirectory(
            conversation_gateway,
            user_gateway,
            property_gateway,
            notifier,
            logger=logger,
            notify_timeout=config.app.notify_timeout
        )

class ServicesProvider(Provider):
    @provide(scope=Scope.APP)
    def get_auth_api(
        self,
        config: Config,
        reset_tokens: ResetTokenStore,
        password_hasher: PasswordHasher,
        notifier: BaseNotifier,
        logger: logging.Logger
    ) -> AuthAPI:
        return AuthAPI(
            secret_key=config.jwt.secret_key,
            reset_tokens=reset_tokens,
            password_hasher=password_hasher,
            notifier=notifier,
            logger=logger,
            app_base_url=config.app.base_url,
            access_token_expire_minutes=config.jwt.access_token_expire_minutes,
            notify_timeout=config.app.notify_timeout
        )

    @provide(scope=Scope.APP)
    def get_user_api(self, logger: logging.Logger, auth_api: AuthAPI) -> UserAPI:
        return UserAPI(logger=logger, auth_api=auth_api)

    @provide(scope=Scope.APP)
    def get_property_api(self, logger: logging.Logger, auth_api: AuthAPI) -> PropertyAPI:
        return PropertyAPI(logger=logger, auth_api=auth_api)

    @provide(scope=Scope.APP)
    def get_conversation_api(self, logger: logging.Logger, auth_api: AuthAPI) -> ConversationAPI:
        return ConversationAPI(logger=logger, auth_api=auth_api)

    @provide(scope=Scope.APP)
    def get_upload_api(self, config: Config, logger: logging.Logger, auth_api: AuthAPI) -> UploadAPI:
        return UploadAPI(logger=logger, auth_api=auth_api, max_files=config.storage.max_files)
