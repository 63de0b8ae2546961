from fastapi import status, APIRouter
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone

from dishka import FromDishka
from dishka.integrations.fastapi import inject

import asyncio
import logging

from smartroommate.core.exceptions import Conflict, InvalidToken, Unauthenticated, ValidationFailed
from smartroommate.core.gateways import UserGateway
from smartroommate.services.notifier import BaseNotifier, password_reset_mail
from smartroommate.services.profile import calculate_age
from smartroommate.services.security import PasswordHasher, ResetTokenStore
from ..models.auth_api_models import *


class AuthAPI:
    """
    Authentication API service: registration, password login, JWT issuing and
    validation, and the password reset flow.
    Attributes:
        SECRET_KEY (str): Secret key for JWT token signing
        ALGORITHM (str): JWT signing algorithm (HS256)
        ACCESS_TOKEN_EXPIRE_MINUTES (int): JWT token expiration time in minutes
        reset_tokens (ResetTokenStore): Redis-backed one-time reset tokens
        password_hasher (PasswordHasher): bcrypt hashing
        notifier (BaseNotifier): sends the reset mail
        app_base_url (str): front-end url the reset link points to
        notify_timeout (float): upper bound, in seconds, on sending the reset mail
        logger (logging.Logger): Logger instance
        oauth2_scheme (OAuth2PasswordBearer): bearer token dependency
    """
    def __init__(
            self,
            secret_key: str,
            reset_tokens: ResetTokenStore,
            password_hasher: PasswordHasher,
            notifier: BaseNotifier,
            logger: logging.Logger,
            app_base_url: str = "http://localhost:3000",
            access_token_expire_minutes: int = 480,
            notify_timeout: float = 5.0
    ):
        self.SECRET_KEY = secret_key
        self.ALGORITHM = "HS256"
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = access_token_expire_minutes
        self.reset_tokens = reset_tokens
        self.password_hasher = password_hasher
        self.notifier = notifier
        self.app_base_url = app_base_url
        self.notify_timeout = notify_timeout
        self.logger = logger
        self.oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")
        self._auth_router = APIRouter(prefix="/auth", tags=["Authentication"])
        self._register_endpoints()

    @property
    def auth_router(self) -> APIRouter:
        return self._auth_router

    def get_router(self) -> APIRouter:
        return self._auth_router

    def create_access_token(self, user_id: int) -> str:
        """
        Create JWT access token for authenticated user.
        Args:
            user_id: User ID to include in the token payload
        Returns:
            str: Encoded JWT access token
        """
        try:
            now = datetime.now(timezone.utc)
            payload = {
                "sub": str(user_id),
                "exp": now + timedelta(minutes=self.ACCESS_TOKEN_EXPIRE_MINUTES),
                "type": "access",
                "iat": now
            }
            return jwt.encode(payload, self.SECRET_KEY, algorithm=self.ALGORITHM)
        except Exception as e:
            self.logger.error("Error creating access token: %s", str(e), exc_info=True)
            raise

    async def _send_reset_mail(self, email: str, subject: str, text: str, html: str) -> None:
        # the caller gets the same answer whether or not the mail went out
        try:
            await asyncio.wait_for(self.notifier.notify(email, subject, text, html), timeout=self.notify_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Password reset mail timed out")
        except Exception as e:
            self.logger.error("Password reset mail error: %s", e, exc_info=True)

    def _token_response(self, user_id: int) -> TokenResponse:
        return TokenResponse(
            access_token=self.create_access_token(user_id),
            expires_in=self.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        )

    async def get_current_user(self, token: str) -> int:
        """
        Validate JWT token and extract user ID.
        Args:
            token: JWT token string
        Returns:
            int: User ID extracted from token
        Raises:
            Unauthenticated: If token is invalid, expired, or has wrong type
        """
        try:
            payload = jwt.decode(token, self.SECRET_KEY, algorithms=[self.ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token expired")
        except JWTError as e:
            raise Unauthenticated("Invalid token") from e

        if payload.get("type") != "access":
            raise Unauthenticated("Invalid token type")

        try:
            return int(payload.get("sub"))
        except (TypeError, ValueError) as e:
            raise Unauthenticated() from e

    def _register_endpoints(self):
        @self.auth_router.post("/register", status_code=status.HTTP_201_CREATED, response_model=TokenResponse)
        @inject
        async def register(user_data: UserRegisterRequest, user_gateway: FromDishka[UserGateway]):
            """
            Register a new account and sign it in
            Args: user_data: name, email, password, birthdate and consent flags
            Returns: TokenResponse: bearer token for the new user
            """
            if not user_data.terms_accepted:
                raise ValidationFailed("You must accept the terms and conditions.")

            if user_data.birthdate > datetime.now(timezone.utc).date():
                raise ValidationFailed("Birthdate is invalid.")
            age = calculate_age(user_data.birthdate)

            if await user_gateway.get_credentials_by_email(user_data.email):
                raise Conflict("Email already used")

            user = await user_gateway.create_user(
                name=user_data.name,
                email=user_data.email.lower(),
                hashed_password=await self.password_hasher.hash(user_data.password),
                birthdate=user_data.birthdate,
                age=age,
                email_opt_in=user_data.email_opt_in,
                terms_accepted=True
            )
            self.logger.info("User %s registered", user.id)
            return self._token_response(user.id)

        @self.auth_router.post("/login", response_model=TokenResponse)
        @inject
        async def login(login_data: LoginRequest, user_gateway: FromDishka[UserGateway]):
            """
            Authenticate with email and password
            Returns: TokenResponse: bearer token
            """
            credentials = await user_gateway.get_credentials_by_email(login_data.email.strip())
            if credentials is None:
                raise Unauthenticated("Invalid credentials")

            if not await self.password_hasher.verify(login_data.password, credentials.hashed_password):
                raise Unauthenticated("Invalid credentials")

            return self._token_response(credentials.id)

        @self.auth_router.post("/forgot-password", response_model=MessageResponse)
        @inject
        async def forgot_password(request_data: ForgotPasswordRequest, user_gateway: FromDishka[UserGateway]):
            """
            Mail a one-time reset link. The answer is the same whether or not the email exists.
            """
            email = request_data.email.strip()
            if not email:
                raise ValidationFailed("Email is required.")

            answer = MessageResponse(message="If that email exists, a reset link has been sent.")
            credentials = await user_gateway.get_credentials_by_email(email)
            if credentials is None:
                return answer

            token = self.reset_tokens.issue(credentials.id)
            reset_link = f"{self.app_base_url.rstrip('/')}/reset-password/{token}"
            subject, text, html = password_reset_mail(reset_link)
            await self._send_reset_mail(credentials.email, subject, text, html)
            return answer

        @self.auth_router.post("/reset-password", response_model=MessageResponse)
        @inject
        async def reset_password(request_data: ResetPasswordRequest, user_gateway: FromDishka[UserGateway]):
            """
            Set a new password with a token from the reset mail
            """
            user_id = self.reset_tokens.consume(request_data.token)
            if user_id is None:
                raise InvalidToken()

            hashed_password = await self.password_hasher.hash(request_data.password)
            if not await user_gateway.update_password(user_id, hashed_password):
                raise InvalidToken()

            self.logger.info("Password of user %s reset", user_id)
            return MessageResponse(message="Password updated")
