from fastapi import APIRouter, Depends, File, UploadFile, status
from dishka.integrations.fastapi import inject
from dishka import FromDishka
import logging

from smartroommate.core.exceptions import ValidationFailed
from smartroommate.services.storage import BaseBlobStore
from .auth_api import AuthAPI
from ..models.property_api_models import UploadResponse


class UploadAPI:
    """Image upload for profile and listing photos"""

    def __init__(
            self,
            logger: logging.Logger,
            auth_api: AuthAPI,
            max_files: int = 6
    ):
        self.logger = logger
        self.auth_api = auth_api
        self.max_files = max_files
        self._upload_router = APIRouter(prefix="/uploads", tags=["Uploads"])
        self._register_endpoints()

    def get_router(self) -> APIRouter:
        return self._upload_router

    def _register_endpoints(self):
        @self._upload_router.post("", status_code=status.HTTP_201_CREATED, response_model=UploadResponse)
        @inject
        async def upload_images(
                blob_store: FromDishka[BaseBlobStore],
                images: list[UploadFile] = File(...),
                token: str = Depends(self.auth_api.oauth2_scheme)
        ):
            user_id = await self.auth_api.get_current_user(token)
            if len(images) > self.max_files:
                raise ValidationFailed(f"Upload at most {self.max_files} files.")

            urls = []
            for image in images:
                data = await image.read()
                urls.append(await blob_store.save(image.filename, image.content_type, data))

            self.logger.info("User %s uploaded %d images", user_id, len(urls))
            return UploadResponse(urls=urls)
