import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from dishka import make_async_container
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import uvicorn

from smartroommate.config import Config, load_config
from smartroommate.core.exceptions import DomainError
from smartroommate.providers.dishka_app import AdaptersProvider, GatewaysProvider, ServicesProvider
from smartroommate.services import AuthAPI, UserAPI, PropertyAPI, ConversationAPI, UploadAPI
from smartroommate.services.storage import PUBLIC_PREFIX

logger = logging.getLogger("smartroommate")

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.dishka_container.close()

async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Server error"})

async def create_app(config: Config | None = None) -> FastAPI:
    config = config or load_config(".env")
    container = make_async_container(
        AdaptersProvider(config),
        GatewaysProvider(),
        ServicesProvider(),
    )

    app = FastAPI(title="SmartRoommate API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
    setup_dishka(container, app)

    for api_class in (AuthAPI, UserAPI, PropertyAPI, ConversationAPI, UploadAPI):
        api = await container.get(api_class)
        app.include_router(api.get_router())

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "service": "smartroommate",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    upload_dir = Path(config.storage.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=upload_dir), name="uploads")

    return app

def main():
    config = load_config(".env")
    logging.basicConfig(
        level=config.app.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    app = asyncio.run(create_app(config))
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=config.app.log_level.lower())

if __name__ == "__main__":
    main()
