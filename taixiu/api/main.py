from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taixiu.api.routes import router
from taixiu.config import Settings, settings
from taixiu.core.errors import InvalidRoundError, SourceError
from taixiu.services import PredictionService
from taixiu.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


async def source_error_handler(request: Request, exc: SourceError) -> JSONResponse:
    logger.warning("upstream_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                        content={"detail": f"upstream unavailable: {exc}"})


async def invalid_round_handler(request: Request, exc: InvalidRoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


def create_app(service: PredictionService | None = None, cfg: Settings | None = None) -> FastAPI:
    cfg = cfg or (service.cfg if service is not None else settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(cfg.log_level)
        if getattr(app.state, "service", None) is None:
            app.state.service = PredictionService(cfg)
        await app.state.service.start()
        yield
        await app.state.service.stop()

    app = FastAPI(title="TaiXiu Predictor", lifespan=lifespan)
    app.state.service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SourceError, source_error_handler)
    app.add_exception_handler(InvalidRoundError, invalid_round_handler)
    app.include_router(router)

    @app.get("/")
    def home():
        return {"ok": True, "app": "TaiXiu Predictor"}

    return app


app = create_app()
