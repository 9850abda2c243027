from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from config import settings, create_db_and_tables
from middleware.logging_middleware import CorrelationIdMiddleware, RequestTimingMiddleware
from routes.api import router as api_router
from utils.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application lifespan")

    create_db_and_tables()
    logger.info("Database tables synchronized")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(title="Rex API", version="0.1.0", debug=settings.DEBUG, lifespan=lifespan)

app.add_middleware(RequestTimingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def root():
    return {"app": "Rex", "status": "running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
