from fastapi import FastAPI

from lead_proxy import config
from lead_proxy.config import APP_VERSION, logger

from .routers import router

# Initialize FastAPI application
app = FastAPI(
    title="Lead Proxy",
    description="Gatekeeper between a public web form and an automation webhook",
    version=APP_VERSION,
)

# CORS is resolved per request by the submission router against the
# configured allow-list, so no CORSMiddleware is installed here.
app.include_router(router)


logger.info("Lead Proxy initialized successfully")


def run() -> None:
    """Serve the app with uvicorn (``lead-proxy`` console script)."""
    import uvicorn

    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )
