import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from decision_app.core import config
from decision_app.services.completion_client import CompletionClient
from decision_app.services.decision_engine import DecisionTreeEngine
from decision_app.services.tree_store import DecisionTreeStore
from decision_app.services.profile_store import ProfileStore
from decision_app.services.advisor_service import AdvisorService
from decision_app.services.attachment_service import AttachmentService
from decision_app.routers import decisions, advisors

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Decision service using model {completion_client.model} at {completion_client.endpoint}")
    yield
    await completion_client.aclose()

app = FastAPI(lifespan=lifespan)

# Session Middleware
# Identity ("user") is placed in the session by the upstream login layer
https_only = config.ORIGIN.startswith("https")
app.add_middleware(
    SessionMiddleware,
    secret_key=config.SESSION_SECRET,
    session_cookie="decision_session",
    same_site="lax",
    https_only=https_only
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if https_only:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response

app.add_middleware(SecurityHeadersMiddleware)

UPLOAD_DIR = config.UPLOAD_DIR
os.makedirs(UPLOAD_DIR, exist_ok=True)

# Services
completion_client = CompletionClient()
profile_store = ProfileStore()
engine = DecisionTreeEngine(completion_client)

# App State
app.state.completion_client = completion_client
app.state.engine = engine
app.state.tree_store = DecisionTreeStore()
app.state.profile_store = profile_store
app.state.advisor_service = AdvisorService(completion_client, profile_store)
app.state.attachment_service = AttachmentService()
app.state.UPLOAD_DIR = UPLOAD_DIR

# Include Routers
app.include_router(decisions.router, prefix="/api/decisions")
app.include_router(advisors.router, prefix="/api/advisors")


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    import argparse

    parser = argparse.ArgumentParser(description="Run the decision assistant service")
    parser.add_argument("--port", type=int, default=8000, help="Port to run the service on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port)
