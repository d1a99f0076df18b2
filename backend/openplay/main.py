import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from openplay.database import engine, init_db
from openplay.routes import directory, session
from openplay.services.session_host import SessionHost

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Open Play Court Rotation API")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Live session commands + standings
app.include_router(session.router, prefix="/api", tags=["session"])

# Location history, player directory, announcer, sync queue
app.include_router(directory.router, prefix="/api", tags=["directory"])


@app.on_event("startup")
def on_startup():
    init_db()
    if getattr(app.state, "host", None) is None:
        app.state.host = SessionHost(engine)
    app.state.host.startup()
    logger.info(f"Serving session {app.state.host.state.session.id}")


@app.on_event("shutdown")
def on_shutdown():
    host = getattr(app.state, "host", None)
    if host is not None:
        host.close()


@app.get("/health")
def health():
    return {"status": "ok"}
