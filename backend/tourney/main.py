import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tourney.database import init_db
from tourney.routes import announcements, games, playoffs, pools, schedule, standings, teams, tournaments

APP_NAME = "Youth Cup Tournament API"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME)

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

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(teams.router, prefix="/api", tags=["teams"])
app.include_router(pools.router, prefix="/api", tags=["pools"])
app.include_router(games.router, prefix="/api", tags=["games"])
app.include_router(standings.router, prefix="/api", tags=["standings"])

# Playoff bracket (qualification -> quarterfinals -> advancement)
app.include_router(playoffs.router, prefix="/api", tags=["playoffs"])

# Read-only scheduling views and dry-run validation
app.include_router(schedule.router, prefix="/api", tags=["schedule"])

# Organiser announcements for the display screens
app.include_router(announcements.router, prefix="/api", tags=["announcements"])


@app.on_event("startup")
def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables
    logger.info("%s started with %d routes", APP_NAME, len(app.routes))


@app.get("/api/health")
def health_check():
    return {"app_name": APP_NAME, "status": "healthy"}
