from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smashboard.config import cors_origins
from smashboard.routes import courts, tournaments

app = FastAPI(title="SmashBoard Scheduling API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])

# Continuous play (round robin only)
app.include_router(courts.router, prefix="/api", tags=["courts"])


@app.get("/api/health")
def health_check():
    """Liveness probe"""
    return {"app_name": "SmashBoard Scheduling API", "status": "healthy"}
