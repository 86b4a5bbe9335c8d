"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import places, trips
from services.google_maps import get_default_client

# Create app
app = FastAPI(
    title="Trip Itinerary API",
    description="API for planning day-by-day travel itineraries",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(trips.router, prefix="/trips", tags=["trips"])
app.include_router(places.router, prefix="/places", tags=["places"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Trip Itinerary API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "places_provider": get_default_client().available}
