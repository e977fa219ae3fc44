"""
FastAPI web application for AudioMuse instant mixes
Provides the instant mix endpoint and an on-demand fingerprint playlist sweep.
"""

import logging
from contextlib import asynccontextmanager

from pydantic import BaseModel
from config.settings import Settings
from fastapi import FastAPI, HTTPException, Query
from typing import Optional, List
from fastapi.middleware.cors import CORSMiddleware

from audiomuse_mix.api.base_client import APIError
from audiomuse_mix.services.engine import MixEngine

# Initialize settings
settings = Settings()
logging.basicConfig(level=settings.log_level, format=settings.log_format)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # One engine per process so sweep and owner locks are shared by all requests
    async with MixEngine(settings) as engine:
        app.state.engine = engine
        yield

app = FastAPI(
    title="AudioMuse Mix API",
    description="Instant mixes and fingerprint playlists backed by the AudioMuse similarity service",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

class FingerprintSyncRequest(BaseModel):
    users: Optional[List[str]] = None

@app.get("/")
async def root():
    return {"message": "AudioMuse Mix API", "version": "1.0.0"}

@app.get("/health")
async def health_check():
    services = await app.state.engine.health()
    healthy = all(service.get("ok") for service in services.values())
    return {"status": "healthy" if healthy else "degraded", "services": services}

@app.get("/Items/{item_id}/InstantMix")
async def instant_mix(
    item_id: str,
    userId: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1)
):
    """Instant mix for a track, album, artist or playlist, in media server query-result shape."""
    try:
        result = await app.state.engine.instant_mix(item_id, user_id=userId, limit=limit)
    except APIError as e:
        raise HTTPException(status_code=502, detail=str(e))

    if not result.root_found:
        return {"Items": [], "TotalRecordCount": 0}
    return result.to_dict()

@app.post("/sync/fingerprint")
async def sync_fingerprint(request: Optional[FingerprintSyncRequest] = None):
    """Run one fingerprint playlist sweep now."""
    users = request.users if request else None
    try:
        result = await app.state.engine.sync_fingerprints(users=users)
    except APIError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return result.to_dict()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
