#!/usr/bin/env python3
"""
FastAPI application for the Pitch Pipeline
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Import routers
from pitch_runs import router as pitch_runs_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

# Initialize FastAPI app
app = FastAPI(title="Pitch Pipeline API")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(pitch_runs_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Pitch Pipeline API", "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
