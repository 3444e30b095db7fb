import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from receipt_scanner.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Scan paper receipts into year / month / category buckets",
    version="0.1.0",
    debug=settings.DEBUG
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    return {
        "message": f"{settings.APP_NAME} API",
        "version": "0.1.0",
        "status": "running"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# Import routers
from receipt_scanner.routers import scan, receipts, buckets, export

# Include routers
app.include_router(scan.router)
app.include_router(receipts.router)
app.include_router(buckets.router)
app.include_router(export.router)
