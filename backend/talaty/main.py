"""
Talaty eKYC - FastAPI Application

Main entry point for the Talaty eKYC backend.

Architecture:
- Documents / Forms / Verification flags → VerificationWorkflow
- VerificationWorkflow → ScoreRecalculationDispatcher → ScoreEngine
- ScoreEngine → ScoreDB (cached projection) → Recommendations
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import LOG_LEVEL
from .database import init_db
from .routers import (
    auth_router,
    documents_router,
    forms_router,
    scores_router,
    users_router,
    admin_router,
    scheduler_router,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Talaty eKYC",
    description="""
    Talaty eKYC - Business Scoring Backend

    Small businesses register, upload identity and business documents and
    fill in structured forms. Reviewers verify the documents. Every change
    recomputes an explainable 0-100 business score.

    ## Score
    - **Registration**: 35 points for creating an account
    - **Documents**: 8 points per approved document, up to 40
    - **Forms**: 10 points per fully completed form, up to 40
    - **Verification**: email 5, phone 5, KYC approved 10, up to 20

    Risk level: 80+ low, 60-79 medium, below 60 high.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(documents_router)
app.include_router(forms_router)
app.include_router(scores_router)
app.include_router(users_router)
app.include_router(admin_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Talaty eKYC",
        "version": "1.0.0",
        "description": "eKYC and business scoring backend",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m talaty.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
