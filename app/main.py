"""
Main application entry point.
"""

import logging

from fastapi import FastAPI

from app.api.v1.books_endpoints import router as books_router
from app.api.v1.dependencies import get_settings
from app.api.v1.exchange_endpoints import router as exchange_router
from app.api.v1.rating_endpoints import router as rating_router

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="BookSwap API",
    description="Search, recommendations and peer-to-peer exchanges for a book-swap marketplace.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Include API routers
app.include_router(books_router, prefix="/api/v1", tags=["books"])
app.include_router(exchange_router, prefix="/api/v1", tags=["exchanges"])
app.include_router(rating_router, prefix="/api/v1", tags=["ratings"])


@app.get("/")
def read_root():
    """Root endpoint."""
    return {
        "message": "Welcome to the BookSwap API",
        "docs": "/docs",
        "health": "/api/v1/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
