"""
FastAPI main application for the Books API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import firebase_admin
from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from firebase_admin import credentials
from starlette.exceptions import HTTPException as StarletteHTTPException

from books_api.config import config
from books_api.database import BookDecodeError, BookRepository, create_book_repository
from books_api.models import (
    BookCreate, BookResponse, BookUpdate,
    ErrorResponse, HealthResponse, MessageResponse
)
from utilities.logger import get_logger, setup_logging

# Setup logging
logger = get_logger(__name__)

# Global book repository
book_repository: Optional[BookRepository] = None


def initialize_firebase() -> firebase_admin.App:
    """Initialise the Firebase app from the service account credentials file."""
    cred = credentials.Certificate(str(config.get_credentials_path()))
    return firebase_admin.initialize_app(cred, options=config.get_firebase_options())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting Books API", backend=config.database_backend)

    global book_repository
    firebase_app = None
    try:
        firebase_app = initialize_firebase()
        book_repository = create_book_repository(firebase_app, config)
        logger.info("Database connection established")
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        if firebase_app is not None:
            firebase_admin.delete_app(firebase_app)
        raise

    try:
        yield
    finally:
        # Shutdown
        logger.info("Shutting down Books API")
        book_repository = None
        firebase_admin.delete_app(firebase_app)


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description=config.api_description,
    version=config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    """Handle HTTP exceptions, including routing errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.detail,
            status_code=exc.status_code
        ).model_dump(),
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Handle malformed request bodies and parameters."""
    logger.warning("Invalid request", path=request.url.path, errors=str(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="Invalid request body",
            detail=str(exc.errors()),
            status_code=status.HTTP_400_BAD_REQUEST
        ).model_dump()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump()
    )


def get_repository() -> BookRepository:
    """Return the active repository or fail the request."""
    if book_repository is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return book_repository


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    try:
        db_status = "unavailable"
        if book_repository:
            health_info = await book_repository.health_check()
            db_status = health_info.get("status", "unknown")

        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=config.api_version,
            database_status=db_status,
            database_backend=config.database_backend
        )
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return HealthResponse(
            status="unhealthy",
            timestamp=datetime.now(timezone.utc),
            version=config.api_version,
            database_status="unhealthy",
            database_backend=config.database_backend
        )


# Books endpoints
@app.get("/api/books", response_model=List[BookResponse], tags=["Books"])
async def get_books():
    """List every stored book."""
    repository = get_repository()
    try:
        return await repository.list_books()
    except BookDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to parse document data: {e}"
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to iterate document: {e}"
        )


@app.get("/api/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def get_book(book_id: str):
    """
    Get a single book by ID.

    - **book_id**: Database-assigned book identifier
    """
    repository = get_repository()
    try:
        book = await repository.get_book(book_id)
    except BookDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to parse document data: {e}"
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve book: {e}"
        )

    if book is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found"
        )
    return book


@app.post(
    "/api/books",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Books"]
)
async def create_book(book: BookCreate):
    """
    Create a book. The creation timestamp is set by the server.

    - **title**, **author**, **year**: Book fields
    """
    repository = get_repository()
    try:
        return await repository.create_book(book)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create book: {e}"
        )


@app.put("/api/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def update_book(book_id: str, book: BookUpdate):
    """
    Replace the book stored under an ID, creating it if absent.

    - **book_id**: Book identifier
    - **added**: Optional; the stored creation timestamp is kept when omitted
    """
    repository = get_repository()
    try:
        return await repository.update_book(book_id, book)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update book: {e}"
        )


@app.delete("/api/books/{book_id}", response_model=MessageResponse, tags=["Books"])
async def delete_book(book_id: str):
    """Delete a book. Deleting an unknown ID is not an error."""
    repository = get_repository()
    try:
        await repository.delete_book(book_id)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete book: {e}"
        )
    return MessageResponse(message="Book deleted successfully")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "books_api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
