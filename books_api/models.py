"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BookCreate(BaseModel):
    """Request body for creating a book. The server stamps the creation time."""
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    year: str = Field(..., description="Publication year")


class BookUpdate(BookCreate):
    """Request body for replacing a book."""
    added: Optional[datetime] = Field(
        None, description="Creation timestamp; the stored value is kept when omitted"
    )


class Book(BaseModel):
    """A book as stored in the database."""
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    year: str = Field(..., description="Publication year")
    added: datetime = Field(..., description="When the book was added")

    model_config = ConfigDict(extra="ignore")


class BookResponse(Book):
    """Book response model for API."""
    id: str = Field(..., description="Database-assigned book identifier")


class MessageResponse(BaseModel):
    """Plain message response."""
    message: str = Field(..., description="Human-readable result")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
    database_backend: str = Field(..., description="Configured storage backend")
