"""
Database service layer for the FastAPI application.

Books are stored either in a Firestore collection or under a Realtime
Database node. Both repositories expose the same async interface so the
routes never see which backend is in use.
"""

import abc
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from firebase_admin import App, db, firestore_async
from pydantic import ValidationError

from books_api.config import APIConfig
from books_api.models import Book, BookCreate, BookResponse, BookUpdate
from utilities.logger import get_logger

logger = get_logger(__name__)


class BookDecodeError(ValueError):
    """A stored record could not be parsed into a book."""

    def __init__(self, book_id: str, error: ValidationError):
        self.book_id = book_id
        super().__init__(f"book {book_id}: {error}")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_book_response(book_id: str, data: Dict[str, Any]) -> BookResponse:
    """
    Build a response model from a stored record.

    Raises:
        BookDecodeError: If the record does not look like a book
    """
    try:
        return BookResponse(id=book_id, **Book.model_validate(data).model_dump())
    except ValidationError as e:
        raise BookDecodeError(book_id, e) from e


class BookRepository(abc.ABC):
    """Storage operations the API needs for book records."""

    backend_name: str = ""

    @abc.abstractmethod
    async def list_books(self) -> List[BookResponse]:
        """Return every stored book with its identifier."""

    @abc.abstractmethod
    async def get_book(self, book_id: str) -> Optional[BookResponse]:
        """Return a single book, or None if the identifier is unknown."""

    @abc.abstractmethod
    async def create_book(self, book: BookCreate) -> BookResponse:
        """Store a new book under a database-assigned identifier."""

    @abc.abstractmethod
    async def update_book(self, book_id: str, book: BookUpdate) -> BookResponse:
        """Replace (or create) the book stored under ``book_id``."""

    @abc.abstractmethod
    async def delete_book(self, book_id: str) -> None:
        """Remove the book stored under ``book_id``. Unknown ids are ignored."""

    @abc.abstractmethod
    async def health_check(self) -> Dict:
        """Report whether the backing database is reachable."""


class FirestoreBookRepository(BookRepository):
    """Book repository backed by a Firestore collection."""

    backend_name = "firestore"

    def __init__(self, client, collection_name: str = "books"):
        self.client = client
        self.collection_name = collection_name
        self.collection = client.collection(collection_name)

    async def list_books(self) -> List[BookResponse]:
        books = []
        try:
            async for snapshot in self.collection.stream():
                books.append(to_book_response(snapshot.id, snapshot.to_dict() or {}))
        except BookDecodeError as e:
            logger.error("Failed to parse book document", book_id=e.book_id, error=str(e))
            raise
        except Exception as e:
            logger.error("Failed to iterate books", collection=self.collection_name, error=str(e))
            raise

        logger.debug("Listed books", count=len(books))
        return books

    async def get_book(self, book_id: str) -> Optional[BookResponse]:
        try:
            snapshot = await self.collection.document(book_id).get()
        except Exception as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise

        if not snapshot.exists:
            return None
        return to_book_response(snapshot.id, snapshot.to_dict() or {})

    async def create_book(self, book: BookCreate) -> BookResponse:
        record = Book(**book.model_dump(), added=utc_now())
        try:
            _, doc_ref = await self.collection.add(record.model_dump())
        except Exception as e:
            logger.error("Failed to create book", title=book.title, error=str(e))
            raise

        logger.info("Book created", book_id=doc_ref.id, title=book.title)
        return BookResponse(id=doc_ref.id, **record.model_dump())

    async def update_book(self, book_id: str, book: BookUpdate) -> BookResponse:
        doc_ref = self.collection.document(book_id)
        try:
            added = book.added
            if added is None:
                snapshot = await doc_ref.get()
                stored = snapshot.to_dict() if snapshot.exists else None
                added = (stored or {}).get("added") or utc_now()

            record = Book(title=book.title, author=book.author, year=book.year, added=added)
            await doc_ref.set(record.model_dump())
        except Exception as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise

        logger.info("Book updated", book_id=book_id)
        return BookResponse(id=book_id, **record.model_dump())

    async def delete_book(self, book_id: str) -> None:
        try:
            await self.collection.document(book_id).delete()
        except Exception as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise

        logger.info("Book deleted", book_id=book_id)

    async def health_check(self) -> Dict:
        try:
            await self.collection.limit(1).get()
            return {
                "status": "healthy",
                "backend": self.backend_name,
                "books_collection": "accessible",
            }
        except Exception as e:
            logger.error("Database health check failed", backend=self.backend_name, error=str(e))
            return {
                "status": "unhealthy",
                "backend": self.backend_name,
                "error": str(e),
            }


class RealtimeBookRepository(BookRepository):
    """
    Book repository backed by a Realtime Database node.

    The Admin SDK's Realtime Database client is blocking, so every call is
    pushed to a worker thread. Timestamps are stored as ISO-8601 strings
    since the database only holds JSON values.
    """

    backend_name = "realtime"

    def __init__(self, reference):
        self.reference = reference

    @staticmethod
    def _to_record(book: Book) -> Dict[str, Any]:
        return book.model_dump(mode="json")

    async def list_books(self) -> List[BookResponse]:
        try:
            data = await asyncio.to_thread(self.reference.get)
        except Exception as e:
            logger.error("Failed to iterate books", path=self.reference.path, error=str(e))
            raise

        # Children whose keys look like array indices come back as a list
        if isinstance(data, list):
            entries = [(str(key), value) for key, value in enumerate(data) if value is not None]
        else:
            entries = sorted((data or {}).items())

        books = []
        for book_id, value in entries:
            try:
                books.append(to_book_response(book_id, value if isinstance(value, dict) else {}))
            except BookDecodeError as e:
                logger.error("Failed to parse book record", book_id=book_id, error=str(e))
                raise

        logger.debug("Listed books", count=len(books))
        return books

    async def get_book(self, book_id: str) -> Optional[BookResponse]:
        try:
            data = await asyncio.to_thread(self.reference.child(book_id).get)
        except Exception as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise

        if data is None:
            return None
        return to_book_response(book_id, data if isinstance(data, dict) else {})

    async def create_book(self, book: BookCreate) -> BookResponse:
        record = Book(**book.model_dump(), added=utc_now())
        try:
            new_ref = await asyncio.to_thread(self.reference.push, self._to_record(record))
        except Exception as e:
            logger.error("Failed to create book", title=book.title, error=str(e))
            raise

        logger.info("Book created", book_id=new_ref.key, title=book.title)
        return BookResponse(id=new_ref.key, **record.model_dump())

    async def update_book(self, book_id: str, book: BookUpdate) -> BookResponse:
        child = self.reference.child(book_id)
        try:
            added = book.added
            if added is None:
                stored = await asyncio.to_thread(child.get)
                stored_added = stored.get("added") if isinstance(stored, dict) else None
                added = stored_added or utc_now()

            record = Book(title=book.title, author=book.author, year=book.year, added=added)
            await asyncio.to_thread(child.set, self._to_record(record))
        except Exception as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise

        logger.info("Book updated", book_id=book_id)
        return BookResponse(id=book_id, **record.model_dump())

    async def delete_book(self, book_id: str) -> None:
        try:
            await asyncio.to_thread(self.reference.child(book_id).delete)
        except Exception as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise

        logger.info("Book deleted", book_id=book_id)

    async def health_check(self) -> Dict:
        try:
            await asyncio.to_thread(self.reference.get, shallow=True)
            return {
                "status": "healthy",
                "backend": self.backend_name,
                "books_collection": "accessible",
            }
        except Exception as e:
            logger.error("Database health check failed", backend=self.backend_name, error=str(e))
            return {
                "status": "unhealthy",
                "backend": self.backend_name,
                "error": str(e),
            }


def create_book_repository(app: App, settings: APIConfig) -> BookRepository:
    """
    Build the repository for the configured backend.

    Args:
        app: Initialised Firebase app
        settings: API configuration

    Returns:
        BookRepository bound to the books collection
    """
    if settings.database_backend == "realtime":
        reference = db.reference(settings.books_collection, app=app)
        logger.info("Using Realtime Database backend", path=reference.path)
        return RealtimeBookRepository(reference)

    client = firestore_async.client(app)
    logger.info("Using Firestore backend", collection=settings.books_collection)
    return FirestoreBookRepository(client, settings.books_collection)
