"""Memory and event repositories."""

from screenlabel.repositories.base import EventRepository, MemoryRepository
from screenlabel.repositories.file_repository import FileRepository, InMemoryRepository

__all__ = ["EventRepository", "FileRepository", "InMemoryRepository", "MemoryRepository"]
