"""
Base repository interface for data access layer.
This follows the Repository pattern to separate business logic from data access.
"""

from typing import Generic, TypeVar, Optional, Type
from uuid import UUID
from sqlalchemy.orm import Session
from abc import ABC, abstractmethod

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType], ABC):
    """
    Base repository for session-bound data access.

    Writes take a ``commit`` flag so services can stage several changes
    (a meal and its plan's version bump) and commit them together.
    """

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    @abstractmethod
    def get_by_id(self, entity_id: UUID) -> Optional[ModelType]:
        """Get entity by its primary key."""

    def create(self, entity: ModelType, commit: bool = True) -> ModelType:
        """Add new entity; flushed only when commit is False"""
        self.db.add(entity)
        if commit:
            self.db.commit()
            self.db.refresh(entity)
        else:
            self.db.flush()
        return entity

    def delete(self, entity: ModelType, commit: bool = True) -> None:
        self.db.delete(entity)
        if commit:
            self.db.commit()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
