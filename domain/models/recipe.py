"""
Recipe model - durable copy of recipes fetched from the external catalog.
"""

from sqlalchemy import Column, Text, Integer, JSON, TIMESTAMP
from sqlalchemy.sql import func

from domain.models.database import Base


class Recipe(Base):
    """
    System of record for a recipe once it has been fetched at least once.

    Keyed by the catalog's external id, which never changes after the first
    insert; re-fetches refresh content and fetched_at in place.
    """

    __tablename__ = "recipes"

    external_id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False, index=True)
    description = Column(Text)
    image_url = Column(Text)
    prep_minutes = Column(Integer)
    cook_minutes = Column(Integer)
    servings = Column(Integer)
    ingredients = Column(JSON, nullable=False, default=list)
    instructions = Column(JSON, nullable=False, default=list)
    nutrition = Column(JSON)
    fetched_at = Column(TIMESTAMP(timezone=True), nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<Recipe(external_id='{self.external_id}', name='{self.name}')>"
