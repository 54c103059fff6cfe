"""
Meal planning and shopping list models.
"""

from sqlalchemy import (
    Column,
    Text,
    Integer,
    TIMESTAMP,
    ForeignKey,
    Numeric,
    Date,
    Boolean,
    Uuid,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from domain.models.database import Base


class MealPlan(Base):
    """A user's plan for an inclusive date range"""

    __tablename__ = "meal_plans"

    plan_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    # Bumped whenever the meal set changes; shopping lists remember the
    # version they were built from.
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    meals = relationship(
        "Meal", back_populates="plan", cascade="all, delete-orphan"
    )
    shopping_list = relationship(
        "ShoppingList",
        back_populates="plan",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "start_date", "end_date", name="uq_meal_plan_range"),
        CheckConstraint("end_date >= start_date", name="ck_meal_plan_range"),
    )

    def covers(self, day) -> bool:
        return self.start_date <= day <= self.end_date

    def __repr__(self):
        return f"<MealPlan(id={self.plan_id}, {self.start_date}..{self.end_date}, v{self.version})>"


class Meal(Base):
    """Individual meal in a meal plan"""

    __tablename__ = "meals"

    meal_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("meal_plans.plan_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    recipe_id = Column(Text, nullable=False, index=True)
    meal_type = Column(Text, nullable=False)  # breakfast, lunch, dinner
    date = Column(Date, nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    plan = relationship("MealPlan", back_populates="meals")

    __table_args__ = (
        UniqueConstraint(
            "plan_id", "date", "meal_type", "position", name="uq_meal_slot"
        ),
        CheckConstraint("position >= 0", name="ck_meal_position"),
    )


class ShoppingList(Base):
    """Shopping list derived from a meal plan; one per plan"""

    __tablename__ = "shopping_lists"

    list_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("meal_plans.plan_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    source_version = Column(Integer)  # NULL until first generation
    has_stale_recipes = Column(Boolean, nullable=False, default=False)
    generated_at = Column(TIMESTAMP(timezone=True))

    plan = relationship("MealPlan", back_populates="shopping_list")
    items = relationship(
        "ShoppingListItem",
        back_populates="list",
        cascade="all, delete-orphan",
        order_by="ShoppingListItem.created_at",
    )


class ShoppingListItem(Base):
    """Individual item in a shopping list"""

    __tablename__ = "shopping_list_items"

    item_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    list_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("shopping_lists.list_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(Text, nullable=False)
    quantity = Column(Numeric(12, 3))
    unit = Column(Text)
    category = Column(Text, nullable=False, default="other")
    is_checked = Column(Boolean, nullable=False, default=False)
    is_manual = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    list = relationship("ShoppingList", back_populates="items")
