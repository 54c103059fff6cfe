"""API routes package"""

from . import health, plans, meals, shopping, recipes

__all__ = ["health", "plans", "meals", "shopping", "recipes"]
