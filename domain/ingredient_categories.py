"""
Ingredient name normalization and category lookup.

Names are matched exactly first, then in singular form, then by the longest
keyword contained in the name ("chicken breast" -> "chicken"). Anything
unmatched lands in OTHER.
"""

import re
from typing import Optional

from domain.enums import IngredientCategory

P = IngredientCategory

INGREDIENT_CATEGORIES = {
    # Produce
    "apple": P.PRODUCE, "avocado": P.PRODUCE, "banana": P.PRODUCE,
    "basil": P.PRODUCE, "bell pepper": P.PRODUCE, "broccoli": P.PRODUCE,
    "cabbage": P.PRODUCE, "carrot": P.PRODUCE, "celery": P.PRODUCE,
    "cilantro": P.PRODUCE, "cucumber": P.PRODUCE, "garlic": P.PRODUCE,
    "ginger": P.PRODUCE, "green onion": P.PRODUCE, "kale": P.PRODUCE,
    "lemon": P.PRODUCE, "lettuce": P.PRODUCE, "lime": P.PRODUCE,
    "mushroom": P.PRODUCE, "onion": P.PRODUCE, "parsley": P.PRODUCE,
    "potato": P.PRODUCE, "romaine": P.PRODUCE, "scallion": P.PRODUCE,
    "spinach": P.PRODUCE, "sweet potato": P.PRODUCE, "tomato": P.PRODUCE,
    "zucchini": P.PRODUCE,
    # Dairy
    "butter": P.DAIRY, "cheddar": P.DAIRY, "cheese": P.DAIRY,
    "cream": P.DAIRY, "cream cheese": P.DAIRY, "egg": P.DAIRY,
    "feta": P.DAIRY, "milk": P.DAIRY, "mozzarella": P.DAIRY,
    "parmesan": P.DAIRY, "sour cream": P.DAIRY, "yogurt": P.DAIRY,
    # Meat
    "bacon": P.MEAT, "beef": P.MEAT, "chicken": P.MEAT,
    "ground beef": P.MEAT, "ham": P.MEAT, "lamb": P.MEAT,
    "pork": P.MEAT, "sausage": P.MEAT, "steak": P.MEAT, "turkey": P.MEAT,
    # Seafood
    "cod": P.SEAFOOD, "crab": P.SEAFOOD, "fish": P.SEAFOOD,
    "salmon": P.SEAFOOD, "shrimp": P.SEAFOOD, "tilapia": P.SEAFOOD,
    "tuna": P.SEAFOOD,
    # Bakery
    "bagel": P.BAKERY, "baguette": P.BAKERY, "bread": P.BAKERY,
    "bun": P.BAKERY, "croissant": P.BAKERY, "crouton": P.BAKERY,
    "pita": P.BAKERY, "tortilla": P.BAKERY,
    # Pantry
    "baking powder": P.PANTRY, "baking soda": P.PANTRY, "beans": P.PANTRY,
    "beef broth": P.PANTRY, "black pepper": P.PANTRY, "broth": P.PANTRY,
    "caesar dressing": P.PANTRY, "chicken broth": P.PANTRY, "chicken stock": P.PANTRY,
    "flour": P.PANTRY, "honey": P.PANTRY, "lentil": P.PANTRY,
    "noodle": P.PANTRY, "oat": P.PANTRY, "oil": P.PANTRY,
    "olive oil": P.PANTRY, "pasta": P.PANTRY, "pepper": P.PANTRY,
    "rice": P.PANTRY, "salt": P.PANTRY, "soy sauce": P.PANTRY,
    "spaghetti": P.PANTRY, "stock": P.PANTRY, "sugar": P.PANTRY,
    "vinegar": P.PANTRY,
    # Frozen
    "frozen peas": P.FROZEN, "frozen vegetables": P.FROZEN,
    "ice cream": P.FROZEN, "peas": P.FROZEN,
}

# Canonical spelling for common unit aliases. Different units are never
# converted into each other; this only merges spellings of the same unit.
UNIT_ALIASES = {
    "cups": "cup", "c": "cup",
    "tablespoon": "tbsp", "tablespoons": "tbsp", "tbs": "tbsp", "tbsps": "tbsp",
    "teaspoon": "tsp", "teaspoons": "tsp", "tsps": "tsp",
    "gram": "g", "grams": "g",
    "kilogram": "kg", "kilograms": "kg",
    "milliliter": "ml", "milliliters": "ml",
    "liter": "l", "liters": "l",
    "ounce": "oz", "ounces": "oz",
    "pound": "lb", "pounds": "lb", "lbs": "lb",
    "clove": "clove", "cloves": "clove",
    "slice": "slice", "slices": "slice",
    "piece": "piece", "pieces": "piece",
    "can": "can", "cans": "can",
}

_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Lowercase, trim and collapse inner whitespace."""
    return _WHITESPACE.sub(" ", (name or "").strip().lower())


def normalize_unit(unit: Optional[str]) -> Optional[str]:
    if unit is None:
        return None
    cleaned = normalize_name(unit).rstrip(".")
    if not cleaned:
        return None
    return UNIT_ALIASES.get(cleaned, cleaned)


def _singular(name: str) -> str:
    if name.endswith("oes") or name.endswith("ches") or name.endswith("shes"):
        return name[:-2]
    if name.endswith("ies"):
        return name[:-3] + "y"
    if name.endswith("s") and not name.endswith("ss"):
        return name[:-1]
    return name


def categorize(name: str) -> IngredientCategory:
    """Map an ingredient name to its shopping category."""
    normalized = normalize_name(name)
    if normalized in INGREDIENT_CATEGORIES:
        return INGREDIENT_CATEGORIES[normalized]

    singular = _singular(normalized)
    if singular in INGREDIENT_CATEGORIES:
        return INGREDIENT_CATEGORIES[singular]

    words = set(normalized.split()) | {_singular(w) for w in normalized.split()}
    best: Optional[str] = None
    for keyword in INGREDIENT_CATEGORIES:
        if " " in keyword:
            matched = keyword in normalized or keyword in singular
        else:
            matched = keyword in words
        if matched and (best is None or len(keyword) > len(best)):
            best = keyword

    return INGREDIENT_CATEGORIES[best] if best else IngredientCategory.OTHER
