"""
Built-in expense categories and their display colors.
These ship with every new registry and cannot be deleted.
"""

# Sentinel category absorbing orphaned splits; never deletable or renamable.
OTHER_CATEGORY = "Other"

# Fallback color for names missing from the registry.
FALLBACK_COLOR = "#9CA3AF"

# Built-in expense categories, in their shipped order
DEFAULT_CATEGORIES = [
    "Food",
    "Transport",
    "Shopping",
    "Utilities",
    "Entertainment",
    "Health",
    OTHER_CATEGORY,
]

DEFAULT_CATEGORY_COLORS = {
    "Food": "#34D399",
    "Transport": "#60A5FA",
    "Shopping": "#F472B6",
    "Utilities": "#FBBF24",
    "Entertainment": "#A78BFA",
    "Health": "#F87171",
    OTHER_CATEGORY: FALLBACK_COLOR,
}

# Filter value meaning "every category" in list views
ALL_CATEGORIES_FILTER = "all"


def default_category_color(name: str) -> str:
    """Return the shipped color for a built-in category name."""
    return DEFAULT_CATEGORY_COLORS.get(name, FALLBACK_COLOR)


def is_sentinel_category(name: str) -> bool:
    """Check if a name refers to the sentinel category (case-insensitive)."""
    return name.strip().lower() == OTHER_CATEGORY.lower()
