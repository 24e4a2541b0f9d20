"""Display helpers: category icons and rupee formatting."""

from expense_tracker.presentation.categories import (
    CATEGORY_ICONS,
    CategoryIcon,
    get_category_icon,
    get_default_categories,
)
from expense_tracker.presentation.currency import (
    format_amount,
    format_currency,
    parse_currency,
)

__all__ = [
    "CATEGORY_ICONS",
    "CategoryIcon",
    "format_amount",
    "format_currency",
    "get_category_icon",
    "get_default_categories",
    "parse_currency",
]
