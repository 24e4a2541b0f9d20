"""
Category display lookup.

Maps a category name to the icon and colour tokens the web client
renders. The same table seeds the categories store on first start.
"""

from typing import NamedTuple


class CategoryIcon(NamedTuple):
    name: str
    icon: str
    color: str
    bg_color: str


CATEGORY_ICONS: dict[str, CategoryIcon] = {
    "Food & Dining": CategoryIcon("Food & Dining", "fas fa-utensils", "text-red-600", "bg-red-100"),
    "Transport": CategoryIcon("Transport", "fas fa-car", "text-blue-600", "bg-blue-100"),
    "Groceries": CategoryIcon("Groceries", "fas fa-shopping-cart", "text-green-600", "bg-green-100"),
    "Entertainment": CategoryIcon("Entertainment", "fas fa-film", "text-purple-600", "bg-purple-100"),
    "Health": CategoryIcon("Health", "fas fa-heartbeat", "text-pink-600", "bg-pink-100"),
    "Shopping": CategoryIcon("Shopping", "fas fa-shopping-bag", "text-orange-600", "bg-orange-100"),
    "Petrol": CategoryIcon("Petrol", "fas fa-gas-pump", "text-yellow-600", "bg-yellow-100"),
    "Mobile Recharge": CategoryIcon("Mobile Recharge", "fas fa-mobile-alt", "text-indigo-600", "bg-indigo-100"),
}

DEFAULT_ICON = "fas fa-receipt"
DEFAULT_COLOR = "text-gray-600"
DEFAULT_BG_COLOR = "bg-gray-100"


def get_category_icon(name: str) -> CategoryIcon:
    """Icon and colours for a category; unknown names get the neutral pair."""
    icon = CATEGORY_ICONS.get(name)
    if icon is None:
        return CategoryIcon(name, DEFAULT_ICON, DEFAULT_COLOR, DEFAULT_BG_COLOR)
    return icon


def get_default_categories() -> list[str]:
    return list(CATEGORY_ICONS)
