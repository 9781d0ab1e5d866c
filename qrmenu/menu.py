"""
Static menu catalog.

The catalog is configuration supplied from outside the ordering core. The
default list is what the venue ships with; a JSON file with the same shape
can replace it (see load_menu).
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from qrmenu.models import ItemId, MenuItem

DEFAULT_MENU: List[MenuItem] = [
    MenuItem(
        id=1,
        name="Margherita Pizza",
        description="Fresh mozzarella, tomato sauce, basil",
        price=1499,
        category="Pizza",
        image="🍕",
    ),
    MenuItem(
        id=2,
        name="Caesar Salad",
        description="Romaine lettuce, parmesan, croutons",
        price=999,
        category="Salads",
        image="🥗",
    ),
    MenuItem(
        id=3,
        name="Pasta Carbonara",
        description="Eggs, cheese, pancetta, black pepper",
        price=1299,
        category="Pasta",
        image="🍝",
    ),
    MenuItem(
        id=4,
        name="Tiramisu",
        description="Coffee-flavored Italian dessert",
        price=699,
        category="Desserts",
        image="🍰",
    ),
    MenuItem(
        id=5,
        name="Bhel Puri",
        description="Crispy puffed rice with tangy tamarind chutney, onions, and sev",
        price=149,
        category="Street Food",
        image="/bhelpuri.jpeg",
    ),
]


def load_menu(path: Optional[Path] = None) -> List[MenuItem]:
    """Load a menu from a JSON list of items, or return the default menu."""
    if path is None:
        return list(DEFAULT_MENU)
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"menu file {path} must contain a JSON list")
    return [MenuItem.model_validate(entry) for entry in data]


def index_by_id(items: Iterable[MenuItem]) -> Dict[ItemId, MenuItem]:
    return {item.id: item for item in items}


def group_by_category(items: Iterable[MenuItem]) -> Dict[str, List[MenuItem]]:
    """Categories in first-seen order, items in catalog order."""
    grouped: Dict[str, List[MenuItem]] = {}
    for item in items:
        grouped.setdefault(item.category, []).append(item)
    return grouped
