"""
Статическая конфигурация категорий расходов.

Порядок ключей в CATEGORY_CONFIG задает порядок проверки при классификации:
при совпадении ключевых слов нескольких категорий побеждает объявленная раньше.
"""
from dataclasses import dataclass

from ampp.domain.enums import ExpenseCategory

@dataclass(frozen=True)
class CategoryConfig:
    name: str
    icon: str
    color: str
    keywords: tuple[str, ...]

CATEGORY_CONFIG: dict[ExpenseCategory, CategoryConfig] = {
    ExpenseCategory.FOOD: CategoryConfig(
        name="Food",
        icon="🍕",
        color="#F59E0B",
        keywords=(
            "zomato", "swiggy", "mcdonald", "kfc", "pizza", "domino", "cafe",
            "starbucks", "subway", "burger", "canteen", "food", "restaurant",
            "mess", "lunch", "dinner", "breakfast",
        ),
    ),
    ExpenseCategory.TRANSPORT: CategoryConfig(
        name="Transport",
        icon="🚕",
        color="#0D94FB",
        keywords=(
            "uber", "ola", "auto", "bus", "metro", "train", "cab", "taxi",
            "rickshaw", "bike", "railway", "transport", "travel", "commute",
        ),
    ),
    ExpenseCategory.HOSTEL: CategoryConfig(
        name="Hostel",
        icon="🏠",
        color="#7C3AED",
        keywords=(
            "hostel", "mess", "electricity", "wifi", "laundry", "room", "rent",
            "maintenance", "water", "cleaning",
        ),
    ),
    ExpenseCategory.BOOKS: CategoryConfig(
        name="Books",
        icon="📚",
        color="#10B981",
        keywords=(
            "amazon", "flipkart", "bookstore", "xerox", "library", "stationery",
            "course", "book", "study", "material", "notes", "printing",
        ),
    ),
    ExpenseCategory.ENTERTAINMENT: CategoryConfig(
        name="Entertainment",
        icon="🎬",
        color="#EC4899",
        keywords=(
            "pvr", "bookmyshow", "netflix", "spotify", "gaming", "mall",
            "bowling", "arcade", "concert", "event", "movie", "cinema", "party",
        ),
    ),
    ExpenseCategory.EMERGENCY: CategoryConfig(
        name="Emergency",
        icon="🚨",
        color="#EF4444",
        keywords=(
            "medical", "doctor", "hospital", "pharmacy", "emergency", "urgent",
            "repair", "health", "medicine", "checkup",
        ),
    ),
    ExpenseCategory.UNCATEGORIZED: CategoryConfig(
        name="Uncategorized",
        icon="❔",
        color="#6B7280",
        keywords=(),
    ),
}

CLASSIFICATION_ORDER: tuple[ExpenseCategory, ...] = (
    ExpenseCategory.FOOD,
    ExpenseCategory.TRANSPORT,
    ExpenseCategory.HOSTEL,
    ExpenseCategory.BOOKS,
    ExpenseCategory.ENTERTAINMENT,
    ExpenseCategory.EMERGENCY,
)

FALLBACK_CATEGORY = ExpenseCategory.UNCATEGORIZED
