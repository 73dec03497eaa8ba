from ampp.domain.categories import (
    CATEGORY_CONFIG,
    CLASSIFICATION_ORDER,
    FALLBACK_CATEGORY,
)
from ampp.domain.enums import ExpenseCategory

class CategoryClassifier:
    """
    Классификатор по ключевым словам.

    Совпадение ищется как подстрока в тексте в нижнем регистре. Категории
    проверяются в порядке объявления, побеждает первая с хотя бы одним
    совпадением; количество совпадений не учитывается.
    """

    def __init__(
        self,
        order: tuple[ExpenseCategory, ...] = CLASSIFICATION_ORDER,
        fallback: ExpenseCategory = FALLBACK_CATEGORY,
    ):
        self._table = [
            (category, CATEGORY_CONFIG[category].keywords) for category in order
        ]
        self.fallback = fallback

    @staticmethod
    def normalize(descriptor: str) -> str:
        return descriptor.lower()

    def classify(self, descriptor: str) -> ExpenseCategory:
        text = self.normalize(descriptor)
        for category, keywords in self._table:
            if any(keyword in text for keyword in keywords):
                return category
        return self.fallback

    def matched_keywords(self, descriptor: str) -> dict[ExpenseCategory, list[str]]:
        """Все совпавшие ключевые слова по категориям, в порядке таблицы."""
        text = self.normalize(descriptor)
        matches: dict[ExpenseCategory, list[str]] = {}
        for category, keywords in self._table:
            hits = [keyword for keyword in keywords if keyword in text]
            if hits:
                matches[category] = hits
        return matches

classifier = CategoryClassifier()

def classify(descriptor: str) -> ExpenseCategory:
    return classifier.classify(descriptor)
