import logging
import re
from typing import Iterable

from ampp.core import metrics
from ampp.domain.enums import CategorizationSource, ExpenseCategory
from ampp.domain.schemas import api as api_schemas
from ampp.services.classification.rules import CategoryClassifier, classifier

logger = logging.getLogger(__name__)

UPI_CONFIDENCE = 0.95
KEYWORD_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.0

UPI_PATTERNS: list[tuple[re.Pattern, ExpenseCategory]] = [
    (re.compile(r"zomato.*@paytm", re.IGNORECASE), ExpenseCategory.FOOD),
    (re.compile(r"swiggy.*@paytm", re.IGNORECASE), ExpenseCategory.FOOD),
    (re.compile(r"uber.*@paytm", re.IGNORECASE), ExpenseCategory.TRANSPORT),
    (re.compile(r"ola.*@paytm", re.IGNORECASE), ExpenseCategory.TRANSPORT),
    (re.compile(r"netflix.*@paytm", re.IGNORECASE), ExpenseCategory.ENTERTAINMENT),
    (re.compile(r"spotify.*@paytm", re.IGNORECASE), ExpenseCategory.ENTERTAINMENT),
    (re.compile(r"amazon.*@paytm", re.IGNORECASE), ExpenseCategory.BOOKS),
    (re.compile(r"flipkart.*@paytm", re.IGNORECASE), ExpenseCategory.BOOKS),
    (re.compile(r".*mess.*@paytm", re.IGNORECASE), ExpenseCategory.HOSTEL),
    (re.compile(r".*hospital.*@paytm", re.IGNORECASE), ExpenseCategory.EMERGENCY),
]

UPI_DESCRIPTION_PATTERNS: list[re.Pattern] = [
    re.compile(r"to\s+([^-\s]+)", re.IGNORECASE),
    re.compile(r"([A-Z]+)\s*-", re.IGNORECASE),
    re.compile(r"UPI-([^-\s]+)", re.IGNORECASE),
]

class CategorizationService:
    """Автокатегоризация транзакций: UPI-хэндлы, затем ключевые слова."""

    def __init__(self, category_classifier: CategoryClassifier = classifier):
        self.classifier = category_classifier

    @staticmethod
    def _compose_text(
        description: str,
        merchant_name: str | None,
        upi_transaction_id: str | None,
    ) -> str:
        return f"{description} {merchant_name or ''} {upi_transaction_id or ''}".strip()

    @staticmethod
    def match_upi_pattern(upi_transaction_id: str) -> ExpenseCategory | None:
        for pattern, category in UPI_PATTERNS:
            if pattern.search(upi_transaction_id):
                return category
        return None

    def _classify(
        self,
        description: str,
        merchant_name: str | None,
        upi_transaction_id: str | None,
    ) -> api_schemas.CategorizationResult:
        if upi_transaction_id:
            upi_category = self.match_upi_pattern(upi_transaction_id)
            if upi_category:
                return self._result(
                    upi_category,
                    UPI_CONFIDENCE,
                    "UPI handle pattern match",
                    CategorizationSource.UPI,
                )

        text = self._compose_text(description, merchant_name, upi_transaction_id)
        category = self.classifier.classify(text)

        if category == self.classifier.fallback:
            return self._result(
                category,
                FALLBACK_CONFIDENCE,
                "No keyword match",
                CategorizationSource.FALLBACK,
            )

        keywords = self.classifier.matched_keywords(text)[category]
        return self._result(
            category,
            KEYWORD_CONFIDENCE,
            f"Matched keywords: {', '.join(keywords[:3])}",
            CategorizationSource.KEYWORDS,
        )

    def categorize(
        self,
        description: str,
        merchant_name: str | None = None,
        upi_transaction_id: str | None = None,
    ) -> api_schemas.CategorizationResult:
        result = self._classify(description, merchant_name, upi_transaction_id)
        metrics.TRANSACTIONS_CATEGORIZED_TOTAL.labels(
            category=result.category.value,
            source=result.source.value,
        ).inc()
        return result

    def batch_categorize(
        self,
        transactions: Iterable[api_schemas.TransactionToCategorize],
    ) -> list[api_schemas.BatchCategorizeItem]:
        """Перекатегоризация пачки; ручные категории не трогаем."""
        items = [
            api_schemas.BatchCategorizeItem(
                id=tx.id,
                result=self.categorize(
                    tx.description,
                    tx.merchant_name,
                    tx.upi_transaction_id,
                ),
            )
            for tx in transactions
            if not tx.is_manual_category
        ]
        logger.info("Batch categorized %s transactions", len(items))
        return items

    def debug(
        self,
        description: str,
        merchant_name: str | None = None,
        upi_transaction_id: str | None = None,
    ) -> api_schemas.CategorizationDebug:
        text = self._compose_text(description, merchant_name, upi_transaction_id)
        return api_schemas.CategorizationDebug(
            text=text.lower(),
            matched_keywords=self.classifier.matched_keywords(text),
            result=self._classify(description, merchant_name, upi_transaction_id),
        )

    @staticmethod
    def parse_upi_description(description: str) -> api_schemas.UpiDescription:
        """Достает имя мерчанта из описания UPI-платежа."""
        for pattern in UPI_DESCRIPTION_PATTERNS:
            match = pattern.search(description)
            if match and match.group(1):
                return api_schemas.UpiDescription(
                    merchant_name=match.group(1).strip(),
                    transaction_type="UPI",
                )
        return api_schemas.UpiDescription()

    @staticmethod
    def _result(
        category: ExpenseCategory,
        confidence: float,
        reason: str,
        source: CategorizationSource,
    ) -> api_schemas.CategorizationResult:
        return api_schemas.CategorizationResult(
            category=category,
            confidence=confidence,
            reason=reason,
            source=source,
        )
