import pytest

from ampp.domain.categories import CATEGORY_CONFIG, CLASSIFICATION_ORDER
from ampp.domain.enums import ExpenseCategory
from ampp.services.classification.rules import CategoryClassifier, classifier, classify

@pytest.mark.parametrize(
    "descriptor, expected",
    [
        ("Zomato order #123", ExpenseCategory.FOOD),
        ("ZOMATO ORDER", ExpenseCategory.FOOD),
        ("Uber ride home", ExpenseCategory.TRANSPORT),
        ("Hostel electricity bill", ExpenseCategory.HOSTEL),
        ("Netflix subscription", ExpenseCategory.ENTERTAINMENT),
        ("Apollo pharmacy", ExpenseCategory.EMERGENCY),
    ],
)
def test_classify_by_keyword(descriptor, expected):
    assert classify(descriptor) == expected, f"'{descriptor}' должен попасть в {expected}"

def test_first_matching_category_wins():
    # food и auto совпадают, FOOD объявлена раньше TRANSPORT
    assert classify("food delivery by auto") == ExpenseCategory.FOOD

def test_keyword_shared_between_categories():
    assert classify("Mess fee October") == ExpenseCategory.FOOD, "mess есть в FOOD и HOSTEL, побеждает FOOD"

def test_no_match_falls_back_to_uncategorized():
    assert classify("ATM withdrawal") == ExpenseCategory.UNCATEGORIZED

def test_empty_descriptor():
    assert classify("") == ExpenseCategory.UNCATEGORIZED

def test_classify_is_deterministic():
    results = {classify("Swiggy dinner") for _ in range(10)}
    assert results == {ExpenseCategory.FOOD}

def test_matched_keywords_in_table_order():
    matches = classifier.matched_keywords("food delivery by auto")
    assert list(matches) == [ExpenseCategory.FOOD, ExpenseCategory.TRANSPORT]
    assert matches[ExpenseCategory.FOOD] == ["food"]
    assert matches[ExpenseCategory.TRANSPORT] == ["auto"]

def test_custom_order_changes_winner():
    transport_first = CategoryClassifier(
        order=(ExpenseCategory.TRANSPORT, ExpenseCategory.FOOD),
    )
    assert transport_first.classify("food delivery by auto") == ExpenseCategory.TRANSPORT

def test_fallback_is_not_part_of_order():
    assert ExpenseCategory.UNCATEGORIZED not in CLASSIFICATION_ORDER
    assert CATEGORY_CONFIG[ExpenseCategory.UNCATEGORIZED].keywords == ()

def test_every_category_has_display_config():
    for category in ExpenseCategory:
        config = CATEGORY_CONFIG[category]
        assert config.name
        assert config.color.startswith("#")
