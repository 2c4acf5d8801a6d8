from __future__ import annotations

import math
from decimal import Decimal

from receipt_split.domain.items import (
    ItemInput,
    make_item_key,
    normalize_items,
    to_positive_int,
)


def test_bad_quantities_fall_back_instead_of_failing() -> None:
    assert to_positive_int(0, 1) == 1
    assert to_positive_int(-3, 1) == 1
    assert to_positive_int(math.nan, 1) == 1
    assert to_positive_int(math.inf, 1) == 1
    assert to_positive_int("2", 1) == 1
    assert to_positive_int(True, 1) == 1
    assert to_positive_int(2.9, 1) == 2


def test_item_key_prefers_client_id_then_position() -> None:
    assert make_item_key("abc", 4) == "abc"
    assert make_item_key("  ", 4) == "sort:4"
    assert make_item_key(None, 0) == "sort:0"


def test_normalize_items_trims_and_drops_unnamed_rows() -> None:
    items = normalize_items(
        [
            ItemInput(name="  Fries ", quantity=0, price=5.5),
            ItemInput(name="   ", quantity=2),
            ItemInput(name="Beer", quantity=2, price=math.nan, sort_order=-1),
            ItemInput(
                name="Wings", quantity=1, price=12, client_item_id="w1", sort_order=9
            ),
        ]
    )

    assert [item.name for item in items] == ["Fries", "Beer", "Wings"]
    assert items[0].quantity == 1
    assert items[0].price == Decimal("5.50")
    assert items[0].key == "sort:0"
    assert items[1].price is None
    assert items[1].sort_order == 2
    assert items[2].key == "w1"
    assert items[2].sort_order == 9
