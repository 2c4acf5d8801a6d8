from __future__ import annotations

from collections.abc import Iterator

import pytest

from receipt_split.domain.errors import CodeSpaceExhaustedError
from receipt_split.domain.share_code import (
    draw_share_code,
    generate_share_code,
    is_valid_share_code,
)


def _draws(values: list[int]) -> Iterator[int]:
    yield from values


def test_codes_are_zero_padded_six_digits() -> None:
    assert draw_share_code(lambda _: 42) == "000042"
    assert is_valid_share_code("000042")


@pytest.mark.parametrize("value", [None, "", "12345", "1234567", "12a456", " 123456"])
def test_invalid_share_codes(value: str | None) -> None:
    assert not is_valid_share_code(value)


def test_generator_retries_after_collision() -> None:
    draws = _draws([123456, 123456, 654321])
    taken = {"123456"}

    code = generate_share_code(
        exists=taken.__contains__,
        randbelow=lambda _: next(draws),
    )

    assert code == "654321"


def test_generator_gives_up_when_every_draw_collides() -> None:
    with pytest.raises(CodeSpaceExhaustedError) as exc_info:
        generate_share_code(
            exists=lambda _: True,
            randbelow=lambda _: 7,
            max_attempts=5,
        )

    assert exc_info.value.status_code == 503
    assert exc_info.value.details == {"attempts": 5}
