from __future__ import annotations

import pytest

from karigar.services import numbering


@pytest.mark.parametrize(
    "sequence, value, expected",
    [
        (numbering.ORDER, 1, "OD000001"),
        (numbering.MANUFACTURING_ORDER, 42, "MO000042"),
        (numbering.TAG, 7, "TAG000007"),
        (numbering.PROCUREMENT_REQUEST, 123456, "PR123456"),
        (numbering.INVOICE, 3, "INV000003"),
    ],
)
def test_format_number(sequence, value, expected) -> None:
    assert numbering.format_number(sequence, value) == expected


def test_format_number_rejects_unknown_sequence() -> None:
    with pytest.raises(ValueError):
        numbering.format_number("invoice", 1)


def test_format_number_rejects_zero() -> None:
    with pytest.raises(ValueError):
        numbering.format_number(numbering.ORDER, 0)


def test_suborder_id() -> None:
    assert numbering.format_suborder_id("OD000012", 3) == "S-OD000012-03"
