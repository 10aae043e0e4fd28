import pytest

from storefront.common.errors import ValidationError
from storefront.common.utils.validators import parse_quantity


@pytest.mark.parametrize("value, expected", [(3, 3), ("4", 4), (2.0, 2), (0, 0)])
def test_parse_quantity_accepts_whole_numbers(value, expected):
    assert parse_quantity(value) == expected


@pytest.mark.parametrize("value", [2.7, "2.5", "abc", None, True])
def test_parse_quantity_rejects_other_input(value):
    with pytest.raises(ValidationError):
        parse_quantity(value)
