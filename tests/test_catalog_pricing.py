"""Catalog lookups and the pricing rule."""

import pytest
from hypothesis import given, strategies as st

from greenfill.core.catalog import (
    LOCATIONS,
    PaymentMethod,
    brand_by_id,
    brand_by_name,
    brands,
    is_location,
    locations,
    voucher_by_id,
    vouchers,
)
from greenfill.core.errors import InvalidVolume
from greenfill.core.pricing import (
    accepts_volume_input,
    format_money,
    parse_volume,
    price,
    quote,
)


volumes = st.floats(min_value=0.001, max_value=1_000_000, allow_nan=False, allow_infinity=False)


class TestCatalog:

    def test_five_brands_in_display_order(self):
        assert [b.name for b in brands()] == [
            "Lifebuoy", "Shokubutsu", "Summerie", "Pureen", "Antabax",
        ]

    def test_brand_prices(self):
        assert brand_by_id("lifebuoy").price_per_ten_ml == 0.50
        assert brand_by_id("shokubutsu").price_per_ten_ml == 0.45
        assert brand_by_name("Pureen").price_per_ten_ml == 0.60

    def test_thirteen_locations(self):
        assert len(locations()) == 13
        assert LOCATIONS[0] == "KK1" and LOCATIONS[-1] == "KK13"
        assert is_location("KK3")
        assert not is_location("KK14")
        assert not is_location("")
        assert not is_location(None)

    def test_unknown_lookups_return_none(self):
        assert brand_by_id("dove") is None
        assert brand_by_name("lifebuoy") is None  # names are case-sensitive
        assert voucher_by_id("99") is None

    def test_vouchers(self):
        assert [v.points_required for v in vouchers()] == [50, 100, 150, 200]
        assert voucher_by_id("2").name == "RM5 Off"

    def test_payment_method_tags(self):
        assert {m.value for m in PaymentMethod} == {"online-transfer", "e-wallet"}


class TestPrice:

    def test_lifebuoy_150ml(self):
        assert price(brand_by_id("lifebuoy"), 150) == 7.5

    def test_fractional_volume(self):
        assert price(brand_by_id("pureen"), 25.5) == pytest.approx(1.53)

    @pytest.mark.parametrize("volume", [0, -10, float("nan"), float("inf")])
    def test_rejects_non_positive_or_non_finite(self, volume):
        with pytest.raises(InvalidVolume):
            price(brand_by_id("lifebuoy"), volume)

    def test_rejects_non_numbers(self):
        with pytest.raises(InvalidVolume):
            price(brand_by_id("lifebuoy"), "150")

    @given(brand=st.sampled_from(brands()), volume=volumes)
    def test_formula(self, brand, volume):
        assert price(brand, volume) == (volume / 10) * brand.price_per_ten_ml

    @given(brand=st.sampled_from(brands()), a=volumes, b=volumes)
    def test_monotonic_in_volume(self, brand, a, b):
        low, high = sorted((a, b))
        assert price(brand, low) <= price(brand, high)


class TestVolumeInput:

    @pytest.mark.parametrize("text", ["", "1", "150", "150.", "150.5", "007"])
    def test_accepted_keystrokes(self, text):
        assert accepts_volume_input(text)

    @pytest.mark.parametrize("text", ["abc", "1a", "1.2.3", "-5", " 10", ".5", "1e3"])
    def test_rejected_keystrokes(self, text):
        assert not accepts_volume_input(text)

    def test_parse_volume(self):
        assert parse_volume("150") == 150.0
        assert parse_volume("150.") == 150.0
        assert parse_volume("0") is None
        assert parse_volume("0.0") is None
        assert parse_volume("") is None
        assert parse_volume("x") is None

    def test_quote_is_zero_until_input_is_usable(self):
        lifebuoy = brand_by_id("lifebuoy")
        assert quote(None, "150") == 0.0
        assert quote(lifebuoy, "") == 0.0
        assert quote(lifebuoy, "0") == 0.0
        assert quote(lifebuoy, "150") == 7.5

    def test_format_money_two_decimals(self):
        assert format_money(7.5) == "RM 7.50"
        assert format_money(12) == "RM 12.00"
        assert format_money(0.456) == "RM 0.46"
