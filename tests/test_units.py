from decimal import Decimal

import pytest

from app.services.units import Quantity, Rate, Unit, money, to_decimal


def test_pack_is_a_thousand_kg():
    assert Quantity.packs(3).to_kg().value == Decimal("3000")
    assert Quantity.kg(2500).to_packs().value == Decimal("2.5")


def test_adding_mixed_units_is_refused():
    with pytest.raises(ValueError):
        Quantity.packs(1) + Quantity.kg(1000)
    with pytest.raises(TypeError):
        Quantity.packs(1) + 1


def test_whole_rounds_half_up():
    assert Quantity.packs("2.5").whole() == 3
    assert Quantity.packs("2.49").whole() == 2
    assert Quantity.packs("0.5").whole() == 1


def test_clamp_zero():
    assert Quantity.packs(-3).clamp_zero().is_zero()
    assert Quantity.packs(4).clamp_zero().value == Decimal("4")


def test_rate_values_per_10kg():
    # 10 packs at 1500 per 10 kg = 10,000 kg * 150
    assert Rate.of(1500).value_of(Quantity.packs(10)) == Decimal("1500000")


def test_weighted_average_rate():
    total = Rate.of(100).value_of(Quantity.packs(10)) + Rate.of(200).value_of(Quantity.packs(10))
    assert Rate.average(total, Quantity.packs(20)).quantized() == Decimal("150.0000")


def test_average_of_nothing_is_zero():
    assert Rate.average(0, Quantity.zero(Unit.PACKS)).per_10kg == Decimal("0")


def test_decimal_helpers():
    assert to_decimal(None) == Decimal("0")
    assert to_decimal(1.1) == Decimal("1.1")
    assert money("10.005") == Decimal("10.01")
