"""
Quantity & rate value types

Contracts and positions are counted in packs, deliveries are weighed in kg
and rates are quoted per 10 kg. Every conversion goes through here so a
packs figure is never divided by a kg figure by accident.
"""
import enum
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from app.core import settings

Number = Union[int, float, str, Decimal, None]

KG_PER_PACK = Decimal(settings.KG_PER_PACK)
KG_PER_RATE_UNIT = Decimal(settings.KG_PER_RATE_UNIT)

QTY_PLACES = Decimal("0.001")
MONEY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")


def to_decimal(value: Number) -> Decimal:
    """DB aggregates come back as Decimal, float or None depending on the backend."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Number) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


class Unit(str, enum.Enum):
    PACKS = "packs"
    KG = "kg"


@dataclass(frozen=True)
class Quantity:
    value: Decimal
    unit: Unit

    @classmethod
    def packs(cls, value: Number) -> "Quantity":
        return cls(to_decimal(value), Unit.PACKS)

    @classmethod
    def kg(cls, value: Number) -> "Quantity":
        return cls(to_decimal(value), Unit.KG)

    @classmethod
    def zero(cls, unit: Unit) -> "Quantity":
        return cls(Decimal("0"), unit)

    def to_kg(self) -> "Quantity":
        if self.unit == Unit.KG:
            return self
        return Quantity(self.value * KG_PER_PACK, Unit.KG)

    def to_packs(self) -> "Quantity":
        if self.unit == Unit.PACKS:
            return self
        return Quantity(self.value / KG_PER_PACK, Unit.PACKS)

    def _check(self, other: "Quantity") -> None:
        if not isinstance(other, Quantity):
            raise TypeError(f"Cannot combine Quantity with {type(other).__name__}")
        if other.unit != self.unit:
            raise ValueError(
                f"Unit mismatch: {self.unit.value} vs {other.unit.value}; convert explicitly"
            )

    def __add__(self, other: "Quantity") -> "Quantity":
        self._check(other)
        return Quantity(self.value + other.value, self.unit)

    def __sub__(self, other: "Quantity") -> "Quantity":
        self._check(other)
        return Quantity(self.value - other.value, self.unit)

    def __lt__(self, other: "Quantity") -> bool:
        self._check(other)
        return self.value < other.value

    def is_zero(self) -> bool:
        return self.value == 0

    def clamp_zero(self) -> "Quantity":
        """Floor at zero."""
        if self.value < 0:
            return Quantity.zero(self.unit)
        return self

    def whole(self) -> int:
        """Nearest whole unit, halves rounded up."""
        return int(self.value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def quantized(self) -> Decimal:
        return self.value.quantize(QTY_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Rate:
    """Currency per 10 kg."""
    per_10kg: Decimal

    @classmethod
    def of(cls, value: Number) -> "Rate":
        return cls(to_decimal(value))

    def per_kg(self) -> Decimal:
        return self.per_10kg / KG_PER_RATE_UNIT

    def value_of(self, quantity: Quantity) -> Decimal:
        return self.per_kg() * quantity.to_kg().value

    @classmethod
    def average(cls, total_value: Number, quantity: Quantity) -> "Rate":
        """Weighted average rate: total value / total kg, expressed per 10 kg."""
        kg = quantity.to_kg().value
        if kg == 0:
            return cls(Decimal("0"))
        return cls(to_decimal(total_value) / kg * KG_PER_RATE_UNIT)

    def quantized(self) -> Decimal:
        return self.per_10kg.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
