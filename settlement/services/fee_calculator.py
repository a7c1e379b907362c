from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from .errors import ValidationError

FEE_FIELDS = ("late_fee", "damage_fee", "other_fees")


@dataclass(frozen=True)
class FeeBreakdown:
    late_fee: int = 0
    damage_fee: int = 0
    other_fees: int = 0

    @property
    def total_fees(self) -> int:
        return self.late_fee + self.damage_fee + self.other_fees

    def to_dict(self) -> Dict[str, int]:
        return {
            "late_fee": self.late_fee,
            "damage_fee": self.damage_fee,
            "other_fees": self.other_fees,
            "total_fees": self.total_fees,
        }


class CheckoutMode(ABC):
    """Pluggable rule for turning staff fee entry into a `FeeBreakdown`.

    New checkout flavours are added by registering a mode with
    `register_checkout_mode`.
    """

    @abstractmethod
    def breakdown(self, fees: Dict) -> FeeBreakdown:
        pass


_mode_registry: Dict[str, CheckoutMode] = {}


def register_checkout_mode(name: str):
    def _decorator(cls):
        _mode_registry[name.lower()] = cls()
        return cls

    return _decorator


def _fee_amount(fees: Dict, field: str) -> int:
    value = fees.get(field)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number", field=field)
    if value < 0:
        raise ValidationError(f"{field} must not be negative", field=field)
    return value


@register_checkout_mode("normal")
class NormalCheckout(CheckoutMode):
    def breakdown(self, fees: Dict) -> FeeBreakdown:
        if any(fees.get(field) for field in FEE_FIELDS):
            raise ValidationError("normal checkout does not accept fee amounts, use fees checkout")
        return FeeBreakdown()


@register_checkout_mode("fees")
class FeesCheckout(CheckoutMode):
    def breakdown(self, fees: Dict) -> FeeBreakdown:
        return FeeBreakdown(**{field: _fee_amount(fees, field) for field in FEE_FIELDS})


def calculate_fees(mode: str, fees: Optional[Dict] = None) -> FeeBreakdown:
    strategy = _mode_registry.get((mode or "").lower())
    if not strategy:
        raise ValidationError(f"unsupported checkout mode: {mode}")
    return strategy.breakdown(fees or {})


def supported_checkout_modes():
    return list(_mode_registry.keys())


def overdue_hours(scheduled_end: datetime, actual_end: datetime) -> int:
    """Whole hours past the booked return time, for display only."""
    late_seconds = (actual_end - scheduled_end).total_seconds()
    if late_seconds <= 0:
        return 0
    return int(late_seconds // 3600)


def rental_duration_hours(start: datetime, end: datetime) -> float:
    return round(max((end - start).total_seconds(), 0) / 3600, 2)
