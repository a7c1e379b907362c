from typing import Dict, List

from settlement.models import ConditionGrade, PaymentMethod, Rental

from .errors import ValidationError
from .payment_orchestrator import can_be_settled


def _required_int(data: Dict, field: str) -> int:
    value = data.get(field)
    if value is None:
        raise ValidationError(f"{field} required", field=field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number", field=field)
    return value


def validate_mileage(data: Dict, rental: Rental) -> int:
    mileage = _required_int(data, "mileage")
    start = (rental.vehicle_condition_before or {}).get("mileage")
    if start is not None and mileage < start:
        raise ValidationError(
            f"return mileage {mileage} is below starting mileage {start}", field="mileage"
        )
    if mileage < 0:
        raise ValidationError("mileage must not be negative", field="mileage")
    return mileage


def validate_battery_level(data: Dict) -> int:
    battery = _required_int(data, "battery_level")
    if not (0 <= battery <= 100):
        raise ValidationError("battery_level must be between 0 and 100", field="battery_level")
    return battery


def validate_condition_grade(data: Dict, field: str) -> str:
    grade = data.get(field)
    if grade is None:
        raise ValidationError(f"{field} required", field=field)
    if grade not in ConditionGrade.values:
        raise ValidationError(f"{field} must be one of {', '.join(ConditionGrade.values)}", field=field)
    return grade


def validate_images(data: Dict) -> List[str]:
    images = data.get("images") or []
    if not all(isinstance(i, str) and i for i in images):
        raise ValidationError("images must be a list of image references", field="images")
    return list(images)


def validate_settlement_method(data: Dict) -> str:
    method = data.get("payment_method") or PaymentMethod.CASH
    if method not in PaymentMethod.values:
        raise ValidationError("unsupported payment_method", field="payment_method")
    if not can_be_settled(method):
        raise ValidationError(
            f"checkout fees cannot be settled by {method}, use cash or vnpay", field="payment_method"
        )
    return method


def validate_inspection(data: Dict, rental: Rental) -> Dict:
    """Run all checks on a checkout inspection and return the condition snapshot.

    Raises ValidationError on the first problem; nothing is written here.
    """
    return {
        "mileage": validate_mileage(data, rental),
        "battery_level": validate_battery_level(data),
        "exterior_condition": validate_condition_grade(data, "exterior_condition"),
        "interior_condition": validate_condition_grade(data, "interior_condition"),
        "notes": data.get("inspection_notes") or "",
    }
