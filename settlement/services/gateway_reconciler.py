"""Interpretation of the VNPay return parameters.

Everything here is pure: no database access and no network. The result
tells the caller what happened at the gateway; applying it to a Payment is
the orchestrator's job.
"""
from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Mapping, Optional, Union

from django.db import models

from .errors import GatewayUnresolved


class Outcome(models.TextChoices):
    SUCCESS = "success", "Success"
    WARNING = "warning", "Needs verification"
    FAILURE = "failure", "Failure"


SUCCESS_CODE = "00"
UNKNOWN_CODE_MESSAGE = "Unknown response code"

RESPONSE_CODES: Dict[str, tuple] = {
    SUCCESS_CODE: (Outcome.SUCCESS, "Transaction successful"),
    "07": (Outcome.WARNING, "Amount debited. Transaction suspected of fraud or unusual activity"),
    "09": (Outcome.FAILURE, "Card or account is not registered for internet banking"),
    "10": (Outcome.FAILURE, "Card or account verification failed more than 3 times"),
    "11": (Outcome.FAILURE, "Payment window expired, please retry the transaction"),
    "12": (Outcome.FAILURE, "Card or account is locked"),
    "13": (Outcome.FAILURE, "Wrong one-time password (OTP)"),
    "24": (Outcome.FAILURE, "Customer cancelled the transaction"),
    "51": (Outcome.FAILURE, "Insufficient account balance"),
    "65": (Outcome.FAILURE, "Account exceeded its daily transaction limit"),
    "75": (Outcome.FAILURE, "Paying bank is under maintenance"),
    "79": (Outcome.FAILURE, "Payment password entered wrong too many times"),
    "99": (Outcome.FAILURE, "Other error"),
}

BANK_NAMES = {
    "NCB": "National Citizen Bank (NCB)",
    "VIETCOMBANK": "Vietcombank",
    "VIETINBANK": "VietinBank",
    "BIDV": "BIDV",
    "AGRIBANK": "Agribank",
    "MB": "MB Bank",
    "TECHCOMBANK": "Techcombank",
    "ACB": "Asia Commercial Bank (ACB)",
    "VPB": "VPBank",
    "TPB": "TPBank",
    "SACOMBANK": "Sacombank",
    "HDBANK": "HDBank",
    "VIETCAPITALBANK": "VietCapital Bank",
    "SCB": "Saigon Commercial Bank (SCB)",
    "VIB": "VIB",
    "SHB": "SHB",
    "EXIMBANK": "Eximbank",
    "MSB": "MSB",
    "CAKE": "CAKE by VPBank",
    "Ubank": "Ubank by VPBank",
    "TIMO": "Timo by Ban Viet Bank",
    "VNMART": "VnMart",
    "VNPAYQR": "VNPayQR",
    "FOXPAY": "FoxPay wallet",
    "VIMASS": "Vimass wallet",
    "1PAY": "1Pay wallet",
    "VINID": "VinID wallet",
    "VIVIET": "Vi Viet wallet",
    "VNPTPAY": "VnptPay wallet",
    "YOLO": "Yolo wallet",
}

CARD_TYPES = {
    "ATM": "Domestic ATM card",
    "CREDIT": "International credit card",
    "QRCODE": "QR code",
}

# vnp_Amount is optional: an absent amount reads as 0
REQUIRED_PARAMS = (
    "vnp_BankCode",
    "vnp_CardType",
    "vnp_OrderInfo",
    "vnp_PayDate",
    "vnp_ResponseCode",
    "vnp_TransactionNo",
    "vnp_TransactionStatus",
    "vnp_TxnRef",
)


@dataclass(frozen=True)
class PayDate:
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int

    def display(self) -> str:
        return (
            f"{self.day:02d}/{self.month:02d}/{self.year:04d} "
            f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        )


@dataclass
class ReconciliationResult:
    outcome: str
    display_message: str
    parsed_fields: Dict = field(default_factory=dict)

    @property
    def txn_ref(self) -> str:
        return self.parsed_fields["txn_ref"]

    @property
    def amount(self) -> Union[int, Decimal]:
        return self.parsed_fields["amount"]

    def to_dict(self) -> Dict:
        return {
            "outcome": self.outcome,
            "display_message": self.display_message,
            "parsed_fields": self.parsed_fields,
        }


def classify(response_code: str):
    return RESPONSE_CODES.get(response_code, (Outcome.FAILURE, UNKNOWN_CODE_MESSAGE))


def parse_pay_date(value: str) -> Union[PayDate, str]:
    """Split YYYYMMDDHHmmss positionally; anything else comes back untouched."""
    if not value or len(value) != 14 or not value.isdigit():
        return value
    return PayDate(
        year=int(value[0:4]),
        month=int(value[4:6]),
        day=int(value[6:8]),
        hour=int(value[8:10]),
        minute=int(value[10:12]),
        second=int(value[12:14]),
    )


def parse_amount(value: Optional[str]) -> Union[int, Decimal]:
    """Minor units to whole units; a fractional results stay Decimal."""
    if not value:
        return 0
    try:
        amount = Decimal(value) / 100
    except InvalidOperation:
        return 0
    if not amount.is_finite():
        return 0
    if amount == amount.to_integral_value():
        return int(amount)
    return amount


def bank_name(code: str) -> str:
    return BANK_NAMES.get(code, code)


def card_type_label(card_type: str) -> str:
    return CARD_TYPES.get(card_type, card_type)


def reconcile(params: Mapping[str, str]) -> ReconciliationResult:
    missing = [name for name in REQUIRED_PARAMS if not params.get(name)]
    if missing:
        raise GatewayUnresolved("payment result not available yet", missing=missing)

    response_code = params["vnp_ResponseCode"]
    outcome, message = classify(response_code)
    pay_date = parse_pay_date(params["vnp_PayDate"])

    parsed = {
        "amount": parse_amount(params.get("vnp_Amount")),
        "bank_code": params["vnp_BankCode"],
        "bank_name": bank_name(params["vnp_BankCode"]),
        "bank_tran_no": params.get("vnp_BankTranNo") or None,
        "card_type": params["vnp_CardType"],
        "card_type_label": card_type_label(params["vnp_CardType"]),
        "order_info": params["vnp_OrderInfo"],
        "pay_date": params["vnp_PayDate"],
        "pay_date_parts": asdict(pay_date) if isinstance(pay_date, PayDate) else None,
        "pay_date_display": pay_date.display() if isinstance(pay_date, PayDate) else pay_date,
        "response_code": response_code,
        "transaction_no": params["vnp_TransactionNo"],
        "transaction_status": params["vnp_TransactionStatus"],
        "txn_ref": params["vnp_TxnRef"],
    }
    return ReconciliationResult(outcome=outcome, display_message=message, parsed_fields=parsed)
