import base64
import hashlib
import hmac
import io
import urllib.parse
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict

import qrcode
from django.conf import settings
from django.utils import timezone

VNPAY_VERSION = "2.1.0"
VNPAY_DATE_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class GatewayConfig:
    """Gateway credentials and knobs, resolved once per request."""

    tmn_code: str
    hash_secret: str
    payment_url: str
    return_url: str
    expiry_minutes: int = 15
    verify_signature: bool = True
    client_ip: str = "127.0.0.1"

    @classmethod
    def from_settings(cls, client_ip: str = "127.0.0.1") -> "GatewayConfig":
        return cls(
            tmn_code=settings.VNPAY_TMN_CODE,
            hash_secret=settings.VNPAY_HASH_SECRET,
            payment_url=settings.VNPAY_PAYMENT_URL,
            return_url=settings.VNPAY_RETURN_URL,
            expiry_minutes=settings.PAYMENT_QR_EXPIRY_MINUTES,
            verify_signature=settings.VNPAY_VERIFY_SIGNATURE,
            client_ip=client_ip or "127.0.0.1",
        )


@dataclass
class QRData:
    qr_data: str
    qr_image_url: str
    qr_text: str
    payment_url: str
    order_id: str
    txn_ref: str
    order_info: str
    amount: int
    created_at: datetime
    expires_at: datetime
    params: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "qr_data": self.qr_data,
            "qr_image_url": self.qr_image_url,
            "qr_text": self.qr_text,
            "vnpay_data": {
                "payment_url": self.payment_url,
                "order_id": self.order_id,
                "txn_ref": self.txn_ref,
                "order_info": self.order_info,
                "amount": self.amount,
                "create_date": self.params.get("vnp_CreateDate"),
                "expire_date": self.params.get("vnp_ExpireDate"),
                "created_at": self.created_at.isoformat(),
                "expires_at": self.expires_at.isoformat(),
                "params": self.params,
            },
        }


class PaymentGateway(ABC):
    @abstractmethod
    def issue(self, *, order_id: str, amount: int, order_info: str, now: datetime) -> QRData:
        pass

    @abstractmethod
    def verify(self, params: Dict[str, str]) -> bool:
        pass


def _canonical_query(params: Dict[str, str]) -> str:
    return "&".join(
        f"{key}={urllib.parse.quote_plus(str(value))}" for key, value in sorted(params.items())
    )


def sign(params: Dict[str, str], secret: str) -> str:
    """HMAC-SHA512 over the sorted, url-encoded vnp_* parameters."""
    return hmac.new(secret.encode(), _canonical_query(params).encode(), hashlib.sha512).hexdigest()


def render_qr_image(data: str) -> str:
    qr = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=6, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    buffer.close()
    return f"data:image/png;base64,{encoded}"


def new_txn_ref() -> str:
    return uuid.uuid4().hex[:16].upper()


class VNPayGateway(PaymentGateway):
    """Builds signed VNPay redirect URLs and checks signed callbacks."""

    def __init__(self, config: GatewayConfig):
        self.config = config

    def issue(self, *, order_id: str, amount: int, order_info: str, now: datetime) -> QRData:
        expires_at = now + timedelta(minutes=self.config.expiry_minutes)
        txn_ref = new_txn_ref()
        params = {
            "vnp_Version": VNPAY_VERSION,
            "vnp_Command": "pay",
            "vnp_TmnCode": self.config.tmn_code,
            # gateway amounts are in minor units
            "vnp_Amount": str(amount * 100),
            "vnp_CurrCode": "VND",
            "vnp_TxnRef": txn_ref,
            "vnp_OrderInfo": order_info,
            "vnp_OrderType": "other",
            "vnp_Locale": "vn",
            "vnp_ReturnUrl": self.config.return_url,
            "vnp_IpAddr": self.config.client_ip,
            "vnp_CreateDate": timezone.localtime(now).strftime(VNPAY_DATE_FORMAT),
            "vnp_ExpireDate": timezone.localtime(expires_at).strftime(VNPAY_DATE_FORMAT),
        }
        secure_hash = sign(params, self.config.hash_secret)
        payment_url = f"{self.config.payment_url}?{_canonical_query(params)}&vnp_SecureHash={secure_hash}"
        return QRData(
            qr_data=payment_url,
            qr_image_url=render_qr_image(payment_url),
            qr_text=f"Pay {amount:,} VND for {order_id}",
            payment_url=payment_url,
            order_id=order_id,
            txn_ref=txn_ref,
            order_info=order_info,
            amount=amount,
            created_at=now,
            expires_at=expires_at,
            params=params,
        )

    def verify(self, params: Dict[str, str]) -> bool:
        received = params.get("vnp_SecureHash")
        if not received:
            return not self.config.verify_signature
        signed = {
            k: v for k, v in params.items()
            if k.startswith("vnp_") and k not in ("vnp_SecureHash", "vnp_SecureHashType")
        }
        expected = sign(signed, self.config.hash_secret)
        return hmac.compare_digest(expected.lower(), received.lower())
