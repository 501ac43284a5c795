from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field


def _as_text(value: Any) -> Optional[str]:
    return value if value is None else str(value)


# Provider references are opaque; some providers send them as numbers.
ProviderRef = Annotated[Optional[str], BeforeValidator(_as_text)]


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class ErrorCode(str, Enum):
    # adapter level
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INVALID_CARD = "INVALID_CARD"  # also used for invalid phone numbers
    TRANSACTION_DECLINED = "TRANSACTION_DECLINED"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    # facade level
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DETECTION_ERROR = "DETECTION_ERROR"
    WEBHOOK_ERROR = "WEBHOOK_ERROR"
    STATUS_CHECK_ERROR = "STATUS_CHECK_ERROR"
    REFUND_ERROR = "REFUND_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# ====== Requests ======

class PaymentRequest(BaseModel):
    amount: float = Field(gt=0)
    currency: str = "XOF"
    phone_number: str
    order_id: ProviderRef = None
    description: str = "Achat Buysell"
    callback_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    idempotency_key: Optional[str] = None  # forwarded as Idempotency-Key


class RefundRequest(BaseModel):
    transaction_id: str  # charge id for Wave
    amount: float = Field(gt=0)
    reason: str = "Refund request"
    idempotency_key: Optional[str] = None


class PhoneNumberIn(BaseModel):
    phone_number: str


class CustomerRequest(BaseModel):
    phone_number: str
    email: Optional[str] = None
    name: Optional[str] = None


# ====== Results ======
# Every operation returns either a `success=True` model or OperationFailure.

class ProviderTagged(BaseModel):
    provider: Optional[str] = None
    provider_name: Optional[str] = None


class OperationFailure(ProviderTagged):
    success: Literal[False] = False
    error: ErrorCode
    message: str
    timestamp: Optional[str] = None


class VerificationData(BaseModel):
    otp_required: bool = False
    instructions: str
    payment_url: Optional[str] = None
    qr_code: Optional[str] = None


class PaymentInitiated(ProviderTagged):
    success: Literal[True] = True
    transaction_id: ProviderRef = None
    charge_id: ProviderRef = None
    reference: ProviderRef = None
    status: PaymentStatus
    message: str
    verification_required: bool = True
    verification_data: VerificationData
    payment_url: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    formatted_amount: Optional[str] = None
    timestamp: Optional[str] = None


class PaymentStatusReport(ProviderTagged):
    success: Literal[True] = True
    transaction_id: ProviderRef = None
    order_id: ProviderRef = None
    status: PaymentStatus
    amount: Optional[float] = None
    currency: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_url: Optional[str] = None
    timestamp: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class RefundReceipt(ProviderTagged):
    success: Literal[True] = True
    refund_id: ProviderRef = None
    transaction_id: ProviderRef = None
    amount: Optional[float] = None
    status: PaymentStatus = PaymentStatus.REFUNDED
    timestamp: Optional[str] = None


class CancellationReceipt(ProviderTagged):
    success: Literal[True] = True
    charge_id: ProviderRef = None
    status: PaymentStatus = PaymentStatus.CANCELLED
    cancelled_at: Optional[str] = None


class PhoneValidation(ProviderTagged):
    success: Literal[True] = True
    valid: bool
    formatted_number: str
    network: str
    country: str
    customer_name: Optional[str] = None


class DetectedProvider(BaseModel):
    provider: str
    provider_name: str
    valid: bool = True
    country: str
    network: str


class ProviderDetection(BaseModel):
    success: Literal[True] = True
    detected_provider: str
    providers: List[DetectedProvider]
    phone_number: str


class WebhookEvent(BaseModel):
    transaction_id: ProviderRef = None
    status: PaymentStatus
    native_status: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class WebhookAck(ProviderTagged):
    success: Literal[True] = True
    processed: bool = True
    data: WebhookEvent


class MerchantBalance(ProviderTagged):
    success: Literal[True] = True
    available_balance: Optional[float] = None
    currency: Optional[str] = None
    last_updated: Optional[str] = None


class QRCodeCharge(ProviderTagged):
    success: Literal[True] = True
    qr_code_url: Optional[str] = None
    qr_code_data: Optional[str] = None
    transaction_id: ProviderRef = None
    expires_at: Optional[str] = None


class CustomerRecord(ProviderTagged):
    success: Literal[True] = True
    customer_id: ProviderRef = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[str] = None


class ProviderHealth(BaseModel):
    healthy: bool
    service: str
    timestamp: str
    error: Optional[str] = None
    response: Optional[Any] = None


# ====== Catalog views ======

class ProviderCheck(BaseModel):
    valid: bool
    error: Optional[str] = None


class Limits(BaseModel):
    min: Optional[int] = None
    max: Optional[int] = None
    currency: Optional[str] = None


class LimitCheck(BaseModel):
    valid: bool
    issues: List[str] = Field(default_factory=list)
    limits: Optional[Limits] = None
    error: Optional[str] = None


class ProviderStats(BaseModel):
    name: str
    enabled: bool = False
    available: bool = False
    countries: List[str] = Field(default_factory=list)
    fees: float = 0
    limits: Limits


PaymentResult = Union[PaymentInitiated, OperationFailure]
StatusResult = Union[PaymentStatusReport, OperationFailure]
RefundResult = Union[RefundReceipt, OperationFailure]
PhoneResult = Union[PhoneValidation, OperationFailure]
DetectionResult = Union[ProviderDetection, OperationFailure]
WebhookResult = Union[WebhookAck, OperationFailure]
