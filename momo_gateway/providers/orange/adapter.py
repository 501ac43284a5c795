from typing import Any, Dict, Optional, Tuple

from ...errors import ProviderError
from ...schemas.payments import (
    ErrorCode,
    PaymentInitiated,
    PaymentRequest,
    PaymentStatus,
    PaymentStatusReport,
    QRCodeCharge,
    RefundReceipt,
    RefundRequest,
    VerificationData,
    WebhookEvent,
)
from ..base import MobileMoneyAdapter, NumberingPlan


class OrangeMoneyAdapter(MobileMoneyAdapter):
    """
    Orange Money (West & Central Africa):
      - POST /payment              returns a hosted payment_url, customer confirms by OTP
      - GET  /transaction/{id}
      - GET  /order/{orderId}/status
      - POST /refund
      - POST /validate/phone       optional, numbering plan is the fallback
      - POST /qrcode/generate
    Amounts are whole currency units.
    """

    name = "orange_money"
    display_name = "Orange Money"
    settings_prefix = "ORANGE"

    numbering_plan = NumberingPlan.of(
        "Orange",
        patterns=[
            r"\+225(07|05|01)\d{6,8}",  # Côte d'Ivoire
            r"\+22177\d{7}",             # Sénégal
            r"\+23769\d{7}",             # Cameroun
            r"\+223\d{8}",               # Mali
            r"\+226\d{8}",               # Burkina Faso
        ],
        countries=("CI", "SN", "CM", "ML", "BF", "GN"),
    )
    status_map = {
        "INITIATED": PaymentStatus.PENDING,
        "PENDING": PaymentStatus.PENDING,
        "COMPLETED": PaymentStatus.SUCCEEDED,
        "FAILED": PaymentStatus.FAILED,
        "CANCELLED": PaymentStatus.CANCELLED,
        "REFUNDED": PaymentStatus.REFUNDED,
        "EXPIRED": PaymentStatus.FAILED,
    }
    error_map = {
        "INSUFFICIENT_BALANCE": ErrorCode.INSUFFICIENT_FUNDS,
        "INVALID_PHONE_NUMBER": ErrorCode.INVALID_CARD,
        "TRANSACTION_DECLINED": ErrorCode.TRANSACTION_DECLINED,
        "TIMEOUT": ErrorCode.TIMEOUT,
        "NETWORK_ERROR": ErrorCode.NETWORK_ERROR,
        "DAILY_LIMIT_EXCEEDED": ErrorCode.TRANSACTION_DECLINED,
    }

    invalid_number_message = "Numéro Orange invalide"
    secret_header = "X-Auth-Token"
    payment_path = "/payment"
    validation_path = "/validate/phone"

    def extract_error(self, body: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        return body.get("code") or body.get("error_code"), body.get("error_message") or body.get("message")

    def build_payment_payload(self, request: PaymentRequest, formatted_phone: str) -> Dict[str, Any]:
        return {
            "amount": self.to_provider_units(request.amount),
            "currency": request.currency,
            "customer_phone": formatted_phone,
            "order_id": request.order_id,
            "description": request.description,
            "return_url": request.callback_url,
            "metadata": self._metadata(request),
        }

    def parse_payment_response(self, body: Dict[str, Any]) -> PaymentInitiated:
        payment_url = body.get("payment_url")
        if not (payment_url or body.get("transaction_id")):
            code, message = self.extract_error(body)
            raise ProviderError(message or "Échec de l'initiation du paiement", code=code)
        # Orange never confirms synchronously
        return PaymentInitiated(
            transaction_id=body.get("transaction_id"),
            reference=body.get("order_id"),
            status=PaymentStatus.PENDING,
            message="Paiement Orange Money initié",
            payment_url=payment_url,
            verification_data=VerificationData(
                otp_required=True,
                instructions="Vous allez recevoir un code OTP sur votre téléphone Orange",
                payment_url=payment_url,
            ),
        )

    def parse_status_response(self, body: Dict[str, Any]) -> PaymentStatusReport:
        return PaymentStatusReport(
            transaction_id=body.get("transaction_id"),
            order_id=body.get("order_id"),
            status=self.map_status(body.get("status")),
            amount=body.get("amount"),
            currency=body.get("currency"),
            customer_phone=body.get("customer_phone"),
            timestamp=body.get("transaction_date"),
            metadata=body.get("metadata"),
        )

    def build_refund_payload(self, request: RefundRequest) -> Dict[str, Any]:
        return {
            "original_transaction_id": request.transaction_id,
            "amount": self.to_provider_units(request.amount),
            "reason": request.reason,
            "metadata": {"processed_by": "buysell"},
        }

    def parse_refund_response(self, body: Dict[str, Any]) -> RefundReceipt:
        return RefundReceipt(
            refund_id=body.get("refund_id"),
            transaction_id=body.get("original_transaction_id"),
            amount=body.get("amount"),
            timestamp=body.get("refund_date"),
        )

    def build_validation_payload(self, formatted_phone: str) -> Dict[str, Any]:
        return {"phone_number": formatted_phone}

    def remote_validity(self, body: Dict[str, Any]) -> Tuple[Optional[bool], Optional[str]]:
        return body.get("is_valid"), body.get("customer_name")

    def parse_webhook(self, data: Dict[str, Any]) -> WebhookEvent:
        native = data.get("status")
        return WebhookEvent(
            transaction_id=data.get("transaction_id") or data.get("txnid"),
            status=self.map_status(native),
            native_status=native,
            amount=data.get("amount"),
            currency=data.get("currency"),
            raw=data,
        )

    async def check_status_by_order_id(self, order_id: str):
        try:
            body = await self._call("GET", f"/order/{order_id}/status")
        except ProviderError as e:
            return self._failure(e, "order status")
        return PaymentStatusReport(
            order_id=body.get("order_id"),
            transaction_id=body.get("transaction_id"),
            status=self.map_status(body.get("status")),
            amount=body.get("amount"),
            timestamp=body.get("last_updated"),
        )

    async def generate_qr_code(self, request: PaymentRequest):
        payload = {
            "amount": self.to_provider_units(request.amount),
            "phone_number": self.format_phone_number(request.phone_number),
            "order_id": request.order_id,
            "description": request.description or "Paiement Buysell",
        }
        try:
            body = await self._call("POST", "/qrcode/generate", payload,
                                    idempotency_key=request.idempotency_key)
        except ProviderError as e:
            return self._failure(e, "qr code")
        return QRCodeCharge(
            qr_code_url=body.get("qr_code_url"),
            qr_code_data=body.get("qr_code_data"),
            transaction_id=body.get("transaction_id"),
            expires_at=body.get("expires_at"),
        )
