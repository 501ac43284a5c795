from typing import Any, Dict, Optional, Tuple

from ...errors import ProviderError
from ...schemas.payments import (
    CancellationReceipt,
    CustomerRecord,
    CustomerRequest,
    ErrorCode,
    PaymentInitiated,
    PaymentRequest,
    PaymentStatus,
    PaymentStatusReport,
    RefundReceipt,
    RefundRequest,
    VerificationData,
    WebhookEvent,
)
from ...utils.clock import now_iso
from ..base import MobileMoneyAdapter, NumberingPlan


def _upper(value: Optional[str]) -> Optional[str]:
    return value.upper() if isinstance(value, str) else value


class WavePaymentAdapter(MobileMoneyAdapter):
    """
    Wave charges API:
      - POST /charges                 hosted page / QR code confirmation
      - GET  /charges/{id}
      - POST /charges/{id}/refund
      - POST /charges/{id}/cancel
      - POST /customers
    Wave works in minor units (x100) with lower-case currency codes; both are
    converted back before leaving the adapter. Wave rides on MTN/Orange/Free
    numbers, so its numbering plan overlaps theirs. No remote number check.
    """

    name = "wave"
    display_name = "Wave"
    settings_prefix = "WAVE"

    numbering_plan = NumberingPlan.of(
        "Wave",
        patterns=[
            r"\+225(07|05|01)\d{6,8}",  # Côte d'Ivoire (MTN / Orange / Moov)
            r"\+22177\d{7}",             # Orange Sénégal
            r"\+22176\d{7}",             # Free Sénégal
        ],
        countries=("CI", "SN"),
    )
    status_map = {
        "PENDING": PaymentStatus.PENDING,
        "SUCCESS": PaymentStatus.SUCCEEDED,
        "FAILED": PaymentStatus.FAILED,
        "CANCELLED": PaymentStatus.CANCELLED,
        "REFUNDED": PaymentStatus.REFUNDED,
        "EXPIRED": PaymentStatus.FAILED,
    }
    error_map = {
        "insufficient_funds": ErrorCode.INSUFFICIENT_FUNDS,
        "invalid_phone_number": ErrorCode.INVALID_CARD,
        "payment_declined": ErrorCode.TRANSACTION_DECLINED,
        "timeout": ErrorCode.TIMEOUT,
        "network_error": ErrorCode.NETWORK_ERROR,
    }

    amount_multiplier = 100
    requires_order_id = False
    invalid_number_message = "Numéro de téléphone invalide pour Wave"
    merchant_header = "X-Merchant-Id"
    payment_path = "/charges"

    def extract_error(self, body: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        err = body.get("error")
        if isinstance(err, dict):
            return err.get("code"), err.get("message")
        return body.get("code"), body.get("error_message") or body.get("message")

    def status_path(self, transaction_id: str) -> str:
        return f"/charges/{transaction_id}"

    def refund_path(self, transaction_id: str) -> str:
        return f"/charges/{transaction_id}/refund"

    def build_payment_payload(self, request: PaymentRequest, formatted_phone: str) -> Dict[str, Any]:
        metadata = self._metadata(request)
        metadata["description"] = request.description
        return {
            "amount": self.to_provider_units(request.amount),
            "currency": request.currency.lower(),
            "customer": {"phone_number": formatted_phone},
            "metadata": metadata,
        }

    def parse_payment_response(self, body: Dict[str, Any]) -> PaymentInitiated:
        native = str(body.get("status") or "").upper()
        if native not in {"PENDING", "SUCCESS"}:
            code, message = self.extract_error(body)
            raise ProviderError(message or "Échec de la création de la charge", code=code)
        hosted_url = body.get("hosted_url")
        return PaymentInitiated(
            charge_id=body.get("id"),
            transaction_id=body.get("transaction_id") or body.get("id"),
            status=self.map_status(native),
            message="Charge Wave créée avec succès",
            payment_url=hosted_url,
            amount=self.from_provider_units(body.get("amount")),
            currency=_upper(body.get("currency")),
            verification_data=VerificationData(
                otp_required=False,
                instructions="Scannez le QR Code ou utilisez le lien de paiement",
                payment_url=hosted_url,
                qr_code=body.get("qr_code"),
            ),
        )

    def parse_status_response(self, body: Dict[str, Any]) -> PaymentStatusReport:
        customer = body.get("customer") or {}
        return PaymentStatusReport(
            transaction_id=body.get("id"),
            order_id=(body.get("metadata") or {}).get("order_id"),
            status=self.map_status(body.get("status")),
            amount=self.from_provider_units(body.get("amount")),
            currency=_upper(body.get("currency")),
            customer_phone=customer.get("phone_number"),
            payment_url=body.get("hosted_url"),
            timestamp=body.get("paid_at") or body.get("created_at"),
            metadata=body.get("metadata"),
        )

    def build_refund_payload(self, request: RefundRequest) -> Dict[str, Any]:
        return {
            "amount": self.to_provider_units(request.amount),
            "reason": request.reason,
            "metadata": {"processed_by": "buysell"},
        }

    def parse_refund_response(self, body: Dict[str, Any]) -> RefundReceipt:
        return RefundReceipt(
            refund_id=body.get("id"),
            transaction_id=body.get("charge"),
            amount=self.from_provider_units(body.get("amount")),
            timestamp=body.get("refunded_at"),
        )

    def parse_webhook(self, data: Dict[str, Any]) -> WebhookEvent:
        # events arrive either flat or wrapped as {"type": ..., "data": {...charge}}
        charge = data.get("data") if isinstance(data.get("data"), dict) else data
        native = charge.get("status")
        return WebhookEvent(
            transaction_id=charge.get("id") or charge.get("transaction_id"),
            status=self.map_status(native),
            native_status=native,
            amount=self.from_provider_units(charge.get("amount")),
            currency=_upper(charge.get("currency")),
            raw=data,
        )

    async def cancel_payment(self, charge_id: str):
        try:
            body = await self._call("POST", f"/charges/{charge_id}/cancel")
            if str(body.get("status") or "").upper() != "CANCELLED":
                code, message = self.extract_error(body)
                raise ProviderError(message or "Échec de l'annulation de la charge", code=code)
        except ProviderError as e:
            return self._failure(e, "cancel")
        return CancellationReceipt(charge_id=body.get("id"), cancelled_at=body.get("cancelled_at"))

    async def create_customer(self, request: CustomerRequest):
        payload = {
            "phone_number": self.format_phone_number(request.phone_number),
            "email": request.email,
            "name": request.name,
            "metadata": {"source": "buysell", "created_at": now_iso()},
        }
        try:
            body = await self._call("POST", "/customers", payload)
        except ProviderError as e:
            return self._failure(e, "customer")
        return CustomerRecord(
            customer_id=body.get("id"),
            phone_number=body.get("phone_number"),
            email=body.get("email"),
            created_at=body.get("created_at"),
        )
