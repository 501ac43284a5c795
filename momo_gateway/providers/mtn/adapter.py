from typing import Any, Dict

from ...errors import ProviderError
from ...schemas.payments import (
    ErrorCode,
    MerchantBalance,
    PaymentInitiated,
    PaymentRequest,
    PaymentStatus,
    PaymentStatusReport,
    RefundReceipt,
    RefundRequest,
    VerificationData,
    WebhookEvent,
)
from ..base import MobileMoneyAdapter, NumberingPlan

# Côte d'Ivoire subscriber part: 6 digits (8-digit plan), 8 digits (10-digit
# plan) and the 7-digit form still produced by older checkouts.
_CI = r"\d{6,8}"


class MTNMoneyAdapter(MobileMoneyAdapter):
    """
    MTN Mobile Money collections:
      - POST /collection          debit request, customer confirms by OTP
      - GET  /transaction/{id}
      - POST /refund
      - POST /validate/msisdn     optional, numbering plan is the fallback
      - GET  /balance
    Amounts are whole currency units.
    """

    name = "mtn_money"
    display_name = "MTN Money"
    settings_prefix = "MTN"

    numbering_plan = NumberingPlan.of(
        "MTN",
        patterns=[rf"\+225(07|05|01|47|48|49){_CI}"],
        countries=("CI", "SN", "CM", "GH"),
    )
    status_map = {
        "PENDING": PaymentStatus.PENDING,
        "SUCCESS": PaymentStatus.SUCCEEDED,
        "FAILED": PaymentStatus.FAILED,
        "CANCELLED": PaymentStatus.CANCELLED,
        "REFUNDED": PaymentStatus.REFUNDED,
    }
    error_map = {
        "INSUFFICIENT_FUNDS": ErrorCode.INSUFFICIENT_FUNDS,
        "INVALID_MSISDN": ErrorCode.INVALID_CARD,
        "TRANSACTION_DECLINED": ErrorCode.TRANSACTION_DECLINED,
        "TIMEOUT": ErrorCode.TIMEOUT,
        "NETWORK_ERROR": ErrorCode.NETWORK_ERROR,
    }

    invalid_number_message = "Numéro MTN invalide"
    payment_path = "/collection"
    validation_path = "/validate/msisdn"
    refund_success_status = "SUCCESS"

    def build_payment_payload(self, request: PaymentRequest, formatted_phone: str) -> Dict[str, Any]:
        return {
            "amount": self.to_provider_units(request.amount),
            "currency": request.currency,
            "customer_msisdn": formatted_phone,
            "merchant_reference": request.order_id,
            "description": request.description,
            "callback_url": request.callback_url,
            "metadata": self._metadata(request),
        }

    def parse_payment_response(self, body: Dict[str, Any]) -> PaymentInitiated:
        native = str(body.get("status") or "").upper()
        if native not in {"PENDING", "SUCCESS"}:
            raise ProviderError(body.get("message") or "Échec de l'initiation du paiement", code=body.get("code"))
        return PaymentInitiated(
            transaction_id=body.get("transaction_id"),
            reference=body.get("merchant_reference"),
            status=self.map_status(native),
            message="Paiement initié avec succès",
            verification_data=VerificationData(
                otp_required=bool(body.get("otp_required", False)),
                instructions=body.get("instructions") or "Vérifiez votre téléphone pour confirmer le paiement",
            ),
        )

    def parse_status_response(self, body: Dict[str, Any]) -> PaymentStatusReport:
        return PaymentStatusReport(
            transaction_id=body.get("transaction_id"),
            order_id=body.get("merchant_reference"),
            status=self.map_status(body.get("status")),
            amount=body.get("amount"),
            currency=body.get("currency"),
            customer_phone=body.get("customer_msisdn"),
            timestamp=body.get("timestamp"),
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
            timestamp=body.get("timestamp"),
        )

    def parse_webhook(self, data: Dict[str, Any]) -> WebhookEvent:
        native = data.get("status")
        return WebhookEvent(
            transaction_id=data.get("transaction_id") or data.get("financialTransactionId"),
            status=self.map_status(native),
            native_status=native,
            amount=data.get("amount"),
            currency=data.get("currency"),
            raw=data,
        )

    async def get_merchant_balance(self):
        try:
            body = await self._call("GET", "/balance")
        except ProviderError as e:
            return self._failure(e, "balance")
        return MerchantBalance(
            available_balance=body.get("available_balance"),
            currency=body.get("currency"),
            last_updated=body.get("last_updated"),
        )
