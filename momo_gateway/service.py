"""
Mobile money facade: one entry point over the MTN Money, Orange Money and
Wave adapters.

The facade picks the adapter by provider key, runs the eligibility checks the
adapters do not perform (availability, currency, country), and decorates
every result with the provider key and display name. It never raises: every
operation returns a success model or an OperationFailure, so callers must
check `success`. Nothing is persisted here; recording transactions and
retrying declined calls is the caller's job.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .catalog import PAYMENT_METHODS, ProviderConfig, available_methods, get_payment_method
from .errors import ProviderConfigurationError, ProviderError, UnsupportedOperation
from .providers.base import MobileMoneyAdapter
from .providers.registry import ProviderRegistry
from .schemas.payments import (
    CustomerRequest,
    DetectedProvider,
    DetectionResult,
    ErrorCode,
    LimitCheck,
    Limits,
    OperationFailure,
    PaymentRequest,
    PaymentResult,
    PhoneResult,
    PhoneValidation,
    ProviderCheck,
    ProviderDetection,
    ProviderHealth,
    ProviderStats,
    RefundRequest,
    RefundResult,
    StatusResult,
    WebhookAck,
    WebhookResult,
)
from .utils.clock import now_iso
from .utils.money import format_amount
from .utils.phone import detect_country, format_phone_number

logger = logging.getLogger(__name__)


class MobileMoneyService:

    def __init__(self, registry: ProviderRegistry,
                 methods: Optional[Dict[str, ProviderConfig]] = None,
                 default_country_code: str = "+225"):
        self.registry = registry
        self.methods = PAYMENT_METHODS if methods is None else methods
        self.default_country_code = default_country_code

    # ---- Helpers ----
    def provider_name(self, provider: str) -> str:
        key = self.registry.resolve_key(provider) or provider
        method = get_payment_method(key, self.methods)
        if method:
            return method.name
        adapter = self.registry.get(key)
        return adapter.display_name if adapter else provider

    def _tag(self, result, provider: str, **extra):
        return result.model_copy(update={"provider": provider, "provider_name": self.provider_name(provider), **extra})

    def _unsupported(self, provider: Optional[str]) -> OperationFailure:
        return OperationFailure(
            provider=provider,
            provider_name=provider,
            error=ErrorCode.UNSUPPORTED_PROVIDER,
            message=f"Provider Mobile Money non supporté: {provider}",
        )

    async def _delegate(self, provider: str, operation: str, default_error: ErrorCode, default_message: str,
                        call: Callable[[MobileMoneyAdapter], Awaitable[Any]]):
        adapter = self.registry.get(provider)
        if adapter is None:
            return self._unsupported(provider)
        try:
            result = await call(adapter)
        except ProviderConfigurationError as e:
            logger.error("%s %s refused: %s", adapter.name, operation, e)
            result = OperationFailure(error=ErrorCode.CONFIGURATION_ERROR, message=str(e))
        except UnsupportedOperation as e:
            result = OperationFailure(error=ErrorCode.UNSUPPORTED_OPERATION, message=str(e))
        except Exception:
            logger.exception("%s %s failed", adapter.name, operation)
            result = OperationFailure(error=default_error, message=default_message)
        return self._tag(result, adapter.name)

    # ---- Eligibility ----
    def validate_provider(self, provider: str, request: PaymentRequest) -> ProviderCheck:
        method = get_payment_method(provider, self.methods)
        if not method:
            return ProviderCheck(valid=False, error="Provider non reconnu")
        if not method.enabled or not method.available:
            return ProviderCheck(valid=False, error="Provider non disponible")
        if request.currency not in method.currencies:
            return ProviderCheck(valid=False, error=f"Devise non supportée: {request.currency}")
        country = detect_country(request.phone_number, default_code=self.default_country_code)
        if country not in method.countries:
            return ProviderCheck(valid=False, error=f"Provider non disponible en {country}")
        return ProviderCheck(valid=True)

    # ---- Payments ----
    async def process_payment(self, provider: str, request: PaymentRequest) -> PaymentResult:
        key = self.registry.resolve_key(provider)
        if key is None:
            return self._unsupported(provider).model_copy(update={"timestamp": now_iso()})

        check = self.validate_provider(key, request)
        if not check.valid:
            logger.info("%s payment refused by eligibility check: order=%s reason=%s",
                        key, request.order_id, check.error)
            failure = OperationFailure(error=ErrorCode.VALIDATION_ERROR, message=check.error)
            return self._tag(failure, key, timestamp=now_iso())

        result = await self._delegate(
            key, "payment", ErrorCode.PROCESSING_ERROR, "Erreur lors du traitement du paiement",
            lambda a: a.process_payment(request),
        )
        extra = {"timestamp": now_iso()}
        if result.success:
            extra["formatted_amount"] = format_amount(request.amount, request.currency)
        return result.model_copy(update=extra)

    async def check_payment_status(self, provider: str, transaction_id: str) -> StatusResult:
        return await self._delegate(
            provider, "status", ErrorCode.STATUS_CHECK_ERROR, "Erreur lors de la vérification du statut",
            lambda a: a.check_payment_status(transaction_id),
        )

    async def process_refund(self, provider: str, request: RefundRequest) -> RefundResult:
        return await self._delegate(
            provider, "refund", ErrorCode.REFUND_ERROR, "Erreur lors du remboursement",
            lambda a: a.process_refund(request),
        )

    async def cancel_payment(self, provider: str, charge_id: str):
        return await self._delegate(
            provider, "cancel", ErrorCode.PROCESSING_ERROR, "Erreur lors de l'annulation",
            lambda a: a.cancel_payment(charge_id),
        )

    async def check_status_by_order_id(self, provider: str, order_id: str):
        return await self._delegate(
            provider, "order status", ErrorCode.STATUS_CHECK_ERROR, "Erreur lors de la vérification du statut",
            lambda a: a.check_status_by_order_id(order_id),
        )

    async def generate_qr_code(self, provider: str, request: PaymentRequest):
        return await self._delegate(
            provider, "qr code", ErrorCode.PROCESSING_ERROR, "Erreur lors de la génération du QR code",
            lambda a: a.generate_qr_code(request),
        )

    async def get_merchant_balance(self, provider: str):
        return await self._delegate(
            provider, "balance", ErrorCode.PROCESSING_ERROR, "Erreur lors de la récupération du solde",
            lambda a: a.get_merchant_balance(),
        )

    async def create_customer(self, provider: str, request: CustomerRequest):
        return await self._delegate(
            provider, "customer", ErrorCode.PROCESSING_ERROR, "Erreur lors de la création du client",
            lambda a: a.create_customer(request),
        )

    # ---- Phone numbers ----
    async def validate_phone_number(self, provider: str, phone_number: str) -> PhoneResult:
        return await self._delegate(
            provider, "phone validation", ErrorCode.VALIDATION_ERROR, "Erreur lors de la validation du numéro",
            lambda a: a.validate_phone_number(phone_number),
        )

    async def detect_provider(self, phone_number: str) -> DetectionResult:
        """
        Every adapter whose numbering plan accepts the number is a candidate.
        Plans overlap (Wave rides on MTN/Orange numbers), so the pick is a
        heuristic: the first candidate whose network equals its display name,
        otherwise the first candidate in registry order.
        """
        try:
            keys = self.registry.keys()
            results = await asyncio.gather(*(self.validate_phone_number(k, phone_number) for k in keys))
            matches = [
                DetectedProvider(
                    provider=key,
                    provider_name=self.provider_name(key),
                    country=r.country,
                    network=r.network,
                )
                for key, r in zip(keys, results)
                if isinstance(r, PhoneValidation) and r.valid
            ]
            formatted = format_phone_number(phone_number, self.default_country_code)
        except Exception:
            logger.exception("provider detection failed")
            return OperationFailure(error=ErrorCode.DETECTION_ERROR,
                                    message="Erreur lors de la détection du provider")

        if not matches:
            return OperationFailure(error=ErrorCode.DETECTION_ERROR,
                                    message="Aucun provider Mobile Money détecté pour ce numéro")
        best = next((m for m in matches if m.network == m.provider_name), matches[0])
        return ProviderDetection(detected_provider=best.provider, providers=matches, phone_number=formatted)

    # ---- Catalog ----
    def calculate_fees(self, provider: str, amount: float) -> float:
        method = get_payment_method(self.registry.resolve_key(provider) or provider, self.methods)
        if not method or not method.fees:
            return 0
        return amount * method.fees / 100

    def check_transaction_limits(self, provider: str, amount: float) -> LimitCheck:
        method = get_payment_method(self.registry.resolve_key(provider) or provider, self.methods)
        if not method:
            return LimitCheck(valid=False, error="Provider non reconnu")

        currency = method.currencies[0] if method.currencies else None
        issues: List[str] = []
        if method.min_amount and amount < method.min_amount:
            issues.append(f"Montant minimum: {method.min_amount} {currency}")
        if method.max_amount and amount > method.max_amount:
            issues.append(f"Montant maximum: {method.max_amount} {currency}")

        return LimitCheck(
            valid=not issues,
            issues=issues,
            limits=Limits(min=method.min_amount, max=method.max_amount, currency=currency),
        )

    def get_providers_stats(self) -> Dict[str, ProviderStats]:
        stats = {}
        for key in self.registry.keys():
            method = get_payment_method(key, self.methods)
            stats[key] = ProviderStats(
                name=self.provider_name(key),
                enabled=method.enabled if method else False,
                available=method.available if method else False,
                countries=list(method.countries) if method else [],
                fees=method.fees if method else 0,
                limits=Limits(
                    min=method.min_amount if method else None,
                    max=method.max_amount if method else None,
                ),
            )
        return stats

    def get_available_providers(self, country: str = "CI", amount: Optional[float] = None) -> List[ProviderConfig]:
        return [m for m in available_methods(country, amount, self.methods) if m.id in self.registry]

    async def health_check(self) -> Dict[str, ProviderHealth]:
        adapters = self.registry.values()
        results = await asyncio.gather(*(a.health_check() for a in adapters))
        return {a.name: r for a, r in zip(adapters, results)}

    # ---- Webhooks ----
    async def handle_webhook(self, provider: str, body: bytes, signature: Optional[str] = None) -> WebhookResult:
        adapter = self.registry.get(provider)
        if adapter is None:
            return self._unsupported(provider)
        try:
            event = await adapter.handle_webhook(body, signature)
        except ProviderError as e:
            logger.warning("%s webhook rejected: %s", adapter.name, e.message)
            return self._tag(OperationFailure(error=ErrorCode.WEBHOOK_ERROR, message=e.message), adapter.name)
        except Exception as e:
            logger.exception("%s webhook processing failed", adapter.name)
            return self._tag(OperationFailure(error=ErrorCode.WEBHOOK_ERROR, message=str(e)), adapter.name)
        return WebhookAck(provider=adapter.name, provider_name=self.provider_name(adapter.name), data=event)
