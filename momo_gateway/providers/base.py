import json
import logging
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional, Pattern, Tuple

import httpx

from ..errors import ProviderConfigurationError, ProviderError, UnsupportedOperation
from ..schemas.payments import (
    CancellationReceipt,
    CustomerRecord,
    CustomerRequest,
    ErrorCode,
    MerchantBalance,
    OperationFailure,
    PaymentInitiated,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
    PaymentStatusReport,
    PhoneValidation,
    ProviderHealth,
    QRCodeCharge,
    RefundReceipt,
    RefundRequest,
    RefundResult,
    StatusResult,
    WebhookEvent,
)
from ..settings import Settings, settings as default_settings
from ..utils.clock import now_iso
from ..utils.http import client, retry_policy
from ..utils.phone import detect_country, format_phone_number
from ..utils.security import verify_hmac_sha256_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NumberingPlan:
    """Phone-number prefixes served by one network, plus the countries it operates in."""

    network: str
    patterns: Tuple[Pattern[str], ...]
    countries: Tuple[str, ...]

    @classmethod
    def of(cls, network: str, patterns: Iterable[str], countries: Iterable[str]) -> "NumberingPlan":
        return cls(network, tuple(re.compile(p) for p in patterns), tuple(countries))

    def matches(self, formatted_number: str) -> bool:
        return any(p.fullmatch(formatted_number) for p in self.patterns)


class MobileMoneyAdapter(ABC):
    """
    Shared flow for a mobile-money collection API.

    Subclasses contribute provider data (numbering plan, status/error tables,
    unit multiplier, header names, endpoints) and the payload/response hooks
    whose field names differ per provider. Requests are asynchronous: a
    successful `process_payment` only means the customer was asked to confirm
    (OTP or hosted page), never that funds moved.
    """

    name: str = ""              # registry key, e.g. "mtn_money"
    display_name: str = ""      # e.g. "MTN Money"
    settings_prefix: str = ""   # MTN_* / ORANGE_* / WAVE_* settings

    numbering_plan: NumberingPlan
    status_map: Dict[str, PaymentStatus] = {}
    error_map: Dict[str, ErrorCode] = {}

    amount_multiplier: int = 1  # provider API units per currency unit
    min_amount: int = 100
    requires_order_id: bool = True
    invalid_number_message: str = "Numéro de téléphone invalide"

    merchant_header: str = "X-Merchant-Code"
    secret_header: str = "X-Secret-Key"
    webhook_signature_header: str = "X-Signature"

    payment_path: str = ""
    validation_path: Optional[str] = None
    refund_success_status: str = "REFUNDED"

    def __init__(self, config: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or default_settings
        prefix = self.settings_prefix
        self.base_url = str(getattr(self.config, f"{prefix}_BASE_URL")).rstrip("/")
        self.timeout_sec = getattr(self.config, f"{prefix}_TIMEOUT_SEC")
        self.default_country_code = self.config.DEFAULT_COUNTRY_CODE
        self._transport = transport
        self._api_key: Optional[str] = None
        self._merchant_code: Optional[str] = None
        self._secret_key: Optional[str] = None
        self._initialized = False
        self._request = retry_policy(
            max_attempts=self.config.HTTP_RETRY_MAX_ATTEMPTS,
            backoff_sec=self.config.HTTP_RETRY_BACKOFF_SEC,
        )(self._send)

    # ---- Lifecycle ----
    def initialize(self, api_key: Optional[str] = None, merchant_code: Optional[str] = None,
                   secret_key: Optional[str] = None) -> "MobileMoneyAdapter":
        prefix = self.settings_prefix
        self._api_key = api_key or getattr(self.config, f"{prefix}_API_KEY")
        self._merchant_code = merchant_code or getattr(self.config, f"{prefix}_MERCHANT_CODE")
        self._secret_key = secret_key or getattr(self.config, f"{prefix}_SECRET_KEY")

        if not self._api_key or not self._merchant_code:
            self._initialized = False
            raise ProviderConfigurationError(f"Configuration {self.display_name} manquante")
        self._initialized = True
        return self

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ProviderConfigurationError(f"{self.display_name} n'est pas initialisé")

    # ---- HTTP ----
    def _auth_headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            self.merchant_header: self._merchant_code or "",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._secret_key:
            headers[self.secret_header] = self._secret_key
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def _send(self, method: str, path: str, json_payload: Optional[Dict[str, Any]],
                    headers: Dict[str, str]) -> httpx.Response:
        async with client(self.timeout_sec, transport=self._transport) as c:
            return await c.request(method, f"{self.base_url}{path}", json=json_payload, headers=headers)

    async def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                    idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        self._require_initialized()
        if method == "POST" and not idempotency_key:
            idempotency_key = str(uuid.uuid4())
        headers = self._auth_headers(idempotency_key)

        try:
            resp = await self._request(method, path, payload, headers)
        except httpx.TimeoutException as e:
            raise ProviderError(f"Timeout de connexion à {self.display_name}",
                                code=ErrorCode.TIMEOUT.value, transport=True) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Erreur réseau {self.display_name}: {e}",
                                code=ErrorCode.NETWORK_ERROR.value, transport=True) from e

        body = self._json(resp)
        if resp.is_error:
            code, message = self.extract_error(body)
            raise ProviderError(message or f"HTTP {resp.status_code}", code=code, http_status=resp.status_code)
        return body

    @staticmethod
    def _json(resp: httpx.Response) -> Dict[str, Any]:
        try:
            js = resp.json()
        except ValueError:
            return {"raw_text": resp.text or ""}
        return js if isinstance(js, dict) else {"data": js}

    def extract_error(self, body: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        return body.get("code"), body.get("message") or body.get("error_message")

    # ---- Units / mapping ----
    def to_provider_units(self, amount: float) -> int:
        scaled = Decimal(str(amount)) * self.amount_multiplier
        return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def from_provider_units(self, value: Any) -> Optional[float]:
        if value is None:
            return None
        return float(value) / self.amount_multiplier

    def map_status(self, native_status: Optional[str]) -> PaymentStatus:
        return self.status_map.get(str(native_status or "").strip().upper(), PaymentStatus.PENDING)

    def map_error(self, native_code: Optional[str]) -> ErrorCode:
        return self.error_map.get(native_code or "", ErrorCode.TRANSACTION_DECLINED)

    def _failure(self, exc: ProviderError, operation: str) -> OperationFailure:
        if exc.transport:
            error = ErrorCode(exc.code)
        else:
            error = self.map_error(exc.code)
        logger.warning("%s %s failed: code=%s mapped=%s message=%s",
                       self.name, operation, exc.code, error.value, exc.message)
        return OperationFailure(error=error, message=exc.message)

    # ---- Phone numbers ----
    def format_phone_number(self, phone_number: Optional[str]) -> str:
        return format_phone_number(phone_number, self.default_country_code)

    def detect_country(self, phone_number: Optional[str]) -> str:
        return detect_country(phone_number, known=self.numbering_plan.countries,
                              default_code=self.default_country_code)

    def is_valid_number(self, phone_number: Optional[str]) -> bool:
        if not phone_number:
            return False
        return self.numbering_plan.matches(self.format_phone_number(phone_number))

    def _phone_validation(self, phone_number: str, valid: bool,
                          customer_name: Optional[str] = None) -> PhoneValidation:
        return PhoneValidation(
            valid=valid,
            formatted_number=self.format_phone_number(phone_number),
            network=self.numbering_plan.network,
            country=self.detect_country(phone_number),
            customer_name=customer_name,
        )

    # ---- Validation ----
    def validate_payment_data(self, request: PaymentRequest) -> Optional[str]:
        """Returns the first problem found, or None."""
        if not request.amount or request.amount < self.min_amount:
            return f"Montant minimum: {self.min_amount} XOF"
        if not request.phone_number:
            return "Numéro de téléphone requis"
        if not self.is_valid_number(request.phone_number):
            return self.invalid_number_message
        if self.requires_order_id and not request.order_id:
            return "Référence de commande requise"
        return None

    def _metadata(self, request: PaymentRequest) -> Dict[str, Any]:
        return {
            "source": "buysell",
            "order_id": request.order_id,
            "timestamp": now_iso(),
            **request.metadata,
        }

    # ---- Provider hooks ----
    @abstractmethod
    def build_payment_payload(self, request: PaymentRequest, formatted_phone: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def parse_payment_response(self, body: Dict[str, Any]) -> PaymentInitiated:
        """Raise ProviderError when the provider did not accept the payment."""

    @abstractmethod
    def parse_status_response(self, body: Dict[str, Any]) -> PaymentStatusReport:
        ...

    @abstractmethod
    def build_refund_payload(self, request: RefundRequest) -> Dict[str, Any]:
        ...

    @abstractmethod
    def parse_refund_response(self, body: Dict[str, Any]) -> RefundReceipt:
        ...

    @abstractmethod
    def parse_webhook(self, data: Dict[str, Any]) -> WebhookEvent:
        ...

    def status_path(self, transaction_id: str) -> str:
        return f"/transaction/{transaction_id}"

    def refund_path(self, transaction_id: str) -> str:
        return "/refund"

    def build_validation_payload(self, formatted_phone: str) -> Dict[str, Any]:
        return {"msisdn": formatted_phone}

    def remote_validity(self, body: Dict[str, Any]) -> Tuple[Optional[bool], Optional[str]]:
        """(valid, customer_name) from a validation endpoint; valid=None means 'no answer'."""
        return body.get("valid"), None

    # ---- Adapter API ----
    async def process_payment(self, request: PaymentRequest) -> PaymentResult:
        problem = self.validate_payment_data(request)
        if problem:
            logger.info("%s payment rejected before sending: order=%s reason=%s",
                        self.name, request.order_id, problem)
            return OperationFailure(error=ErrorCode.VALIDATION_ERROR, message=problem)

        formatted_phone = self.format_phone_number(request.phone_number)
        payload = self.build_payment_payload(request, formatted_phone)
        logger.info("%s payment initiation: order=%s amount=%s phone=%s",
                    self.name, request.order_id, request.amount, formatted_phone)
        try:
            body = await self._call("POST", self.payment_path, payload,
                                    idempotency_key=request.idempotency_key)
            return self.parse_payment_response(body)
        except ProviderError as e:
            return self._failure(e, "payment")

    async def check_payment_status(self, transaction_id: str) -> StatusResult:
        try:
            body = await self._call("GET", self.status_path(transaction_id))
            return self.parse_status_response(body)
        except ProviderError as e:
            return self._failure(e, "status")

    async def process_refund(self, request: RefundRequest) -> RefundResult:
        payload = self.build_refund_payload(request)
        try:
            body = await self._call("POST", self.refund_path(request.transaction_id), payload,
                                    idempotency_key=request.idempotency_key)
            if str(body.get("status") or "").upper() != self.refund_success_status:
                code, message = self.extract_error(body)
                raise ProviderError(message or "Échec du remboursement", code=code)
            return self.parse_refund_response(body)
        except ProviderError as e:
            return self._failure(e, "refund")

    async def validate_phone_number(self, phone_number: str) -> PhoneValidation:
        if self.validation_path:
            formatted = self.format_phone_number(phone_number)
            try:
                body = await self._call("POST", self.validation_path, self.build_validation_payload(formatted))
                valid, customer_name = self.remote_validity(body)
                if valid is not None:
                    return self._phone_validation(phone_number, bool(valid), customer_name)
            except (ProviderError, ProviderConfigurationError) as e:
                logger.debug("%s remote number validation unavailable, using numbering plan: %s", self.name, e)
        return self._phone_validation(phone_number, self.is_valid_number(phone_number))

    async def handle_webhook(self, body: bytes, signature: Optional[str] = None) -> WebhookEvent:
        """Signature is an HMAC-SHA256 hex digest of the raw body, keyed by the secret key."""
        if self._secret_key and not verify_hmac_sha256_hex(self._secret_key, body, signature):
            raise ProviderError("Signature webhook invalide", code="INVALID_SIGNATURE")
        try:
            data = json.loads(body or b"")
        except ValueError as e:
            raise ProviderError("Webhook JSON invalide") from e
        if not isinstance(data, dict):
            raise ProviderError("Webhook JSON invalide")
        event = self.parse_webhook(data)
        logger.info("%s webhook: transaction=%s native=%s status=%s",
                    self.name, event.transaction_id, event.native_status, event.status.value)
        return event

    async def health_check(self) -> ProviderHealth:
        try:
            body = await self._call("GET", "/health")
            return ProviderHealth(healthy=True, service=self.display_name, timestamp=now_iso(), response=body)
        except (ProviderError, ProviderConfigurationError) as e:
            return ProviderHealth(healthy=False, service=self.display_name, timestamp=now_iso(), error=str(e))

    # Operations only some providers offer
    async def cancel_payment(self, charge_id: str) -> CancellationReceipt:
        raise UnsupportedOperation(f"Annulation non supportée par {self.display_name}")

    async def check_status_by_order_id(self, order_id: str) -> PaymentStatusReport:
        raise UnsupportedOperation(f"Recherche par commande non supportée par {self.display_name}")

    async def generate_qr_code(self, request: PaymentRequest) -> QRCodeCharge:
        raise UnsupportedOperation(f"QR code non supporté par {self.display_name}")

    async def get_merchant_balance(self) -> MerchantBalance:
        raise UnsupportedOperation(f"Solde marchand non disponible pour {self.display_name}")

    async def create_customer(self, request: CustomerRequest) -> CustomerRecord:
        raise UnsupportedOperation(f"Création de client non supportée par {self.display_name}")
