from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_service
from ..schemas.payments import CustomerRequest, PaymentRequest, PhoneNumberIn, RefundRequest
from ..service import MobileMoneyService

router = APIRouter()


def _known(service: MobileMoneyService, provider: str) -> str:
    key = service.registry.resolve_key(provider)
    if not key:
        raise HTTPException(status_code=404, detail=f"Provider Mobile Money non supporté: {provider}")
    return key


# ---------- Catalog ----------
@router.get("/providers")
async def providers(service: MobileMoneyService = Depends(get_service)):
    return service.get_providers_stats()


@router.get("/providers/available")
async def available_providers(country: str = "CI", amount: Optional[float] = None,
                              service: MobileMoneyService = Depends(get_service)):
    return service.get_available_providers(country.upper(), amount)


@router.get("/providers/health")
async def providers_health(service: MobileMoneyService = Depends(get_service)):
    return await service.health_check()


@router.get("/providers/{provider}/fees")
async def provider_fees(provider: str, amount: float, service: MobileMoneyService = Depends(get_service)):
    key = _known(service, provider)
    return {"provider": key, "amount": amount, "fees": service.calculate_fees(key, amount)}


@router.get("/providers/{provider}/limits")
async def provider_limits(provider: str, amount: float, service: MobileMoneyService = Depends(get_service)):
    return service.check_transaction_limits(_known(service, provider), amount)


@router.get("/providers/{provider}/balance")
async def provider_balance(provider: str, service: MobileMoneyService = Depends(get_service)):
    return await service.get_merchant_balance(_known(service, provider))


@router.post("/providers/{provider}/customers")
async def create_customer(provider: str, body: CustomerRequest, service: MobileMoneyService = Depends(get_service)):
    return await service.create_customer(_known(service, provider), body)


# ---------- Payments ----------
@router.post("/payments/{provider}")
async def create_payment(provider: str, body: PaymentRequest, service: MobileMoneyService = Depends(get_service)):
    """
    Starts a collection. `success=True` only means the customer was asked to
    confirm; poll the status endpoint or wait for the provider webhook.
    """
    return await service.process_payment(_known(service, provider), body)


@router.post("/payments/{provider}/refunds")
async def create_refund(provider: str, body: RefundRequest, service: MobileMoneyService = Depends(get_service)):
    return await service.process_refund(_known(service, provider), body)


@router.post("/payments/{provider}/qrcode")
async def create_qr_code(provider: str, body: PaymentRequest, service: MobileMoneyService = Depends(get_service)):
    return await service.generate_qr_code(_known(service, provider), body)


@router.get("/payments/{provider}/orders/{order_id}")
async def order_status(provider: str, order_id: str, service: MobileMoneyService = Depends(get_service)):
    return await service.check_status_by_order_id(_known(service, provider), order_id)


@router.get("/payments/{provider}/{transaction_id}")
async def payment_status(provider: str, transaction_id: str, service: MobileMoneyService = Depends(get_service)):
    return await service.check_payment_status(_known(service, provider), transaction_id)


@router.post("/payments/{provider}/{charge_id}/cancel")
async def cancel_payment(provider: str, charge_id: str, service: MobileMoneyService = Depends(get_service)):
    return await service.cancel_payment(_known(service, provider), charge_id)


# ---------- Phone numbers ----------
@router.post("/phone/detect")
async def detect_provider(body: PhoneNumberIn, service: MobileMoneyService = Depends(get_service)):
    return await service.detect_provider(body.phone_number)


@router.post("/phone/{provider}/validate")
async def validate_phone(provider: str, body: PhoneNumberIn, service: MobileMoneyService = Depends(get_service)):
    return await service.validate_phone_number(_known(service, provider), body.phone_number)
