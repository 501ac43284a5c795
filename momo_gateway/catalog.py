"""
Static catalog of the mobile-money payment methods offered by the marketplace.
Loaded once at import and never mutated at runtime.
"""
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ProviderConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    operator: str
    enabled: bool = True
    available: bool = True
    countries: Tuple[str, ...] = ()
    currencies: Tuple[str, ...] = ()
    fees: float = 0  # percent
    min_amount: Optional[int] = None
    max_amount: Optional[int] = None
    instructions: str = ""


PAYMENT_METHODS: Dict[str, ProviderConfig] = {
    "mtn_money": ProviderConfig(
        id="mtn_money",
        name="MTN Money",
        operator="MTN",
        countries=("CI", "SN", "CM", "GH"),
        currencies=("XOF",),
        fees=1.5,
        min_amount=100,
        max_amount=500_000,
        instructions="Vous recevrez une demande de paiement sur votre mobile",
    ),
    "orange_money": ProviderConfig(
        id="orange_money",
        name="Orange Money",
        operator="Orange",
        countries=("CI", "SN", "CM", "BF", "ML", "GN"),
        currencies=("XOF", "XAF"),
        fees=1.5,
        min_amount=100,
        max_amount=500_000,
        instructions="Confirmez le paiement via votre application Orange Money",
    ),
    "wave": ProviderConfig(
        id="wave",
        name="Wave",
        operator="Wave",
        countries=("CI", "SN"),
        currencies=("XOF",),
        fees=1,
        min_amount=100,
        max_amount=1_000_000,
        instructions="Scannez le code QR ou entrez votre numéro Wave",
    ),
}

# Mobile-money methods offered per country, in display order
METHODS_BY_COUNTRY: Dict[str, Tuple[str, ...]] = {
    "CI": ("mtn_money", "orange_money", "wave"),
    "SN": ("orange_money", "wave"),
    "CM": ("orange_money",),
}


def get_payment_method(provider: Optional[str],
                       methods: Optional[Dict[str, ProviderConfig]] = None) -> Optional[ProviderConfig]:
    if not provider:
        return None
    table = PAYMENT_METHODS if methods is None else methods
    return table.get(provider.strip().lower())


def available_methods(country: str = "CI", amount: Optional[float] = None,
                      methods: Optional[Dict[str, ProviderConfig]] = None) -> List[ProviderConfig]:
    """Enabled methods for a country (unknown countries fall back to CI), filtered by limits when `amount` is given."""
    table = PAYMENT_METHODS if methods is None else methods
    ids = METHODS_BY_COUNTRY.get((country or "").upper()) or METHODS_BY_COUNTRY["CI"]
    out = []
    for pid in ids:
        method = table.get(pid)
        if not method or not (method.enabled and method.available):
            continue
        if amount is not None:
            if method.min_amount and amount < method.min_amount:
                continue
            if method.max_amount and amount > method.max_amount:
                continue
        out.append(method)
    return out
