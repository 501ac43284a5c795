import logging
from typing import Dict, Iterable, Iterator, List, Optional

import httpx

from ..errors import ProviderConfigurationError
from ..settings import Settings, settings as default_settings
from .base import MobileMoneyAdapter
from .mtn.adapter import MTNMoneyAdapter
from .orange.adapter import OrangeMoneyAdapter
from .wave.adapter import WavePaymentAdapter

logger = logging.getLogger(__name__)

# Provider name aliases -> canonical registry keys
_aliases = {
    # MTN
    "mtn": "mtn_money",
    "mtn_money": "mtn_money",
    "mtn-money": "mtn_money",
    "momo": "mtn_money",

    # Orange
    "orange": "orange_money",
    "orange_money": "orange_money",
    "orange-money": "orange_money",
    "om": "orange_money",

    # Wave
    "wave": "wave",
    "wave_money": "wave",
}


class ProviderRegistry:
    """Provider key -> adapter. Built once at startup and handed to whoever needs it."""

    def __init__(self, adapters: Iterable[MobileMoneyAdapter]):
        self._adapters: Dict[str, MobileMoneyAdapter] = {a.name: a for a in adapters}

    def resolve_key(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        n = name.strip().lower()
        key = _aliases.get(n, n)
        return key if key in self._adapters else None

    def get(self, name: Optional[str]) -> Optional[MobileMoneyAdapter]:
        key = self.resolve_key(name)
        return self._adapters.get(key) if key else None

    def keys(self) -> List[str]:
        return list(self._adapters)

    def values(self) -> List[MobileMoneyAdapter]:
        return list(self._adapters.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve_key(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)


def build_registry(config: Optional[Settings] = None,
                   transport: Optional[httpx.AsyncBaseTransport] = None,
                   strict: bool = False) -> ProviderRegistry:
    """
    Instantiate and initialize every adapter from settings.
    With strict=True a provider missing credentials aborts startup; otherwise
    it is kept registered but uninitialized, so its calls fail with a
    configuration error while numbering-plan checks keep working.
    """
    config = config or default_settings
    adapters: List[MobileMoneyAdapter] = [
        MTNMoneyAdapter(config, transport=transport),
        OrangeMoneyAdapter(config, transport=transport),
        WavePaymentAdapter(config, transport=transport),
    ]
    for adapter in adapters:
        try:
            adapter.initialize()
        except ProviderConfigurationError as e:
            if strict:
                raise
            logger.warning("Mobile money provider %s not configured: %s", adapter.name, e)
    return ProviderRegistry(adapters)
