from typing import Optional


class ProviderConfigurationError(RuntimeError):
    """Provider credentials are missing; raised at initialize time and never swallowed."""


class UnsupportedOperation(Exception):
    """The provider API has no equivalent for the requested operation."""


class ProviderError(Exception):
    """
    Failure reported by (or while talking to) a provider.
    `code` is the provider-native error code, or a canonical code
    (TIMEOUT / NETWORK_ERROR) when `transport` is set.
    """

    def __init__(self, message: str, code: Optional[str] = None,
                 http_status: Optional[int] = None, transport: bool = False):
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status
        self.transport = transport
