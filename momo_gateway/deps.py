from fastapi import Request

from .service import MobileMoneyService


def get_service(request: Request) -> MobileMoneyService:
    """The facade built at startup, shared by every request."""
    return request.app.state.mobile_money
