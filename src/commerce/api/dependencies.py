"""FastAPI dependencies: hand routes the collaborators built at startup."""

from fastapi import Request

from commerce.wiring import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
