import pytest
from commerce.api import (
    checkout_router,
    inventory_router,
    maintenance_router,
    order_router,
    payment_router,
    voucher_router,
)
from commerce.api.errors import register_error_handlers
from commerce.domain import commerce
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient


@pytest.fixture()
def app(services):
    app = FastAPI()
    app.state.services = services

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        with commerce.domain_context():
            return await call_next(request)

    register_error_handlers(app)
    for router in (
        checkout_router,
        maintenance_router,
        payment_router,
        order_router,
        inventory_router,
        voucher_router,
    ):
        app.include_router(router)
    return app


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False)
