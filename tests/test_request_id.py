"""Tests for request ID middleware and log filter."""

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIdFilter,
    RequestIdMiddleware,
    get_request_id,
)


def make_app():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/echo")
    async def echo():
        return {"request_id": get_request_id()}

    return app


class TestRequestIdMiddleware:
    def test_generates_id(self):
        client = TestClient(make_app())
        response = client.get("/echo")

        generated = response.headers[REQUEST_ID_HEADER]
        assert generated
        assert response.json()["request_id"] == generated

    def test_reuses_incoming_id(self):
        client = TestClient(make_app())
        response = client.get("/echo", headers={REQUEST_ID_HEADER: "abc-123"})

        assert response.headers[REQUEST_ID_HEADER] == "abc-123"
        assert response.json()["request_id"] == "abc-123"

    def test_oversized_incoming_id_is_replaced(self):
        client = TestClient(make_app())
        response = client.get("/echo", headers={REQUEST_ID_HEADER: "x" * 500})

        assert response.headers[REQUEST_ID_HEADER] != "x" * 500
        assert len(response.headers[REQUEST_ID_HEADER]) == 32

    def test_context_cleared_after_request(self):
        TestClient(make_app()).get("/echo")
        assert get_request_id() is None


class TestRequestIdFilter:
    def test_outside_request_uses_dash(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "-"
