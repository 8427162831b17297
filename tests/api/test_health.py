"""Tests for the /health endpoint."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from fastapi.testclient import TestClient


def test_get_health_returns_ok(app_client: TestClient) -> None:
    """Ensure GET /health returns 200 and deterministic schema."""
    response = app_client.get("/health")

    if response.status_code != HTTPStatus.OK:
        raise AssertionError
    data = cast("dict[str, object]", response.json())
    if data["status"] != "ok":
        raise AssertionError
    if "timestamp" not in data:
        raise AssertionError


def test_health_openapi_schema_is_explicit_and_stable(app_client: TestClient) -> None:
    """Ensure /health response schema is explicit in OpenAPI components."""
    response = app_client.get("/openapi.json")
    if response.status_code != HTTPStatus.OK:
        raise AssertionError
    openapi = cast("dict[str, object]", response.json())

    paths = cast("dict[str, object]", openapi["paths"])
    health_path = cast("dict[str, object]", paths["/health"])
    get_operation = cast("dict[str, object]", health_path["get"])
    responses = cast("dict[str, object]", get_operation["responses"])
    ok_response = cast("dict[str, object]", responses["200"])
    content = cast("dict[str, object]", ok_response["content"])
    app_json = cast("dict[str, object]", content["application/json"])
    schema = cast("dict[str, object]", app_json["schema"])

    if schema.get("$ref") != "#/components/schemas/HealthResponse":
        raise AssertionError

    components = cast("dict[str, object]", openapi["components"])
    schemas = cast("dict[str, object]", components["schemas"])
    health_schema = cast("dict[str, object]", schemas["HealthResponse"])
    properties = cast("dict[str, object]", health_schema["properties"])

    if health_schema.get("required") != ["status", "timestamp"]:
        raise AssertionError
    status_schema = cast("dict[str, object]", properties["status"])
    if status_schema.get("const") != "ok" and status_schema.get("enum") != ["ok"]:
        raise AssertionError
