from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from sessiongate.config import Config


def set_custom_openapi(app: FastAPI, config: Config) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="SessionGate API",
            version="0.1.0",
            summary="Opaque-token session tracking with sliding expiration",
            routes=app.routes,
        )

        # Both headers are required together on protected routes
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "IdentityHeader": {
                "type": "apiKey",
                "in": "header",
                "name": config.identity_header,
                "description": "Username or user id of the caller",
            },
            "SessionTokenHeader": {
                "type": "apiKey",
                "in": "header",
                "name": config.token_header,
                "description": "Opaque session token returned by login",
            },
        }
        openapi_schema["security"] = [{"IdentityHeader": [], "SessionTokenHeader": []}]

        public_endpoints = {
            ("GET", "/health"),
            ("POST", "/api/auth/login"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/auth/session"),
        }

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in public_endpoints:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ApiResponse[T](BaseModel):
    """Standard success envelope."""

    success: bool = Field(True, description="Always true for successful responses")
    message: str = Field(..., description="Human-readable message")
    code: str = Field("SUCCESS", description="Machine-readable result code")
    data: T | None = Field(None, description="Response payload")


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = Field(False, description="Always false for errors")
    message: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Machine-readable error code")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"success": False, "message": "Session expired. Please login again.", "code": "SESSION_EXPIRED"},
                {"success": False, "message": "User 'bob' not found", "code": "USER_NOT_FOUND"},
                {"success": False, "message": "Admin privileges required", "code": "ACCESS_DENIED"},
            ]
        }
    }
