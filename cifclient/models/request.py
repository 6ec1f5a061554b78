"""
Pydantic model for outbound API requests

A request is built once per call and re-issued unchanged when the remote
asks the client to back off
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any
from enum import Enum


class HTTPMethod(str, Enum):
    """HTTP verbs used by the CIF v3 API"""
    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"
    PATCH = "PATCH"


class APIRequest(BaseModel):
    """
    Single request against the threat intel API

    Token and proxy may be left empty, in which case the transport falls
    back to the configured values.
    """

    method: HTTPMethod = Field(
        default=HTTPMethod.GET,
        description="HTTP method"
    )

    uri: str = Field(
        ...,
        description="Absolute URL or path relative to the configured remote",
        examples=["https://cif.example.com/indicators", "/ping"]
    )

    token: str = Field(
        default="",
        description="API token sent as 'Token token=<token>'"
    )

    body: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Query parameters for GET, JSON body otherwise"
    )

    proxy: Optional[str] = Field(
        default=None,
        description="HTTP(S) proxy URL"
    )

    verbose: bool = Field(
        default=False,
        description="Log request details at INFO instead of DEBUG"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "method": "GET",
                "uri": "/indicators",
                "token": "abc123",
                "body": {"indicator": "example.com", "limit": 10},
                "proxy": None,
                "verbose": False
            }
        }
    )
