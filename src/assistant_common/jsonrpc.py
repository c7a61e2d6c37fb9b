import uuid
from typing import Any

from starlette.responses import JSONResponse, Response


class RequestFormatJSONRPC:
    def __init__(
            self,
            method: str,
            params: dict | None = None,
            jsonrpc: str = "2.0",
            id: str | int | None = None,
    ):
        self.jsonrpc = jsonrpc
        self.id = id if id is not None else str(uuid.uuid4())
        self.method = method
        self.params = params or {}

    def to_dict(self) -> dict:
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
            "params": self.params,
        }


class ErrorFormatJSONRPC:
    """JSON-RPC error envelope answered before a request reaches the agent."""

    def __init__(
            self,
            code: int,
            message: str,
            id: str | int | None = None,
            data: Any = None,
            http_status: int = 200,
    ):
        self.code = code
        self.message = message
        self.id = id
        self.data = data
        self.http_status = http_status

    def to_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return {"jsonrpc": "2.0", "id": self.id, "error": error}

    def to_response(self) -> Response:
        return JSONResponse(content=self.to_dict(), status_code=self.http_status)
