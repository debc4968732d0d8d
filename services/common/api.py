from typing import Any, Dict

from fastapi.responses import JSONResponse


def error_response(message: str) -> Dict[str, Any]:
    return {"error": message}


def error_json(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(message))
