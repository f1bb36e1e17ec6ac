# app/schemas/common.py
from pydantic import BaseModel
from typing import Dict, List


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
    error_code: str
    errors: Dict[str, List[str]] = {}


class HealthResponse(BaseModel):
    status: str
    app: str
    version: str
    database: str
