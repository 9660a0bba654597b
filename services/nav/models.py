from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = Field(gt=0)
    retrieved_at: datetime


class NavSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str  # ISO8601
    nav: float


class NavResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    nav: float
    contributions: Dict[str, float]  # symbol -> price * weight, unscaled


class HealthResponse(BaseModel):
    status: str = Field(default="OK")


class NavResponse(BaseModel):
    nav: float


class PriceResponse(BaseModel):
    price: float


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None

