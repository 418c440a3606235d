from datetime import datetime
from typing import Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .errors import ValidationError

ORDER_STATUS_COMPLETE = "complete"
LOGO_APPROVED = True


class AdminRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., description="bcrypt hash")
    fingerprint: Optional[str] = None
    created_at: datetime


class ProductRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    # May be NaN: unparseable prices are stored as-is.
    price: float
    size: str = Field(..., min_length=1)
    image: Optional[str] = None
    description: str = ""


def build_document(model_class, **fields):
    """Validate ``fields`` against ``model_class`` and return a plain dict for the store."""
    try:
        return model_class(**fields).model_dump()
    except pydantic.ValidationError as exc:
        raise ValidationError(
            "Please provide all required fields", detail=str(exc)
        ) from exc


def clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_blank(value) -> bool:
    return clean_text(value) == ""
