from enum import Enum
from pydantic import BaseModel


class DocumentationStatus(str, Enum):
    pending = "pending"
    partial = "partial"
    complete = "complete"
    pushed_to_sales = "pushed_to_sales"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    ok: bool = True
