from enum import Enum
from typing import Optional

from pydantic import BaseModel

SLUG_PATTERN = r"^[a-zA-Z0-9_-]+$"
SLUG_MAX_LENGTH = 255


class UnitType(str, Enum):
    ORGANIZATION = "organization"
    UNIT = "unit"


class DbStrategy(str, Enum):
    SHARED = "shared"
    ISOLATED = "isolated"


class UnitState(str, Enum):
    ROOT_ATTACHED = "root_attached"
    ATTACHED = "attached"
    DETACHED = "detached"


class ErrorBody(BaseModel):
    code: str
    message: str
    status: int
    details: Optional[list[dict]] = None


class ErrorResponse(BaseModel):
    error: ErrorBody
