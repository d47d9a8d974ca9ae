from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = True
    message: Optional[str] = None
    error: Optional[str] = None
    data: Optional[DataT] = None

# Largest primary key a signed 64-bit INTEGER column can hold.
MAX_RECORD_ID = 2**63 - 1
