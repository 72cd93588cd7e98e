from typing import Optional

from pydantic import BaseModel


class HealthStatus(BaseModel):
    name: str
    status: str
    detail: Optional[str] = None
