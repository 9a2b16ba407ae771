from pydantic import BaseModel, Field
from typing import List


class MastersCreated(BaseModel):
    customers: int = 0
    items: int = 0


class ImportResult(BaseModel):
    message: str
    imported: int = 0
    skipped: int = 0
    masters_created: MastersCreated = Field(default_factory=MastersCreated)
    errors: List[str] = Field(default_factory=list)
