from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Example(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    filename: str
    code: str
    output: Optional[str] = None


class CurationPolicy(BaseModel):
    min_length: int = Field(default=60, ge=0)
    max_length: int = Field(default=2500, ge=0)
    limit: int = Field(default=100, ge=1)


class ExamplesPayload(BaseModel):
    examples: List[Example]
