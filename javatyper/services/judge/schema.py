from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ExecRequest(BaseModel):
    code: Optional[str] = None
    stdin: Optional[str] = None


class RunResult(BaseModel):
    status: str
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    message: str = ""
    combined: str
    normalized: Optional[str] = None
    mock: bool = False
