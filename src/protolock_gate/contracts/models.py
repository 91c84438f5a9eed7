from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ReportStatus(str, Enum):
    initialized = "initialized"
    passed = "passed"
    failed = "failed"
    allowed = "allowed"
    skipped = "skipped"
    error = "error"


class CheckReport(BaseModel):
    status: ReportStatus
    message: str
    diagnostics: List[str] = Field(default_factory=list)
    proto_root: Optional[str] = None
    lock_file: Optional[str] = None
    binary: Optional[str] = None
    plugins: List[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
