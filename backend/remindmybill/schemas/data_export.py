from typing import Literal

from pydantic import BaseModel


class ImportResult(BaseModel):
    total_rows: int
    imported: int
    skipped: int
    errors: list[str]
    locks_changed: int = 0


ExportFormat = Literal["csv", "xlsx"]
