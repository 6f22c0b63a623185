import re
from datetime import MINYEAR, datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, field_validator, model_validator


Granularity = Literal["day", "month", "year"]

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def parse_iso_moment(value):
    """ISO-8601 date or date-time string to a naive UTC datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class FinancialReportRequest(BaseModel):
    start_date: datetime
    end_date: datetime
    granularity: Granularity = "month"
    status: Optional[str] = None

    class Config:
        extra = "forbid"

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, value):
        return parse_iso_moment(value)

    @model_validator(mode="after")
    def check_interval(self):
        if self.end_date.date() < self.start_date.date():
            raise ValueError("end_date must not be before start_date")
        return self


def parse_month(value: str) -> tuple[int, int]:
    match = MONTH_PATTERN.match((value or "").strip())
    if not match:
        raise ValueError("month must be formatted as YYYY-MM")

    year, month = int(match.group(1)), int(match.group(2))
    if year < MINYEAR:
        raise ValueError(f"year must be at least {MINYEAR:04d}")
    if not 1 <= month <= 12:
        raise ValueError("month number must be between 01 and 12")
    return year, month
