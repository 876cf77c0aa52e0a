from typing import Optional

from pydantic import BaseModel, Field, field_validator

from gradebook.grading.records import PeriodContext

DEFAULT_PURPOSE = "General"


class SendRosterRequest(BaseModel):
    academic_year_id: int
    # Omit to send the year roster
    semester_id: Optional[int] = None

    def period(self) -> PeriodContext:
        return PeriodContext(academic_year_id=self.academic_year_id, semester_id=self.semester_id)


class TranscriptRequest(BaseModel):
    purpose: Optional[str] = Field(DEFAULT_PURPOSE, max_length=255)

    @field_validator("purpose")
    @classmethod
    def default_purpose(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            return DEFAULT_PURPOSE
        return v.strip()
