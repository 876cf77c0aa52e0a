from typing import Optional

from pydantic import BaseModel

from gradebook.grading.records import PeriodContext


class CompileRequest(BaseModel):
    academic_year_id: int
    # Omit to compile the whole academic year
    semester_id: Optional[int] = None

    def period(self) -> PeriodContext:
        return PeriodContext(academic_year_id=self.academic_year_id, semester_id=self.semester_id)


class PublishSemesterRequest(BaseModel):
    academic_year_id: int
    semester_id: int


class PublishYearRequest(BaseModel):
    academic_year_id: int
    send_roster: bool = False
