"""Request bodies for grade entry, weights and submissions."""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from gradebook.grading.records import AssessmentWeight


class WeightItem(BaseModel):
    assessment_type_id: int
    weight_percent: float = Field(..., ge=0, le=100)


class SetWeightsRequest(BaseModel):
    class_id: int
    subject_id: int
    semester_id: int
    weights: List[WeightItem] = Field(..., min_length=1)

    def to_records(self) -> List[AssessmentWeight]:
        return [AssessmentWeight(w.assessment_type_id, w.weight_percent) for w in self.weights]


class GradeCreate(BaseModel):
    student_id: int
    class_id: int
    subject_id: int
    semester_id: int
    assessment_type_id: int
    score: float = Field(..., ge=0)
    max_score: Optional[float] = Field(None, gt=0)
    remarks: Optional[str] = None


class BulkGradeRow(BaseModel):
    student_id: int
    score: float
    remarks: Optional[str] = None


class BulkGradeRequest(BaseModel):
    class_id: int
    subject_id: int
    semester_id: int
    assessment_type_id: int
    max_score: Optional[float] = Field(None, gt=0)
    grades: List[BulkGradeRow] = Field(..., min_length=1)


class GradeUpdate(BaseModel):
    score: float = Field(..., ge=0)
    remarks: Optional[str] = None


class SubmitRequest(BaseModel):
    semester_id: int
    remarks: Optional[str] = None


class ApproveRequest(BaseModel):
    remarks: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Rejection reason is required")
        return v.strip()
