"""Shared enums for models and auth."""
import enum


class UserRole(enum.Enum):
    admin = "admin"
    school_head = "school_head"
    teacher = "teacher"
    class_head = "class_head"
    student = "student"
    parent = "parent"
    store_house = "store_house"


class SubmissionStatus(enum.Enum):
    draft = "draft"
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"


class PromotionRemark(str, enum.Enum):
    promoted = "Promoted"
    not_promoted = "Not Promoted"
