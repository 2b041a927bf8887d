"""
Dispatcher Schemas - Pydantic models for action payloads and responses.

Payloads are permissive about extra keys (they are dropped, the way a sheet
ignores values without a header) and coerce numbers to strings since every
cell is text.
"""
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.permissions import STAFF_ROLES
from ..workflow import StudyStatus


class RowPayload(BaseModel):
    """Base for create payloads: optional id and creation timestamp."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[str] = Field(None, description="Omit to let the server assign one")
    created_at: Optional[str] = None


class PatientCreate(RowPayload):
    """
    Patient Creation Schema

    Fields:
    - full_name: Required
    - dob: Date of birth, YYYY-MM-DD
    - age, gender, phone: Demographics (optional)
    - complaint, diagnosis, medical_history: Clinical context (optional)
    """
    full_name: str = Field(..., min_length=1)
    dob: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    complaint: Optional[str] = None
    diagnosis: Optional[str] = None
    medical_history: Optional[str] = None


class VisitCreate(RowPayload):
    """Visit Creation Schema"""
    patient_id: str = Field(..., min_length=1)
    status: Optional[str] = "In Progress"
    check_in_time: Optional[str] = None
    referrer_doctor: Optional[str] = None
    assigned_doctor_id: Optional[str] = None


class StudyCreate(RowPayload):
    """
    Study Creation Schema

    New studies enter the workflow as Waiting unless a status is given.
    """
    visit_id: str = Field(..., min_length=1)
    modality: Optional[str] = None
    region: Optional[str] = None
    study_name: Optional[str] = None
    assigned_doctor_id: Optional[str] = None
    status: StudyStatus = StudyStatus.WAITING
    report_content: Optional[str] = None
    image_links: Union[List[str], str, None] = None
    technician: Optional[str] = None
    price: Optional[str] = None
    completed_at: Optional[str] = None


class UserCreate(RowPayload):
    """
    User Creation Schema

    `pin` may be a 4-digit PIN or an already hashed value; it is stored hashed.
    """
    email: str = Field(..., min_length=3)
    full_name: str = Field(..., min_length=1)
    role: str
    pin: str = Field(..., min_length=4)

    @field_validator("role")
    @classmethod
    def role_must_be_staff(cls, value: str) -> str:
        if value not in [role.value for role in STAFF_ROLES]:
            raise ValueError(f"role must be one of {[role.value for role in STAFF_ROLES]}")
        return value


class StudyStatusUpdate(BaseModel):
    """Schema for updateStudyStatus"""
    id: str
    status: StudyStatus


class ReportSave(BaseModel):
    """Schema for saveReport"""
    study_id: str
    content_html: str = ""


class StudyReference(BaseModel):
    """Schema for markComplete"""
    study_id: str


class ImageLinksUpdate(BaseModel):
    """Schema for updateImageLinks"""
    study_id: str
    image_links: List[str] = Field(default_factory=list)


class TemplateSave(RowPayload):
    """
    Template Save Schema - creates when id is absent or unknown, updates otherwise

    `fields` is a list of placeholder descriptors, stored JSON-encoded.
    """
    modality: str
    region: str
    name: str
    title: Optional[str] = None
    content: str = ""
    fields: Union[List[Dict[str, Any]], str, None] = None


class RecordReference(BaseModel):
    """Schema for deleteTemplate"""
    id: str