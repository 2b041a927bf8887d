"""
Row Store Models - One table per collection, one string column per header.

Column declaration order is the header order used when rows are serialized.
Every value is stored as text; a field that was never written reads back as "".
"""
from sqlalchemy import Column, String, Text
from typing import Dict, List, Type
from ..database import Base
from ..core import ids


def header(name: str, long_text: bool = False) -> Column:
    """Build a header column that defaults to the empty string."""
    return Column(name, Text if long_text else String, nullable=True, default="", server_default="")


class Patient(Base):
    """
    Patient Model - Registered patients

    Fields:
    - id: "PT-" prefixed identifier
    - full_name, dob, age, gender, phone: Demographics
    - complaint, diagnosis, medical_history: Clinical context shown to the radiologist
    - created_at: ISO timestamp
    """
    __tablename__ = "patients"

    id = Column(String, primary_key=True, index=True)
    full_name = header("full_name")
    dob = header("dob")
    age = header("age")
    gender = header("gender")
    phone = header("phone")
    complaint = header("complaint", long_text=True)
    diagnosis = header("diagnosis", long_text=True)
    medical_history = header("medical_history", long_text=True)
    created_at = header("created_at")

    def __repr__(self):
        return f"<Patient(id={self.id}, full_name='{self.full_name}')>"


class Visit(Base):
    """
    Visit Model - One patient encounter grouping one or more studies

    Fields:
    - id: "VS-" prefixed identifier
    - patient_id: Patient reference (not enforced)
    - status: Free text, e.g. "In Progress"
    - check_in_time: ISO date-time of check-in
    - referrer_doctor: Referring physician (optional)
    - assigned_doctor_id: Radiologist user reference
    - created_at: ISO timestamp
    """
    __tablename__ = "visits"

    id = Column(String, primary_key=True, index=True)
    patient_id = header("patient_id")
    status = header("status")
    check_in_time = header("check_in_time")
    referrer_doctor = header("referrer_doctor")
    assigned_doctor_id = header("assigned_doctor_id")
    created_at = header("created_at")

    def __repr__(self):
        return f"<Visit(id={self.id}, patient_id={self.patient_id})>"


class Study(Base):
    """
    Study Model - One imaging procedure within a visit

    Fields:
    - id: "ST-" prefixed identifier
    - visit_id: Visit reference (not enforced)
    - modality, region, study_name: What is imaged
    - assigned_doctor_id: Radiologist allowed to edit the report
    - status: Waiting, Scanning, Reporting, Reported or Completed
    - report_content: HTML fragment
    - image_links: JSON-encoded list of URLs
    - technician, price: Bookkeeping columns carried by older sheets
    - completed_at, created_at: ISO timestamps
    """
    __tablename__ = "studies"

    id = Column(String, primary_key=True, index=True)
    visit_id = header("visit_id")
    modality = header("modality")
    region = header("region")
    study_name = header("study_name")
    assigned_doctor_id = header("assigned_doctor_id")
    status = header("status")
    report_content = header("report_content", long_text=True)
    image_links = header("image_links", long_text=True)
    technician = header("technician")
    price = header("price")
    completed_at = header("completed_at")
    created_at = header("created_at")

    def __repr__(self):
        return f"<Study(id={self.id}, visit_id={self.visit_id}, status='{self.status}')>"


class Template(Base):
    """
    Template Model - Report boilerplate keyed by modality, region and finding

    `fields` holds a JSON-encoded list of placeholder descriptors.
    """
    __tablename__ = "templates"

    id = Column(String, primary_key=True, index=True)
    modality = header("modality")
    region = header("region")
    name = header("name")
    title = header("title")
    content = header("content", long_text=True)
    fields = header("fields", long_text=True)
    created_at = header("created_at")


class User(Base):
    """
    User Model - Staff accounts

    Fields:
    - id: "USR-" prefixed identifier
    - email, full_name: Identity
    - role: Reception, Technician, Radiologist or Admin
    - pin: Hashed 4-digit PIN
    - created_at: ISO timestamp
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    email = header("email")
    full_name = header("full_name")
    role = header("role")
    pin = header("pin")
    created_at = header("created_at")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


# Collection name -> model
COLLECTIONS: Dict[str, Type[Base]] = {
    "patients": Patient,
    "visits": Visit,
    "studies": Study,
    "templates": Template,
    "users": User,
}

# Collection name -> server id prefix
ID_PREFIXES: Dict[str, str] = {
    "patients": ids.PATIENT_PREFIX,
    "visits": ids.VISIT_PREFIX,
    "studies": ids.STUDY_PREFIX,
    "templates": ids.TEMPLATE_PREFIX,
    "users": ids.USER_PREFIX,
}


def headers(model) -> List[str]:
    """
    Get the header row of a collection in column order.
    """
    return [column.name for column in model.__table__.columns]
