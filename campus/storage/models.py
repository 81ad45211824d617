from uuid import uuid4
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey
from .database import Base


def _uuid() -> str:
    return uuid4().hex


class Department(Base):
    __tablename__ = "departments"

    id = Column(String(32), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    code = Column(String(20), nullable=False, unique=True)


class Program(Base):
    """
    Programa (formação) oferecido por um departamento.
    """
    __tablename__ = "programs"

    id = Column(String(32), primary_key=True, default=_uuid)
    department_id = Column(String(32), ForeignKey("departments.id"), nullable=False)
    name = Column(String(200), nullable=False)
    code = Column(String(20), nullable=False, unique=True)
    duration_years = Column(Integer, nullable=False, default=3)


class Profile(Base):
    """
    Conta de usuário. Vira estudante quando existe uma linha em students.
    """
    __tablename__ = "profiles"

    id = Column(String(32), primary_key=True, default=_uuid)
    email = Column(String(200), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(30), nullable=False, default="guest")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Student(Base):
    __tablename__ = "students"

    id = Column(String(32), primary_key=True, default=_uuid)
    profile_id = Column(String(32), ForeignKey("profiles.id"), nullable=False, unique=True)
    student_number = Column(String(30), nullable=False, unique=True)
    program_id = Column(String(32), ForeignKey("programs.id"), nullable=False)
    year_level = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    enrollment_date = Column(DateTime, default=datetime.utcnow, nullable=False)


class DocumentTemplate(Base):
    """
    Template de documento composto por seções (JSON em sections_json).
    """
    __tablename__ = "document_templates"

    id = Column(String(32), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    document_type = Column(String(100), nullable=True)
    sections_json = Column(Text, nullable=False, default="[]")
    variables_json = Column(Text, nullable=False, default="[]")
    is_active = Column(Boolean, nullable=False, default=True)
    is_default = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
