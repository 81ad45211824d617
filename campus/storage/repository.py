import json
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from .models import Department, Program, Profile, Student, DocumentTemplate

logger = logging.getLogger(__name__)


class ProfileRepository:
    """
    Repositório de perfis (contas de usuário).
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_email(self, email: str) -> Optional[Profile]:
        return (
            self._db.query(Profile)
            .filter(func.lower(Profile.email) == email.strip().lower())
            .one_or_none()
        )

    def create_profile(
        self,
        email: str,
        full_name: str,
        phone: Optional[str] = None,
        role: str = "student",
    ) -> Profile:
        """
        Cria um perfil sem commit (a transação é da inscrição).
        """
        profile = Profile(email=email, full_name=full_name, phone=phone, role=role)
        self._db.add(profile)
        self._db.flush()
        logger.debug(f"Perfil criado: id={profile.id}, role={role}")
        return profile

    def convert_to_student(self, profile: Profile, full_name: Optional[str] = None) -> Profile:
        profile.role = "student"
        if full_name:
            profile.full_name = full_name
        self._db.flush()
        logger.debug(f"Perfil convertido para estudante: id={profile.id}")
        return profile


class StudentRepository:
    """
    Repositório de estudantes.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_profile_id(self, profile_id: str) -> Optional[Student]:
        return self._db.query(Student).filter(Student.profile_id == profile_id).one_or_none()

    def count_with_number_prefix(self, prefix: str) -> int:
        return (
            self._db.query(func.count(Student.id))
            .filter(Student.student_number.like(f"{prefix}%"))
            .scalar()
            or 0
        )

    def create_student(
        self,
        profile_id: str,
        student_number: str,
        program_id: str,
        year_level: int,
    ) -> Student:
        """
        Cria o estudante e faz commit da transação corrente.
        IntegrityError (número duplicado) é relançado após rollback.
        """
        try:
            student = Student(
                profile_id=profile_id,
                student_number=student_number,
                program_id=program_id,
                year_level=year_level,
                status="active",
            )
            self._db.add(student)
            self._db.commit()
            self._db.refresh(student)

            assert student.id is not None, (
                "Student persisted without id! "
                "This indicates a persistence error."
            )

            logger.debug(
                f"Estudante criado com sucesso: id={student.id}, number={student.student_number}"
            )
            return student
        except IntegrityError as e:
            logger.warning(
                f"Erro de integridade ao criar estudante: number={student_number}, "
                f"error={type(e).__name__}"
            )
            self._db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(
                f"Erro de banco de dados ao criar estudante: number={student_number}, "
                f"error={type(e).__name__}: {e}",
                exc_info=True,
            )
            self._db.rollback()
            raise


class ProgramRepository:
    """
    Catálogo de departamentos e programas (etapa 2 do assistente).
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, program_id: str) -> Optional[Program]:
        return self._db.get(Program, program_id)

    def list_departments(self) -> List[Department]:
        return self._db.query(Department).order_by(Department.name).all()

    def list_programs(self, department_id: Optional[str] = None) -> List[Program]:
        query = self._db.query(Program)
        if department_id:
            query = query.filter(Program.department_id == department_id)
        return query.order_by(Program.name).all()

    def program_departments(self) -> Dict[str, str]:
        return {p.id: p.department_id for p in self._db.query(Program).all()}

    def create_department(self, name: str, code: str) -> Department:
        department = Department(name=name, code=code)
        self._db.add(department)
        self._db.commit()
        return department

    def create_program(
        self, department_id: str, name: str, code: str, duration_years: int = 3
    ) -> Program:
        program = Program(
            department_id=department_id,
            name=name,
            code=code,
            duration_years=duration_years,
        )
        self._db.add(program)
        self._db.commit()
        return program


class TemplateRepository:
    """
    Persistência dos templates de documentos por seções.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, template_id: str) -> Optional[DocumentTemplate]:
        return self._db.get(DocumentTemplate, template_id)

    def save_template(
        self,
        name: str,
        sections: List[Dict[str, Any]],
        variables: List[str],
        template_id: Optional[str] = None,
        description: Optional[str] = None,
        document_type: Optional[str] = None,
        is_active: bool = True,
        is_default: bool = False,
    ) -> DocumentTemplate:
        """
        Cria ou atualiza um template; cada gravação incrementa a versão.
        """
        template = self.get(template_id) if template_id else None
        try:
            if template is None:
                template = DocumentTemplate(version=0)
                if template_id:
                    template.id = template_id
                self._db.add(template)

            template.name = name
            template.description = description
            template.document_type = document_type
            template.sections_json = json.dumps(sections, ensure_ascii=False)
            template.variables_json = json.dumps(variables, ensure_ascii=False)
            template.is_active = is_active
            template.is_default = is_default
            template.version = (template.version or 0) + 1
            template.updated_at = datetime.utcnow()

            self._db.commit()
            self._db.refresh(template)
            logger.debug(f"Template salvo: id={template.id}, version={template.version}")
            return template
        except SQLAlchemyError as e:
            logger.error(
                f"Erro de banco de dados ao salvar template: name={name}, "
                f"error={type(e).__name__}: {e}",
                exc_info=True,
            )
            self._db.rollback()
            raise
