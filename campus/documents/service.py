import json
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import sessionmaker
from ..storage.database import session_scope
from ..storage.repository import TemplateRepository
from ..storage.models import DocumentTemplate
from ..domain.documents import default_sections, get_sample_preview_data
from .composer import TemplateSection, collect_variables, render_document, wrap_preview

logger = logging.getLogger(__name__)


def template_to_dict(template: DocumentTemplate) -> Dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "document_type": template.document_type,
        "sections": json.loads(template.sections_json or "[]"),
        "variables": json.loads(template.variables_json or "[]"),
        "is_active": template.is_active,
        "is_default": template.is_default,
        "version": template.version,
    }


class DocumentService:
    """
    Pré-visualização e persistência dos templates por seções.
    """

    def __init__(self, db_session_factory: sessionmaker, institution_name: str = "Mon École") -> None:
        self._db_session_factory = db_session_factory
        self._institution_name = institution_name

    def preview(
        self,
        sections: Optional[List[TemplateSection]] = None,
        variables: Optional[Dict[str, Any]] = None,
        document_type: Optional[str] = None,
        wrap: bool = True,
    ) -> str:
        """
        Monta o HTML do documento. Sem variáveis, usa os dados de exemplo;
        sem seções, usa as seções padrão.
        """
        if sections is None:
            sections = default_sections()
        if variables is None:
            variables = get_sample_preview_data(document_type, self._institution_name)

        html = render_document(sections, variables)
        logger.debug(
            f"Pré-visualização gerada: sections={len(sections)}, "
            f"variables={len(variables)}, length={len(html)}"
        )
        return wrap_preview(html) if wrap else html

    def save_template(
        self,
        name: str,
        sections: List[TemplateSection],
        template_id: Optional[str] = None,
        description: Optional[str] = None,
        document_type: Optional[str] = None,
        is_active: bool = True,
        is_default: bool = False,
    ) -> Dict[str, Any]:
        if not name or not name.strip():
            raise ValueError("Le nom du template est requis")

        with session_scope(self._db_session_factory) as db:
            template = TemplateRepository(db).save_template(
                name=name.strip(),
                sections=[s.to_dict() for s in sections],
                variables=collect_variables(sections),
                template_id=template_id,
                description=description,
                document_type=document_type,
                is_active=is_active,
                is_default=is_default,
            )
            logger.info(f"Template salvo: id={template.id}, version={template.version}")
            return template_to_dict(template)

    def get_template(self, template_id: str) -> Optional[Dict[str, Any]]:
        with session_scope(self._db_session_factory) as db:
            template = TemplateRepository(db).get(template_id)
            return template_to_dict(template) if template else None

    def preview_template(
        self, template_id: str, variables: Optional[Dict[str, Any]] = None
    ) -> Optional[str]:
        data = self.get_template(template_id)
        if data is None:
            return None
        sections = [TemplateSection.from_dict(s) for s in data["sections"]]
        return self.preview(sections, variables, document_type=data["document_type"])
