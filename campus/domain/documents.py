"""
Seções padrão e dados de exemplo para a pré-visualização de documentos.

Todos os dados são fixos (hard-coded); servem apenas para a pré-visualização
quando o chamador não informa variáveis.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from ..documents.composer import SectionType, TemplateSection


def default_sections() -> List[TemplateSection]:
    """
    Cabeçalho, informações do estudante e rodapé de um template novo.
    """
    return [
        TemplateSection(
            id="header-1",
            type=SectionType.HEADER,
            name="En-tête du document",
            content=(
                '<h1 class="text-center font-bold text-2xl mb-4">{{document_type}}</h1>\n'
                '<div class="text-center mb-6">\n'
                "  <p>Institution: {{institution_name}}</p>\n"
                "  <p>Date: {{issue_date}}</p>\n"
                "</div>"
            ),
            variables=["document_type", "institution_name", "issue_date"],
            order=1,
            styles={"textAlign": "center", "margin": "0 0 24px 0", "padding": "16px"},
        ),
        TemplateSection(
            id="content-1",
            type=SectionType.CONTENT,
            name="Informations étudiant",
            content=(
                '<div class="mb-6">\n'
                "  <h2 class=\"font-semibold text-lg mb-2\">Informations de l'étudiant</h2>\n"
                "  <p><strong>Nom:</strong> {{student_name}}</p>\n"
                "  <p><strong>Numéro étudiant:</strong> {{student_number}}</p>\n"
                "  <p><strong>Programme:</strong> {{program_name}}</p>\n"
                "</div>"
            ),
            variables=["student_name", "student_number", "program_name"],
            order=2,
            styles={"margin": "16px 0", "padding": "16px", "backgroundColor": "#f8f9fa"},
        ),
        TemplateSection(
            id="footer-1",
            type=SectionType.FOOTER,
            name="Pied de page",
            content=(
                '<div class="text-center mt-8 pt-4 border-t">\n'
                '  <p class="text-sm text-gray-600">Ce document est certifié conforme</p>\n'
                '  <p class="text-sm">Délivré le {{issue_date}}</p>\n'
                '  <div class="mt-4">\n'
                "    <p>Signature du directeur</p>\n"
                '    <div class="border-b border-gray-400 w-48 mx-auto mt-4"></div>\n'
                "  </div>\n"
                "</div>"
            ),
            variables=["issue_date"],
            order=3,
            styles={"textAlign": "center", "margin": "32px 0 0 0", "padding": "16px"},
        ),
    ]


def get_sample_preview_data(
    document_type: Optional[str] = None,
    institution_name: str = "UNIVERSITÉ DE TECHNOLOGIE",
) -> Dict[str, Any]:
    """
    Dados fictícios de um relevé de notes para a pré-visualização.
    """
    return {
        "document_type": document_type or "Document",
        "document_title": "RELEVÉ DE NOTES OFFICIEL",
        "document_reference": "REL2024-001-DOC",
        "institution_name": institution_name,
        "institution_subtitle": "École Supérieure d'Ingénierie",
        "institution_address": "123 Rue de l'Innovation, 75001 Paris",
        "institution_phone": "+33 1 23 45 67 89",
        "institution_email": "contact@universite-tech.fr",
        "student_name": "DUPONT Jean",
        "student_number": "2024001",
        "birth_date": "15/03/2001",
        "birth_place": "Paris",
        "program_name": "Master Informatique",
        "level_name": "M2",
        "specialization_name": "Intelligence Artificielle",
        "class_name": "M2-IA-2024",
        "enrollment_date": "15/09/2023",
        "academic_year": "2023-2024",
        "semester_name": "Premier Semestre",
        "overall_average": "16.17",
        "total_ects": "30",
        "overall_mention": "Bien",
        "rank": "3",
        "total_students": "45",
        "validation_status": "Validé",
        "director_title": "Professeur",
        "director_name": "Dr. Marie MARTIN",
        "city": "Paris",
        "issue_date": date.today().strftime("%d/%m/%Y"),
        "grades": [
            {"subject_name": "Mathématiques Appliquées", "subject_code": "MAT101", "ects_credits": 6, "grade": "16.5", "mention": "Bien"},
            {"subject_name": "Algorithmique Avancée", "subject_code": "INF201", "ects_credits": 4, "grade": "14.0", "mention": "Assez Bien"},
            {"subject_name": "Bases de Données", "subject_code": "INF301", "ects_credits": 5, "grade": "18.0", "mention": "Très Bien"},
            {"subject_name": "Intelligence Artificielle", "subject_code": "IA401", "ects_credits": 6, "grade": "17.5", "mention": "Très Bien"},
            {"subject_name": "Projet Tutoré", "subject_code": "PROJ501", "ects_credits": 9, "grade": "15.0", "mention": "Bien"},
        ],
    }
