"""
Composição de documentos por seções (templates, variáveis e pré-visualização).
"""

from .composer import (
    SectionType,
    TemplateSection,
    SectionList,
    compose_sections,
    substitute_variables,
    render_each_blocks,
    render_document,
    collect_variables,
)

__all__ = [
    "SectionType",
    "TemplateSection",
    "SectionList",
    "compose_sections",
    "substitute_variables",
    "render_each_blocks",
    "render_document",
    "collect_variables",
]
