"""
Composição de documentos a partir de seções HTML com variáveis {{nome}}.

Não é um motor de templates: a substituição é textual, sem escape e sem
escopos. O único bloco suportado é {{#each colecao}}...{{/each}}.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)


SECTION_SEPARATOR = "\n\n"
EACH_BLOCK_PATTERN = re.compile(r"\{\{#each (\w+)\}\}([\s\S]*?)\{\{/each\}\}")


class SectionType(str, Enum):
    HEADER = "header"
    CONTENT = "content"
    FOOTER = "footer"


@dataclass
class TemplateSection:
    """
    Fragmento HTML nomeado e ordenável de um documento.
    """
    id: str
    type: SectionType
    content: str
    name: str = ""
    variables: List[str] = field(default_factory=list)
    order: int = 0
    is_active: bool = True
    styles: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "content": self.content,
            "variables": list(self.variables),
            "order": self.order,
            "is_active": self.is_active,
            "styles": dict(self.styles),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TemplateSection":
        return cls(
            id=str(data["id"]),
            type=SectionType(data.get("type", "content")),
            content=data.get("content", ""),
            name=data.get("name", ""),
            variables=list(data.get("variables") or []),
            order=int(data.get("order", 0)),
            is_active=bool(data.get("is_active", True)),
            styles=dict(data.get("styles") or {}),
        )


def grade_row(grade: Mapping[str, Any]) -> str:
    return f"""
          <tr>
            <td class="border border-gray-300 px-4 py-2">{grade.get('subject_name', '')}</td>
            <td class="border border-gray-300 px-4 py-2 text-center">{grade.get('subject_code', '')}</td>
            <td class="border border-gray-300 px-4 py-2 text-center">{grade.get('ects_credits', '')}</td>
            <td class="border border-gray-300 px-4 py-2 text-center font-medium">{grade.get('grade', '')}</td>
            <td class="border border-gray-300 px-4 py-2 text-center">{grade.get('mention', '')}</td>
          </tr>
        """


# Coleções com marcação de linha fixa: o corpo do bloco é ignorado
ROW_RENDERERS: Dict[str, Callable[[Mapping[str, Any]], str]] = {
    "grades": grade_row,
}


def compose_sections(sections: Iterable[TemplateSection]) -> str:
    """
    Concatena as seções ativas em ordem crescente de `order`.
    """
    active = sorted((s for s in sections if s.is_active), key=lambda s: s.order)
    return SECTION_SEPARATOR.join(s.content for s in active)


def substitute_variables(template: str, values: Mapping[str, Any]) -> str:
    """
    Substitui todas as ocorrências literais de {{nome}} pelos valores string.
    Placeholders sem valor permanecem no texto.
    """
    result = template
    for name, value in values.items():
        if isinstance(value, str):
            result = result.replace(f"{{{{{name}}}}}", value)
    return result


def _render_body(body: str, item: Any) -> str:
    if isinstance(item, Mapping):
        return substitute_variables(body, {k: str(v) for k, v in item.items()})
    return body.replace("{{this}}", str(item))


def render_each_blocks(template: str, values: Mapping[str, Any]) -> str:
    """
    Expande os blocos {{#each colecao}}...{{/each}} cuja coleção é uma lista.
    """

    def replace(match: "re.Match[str]") -> str:
        name, body = match.group(1), match.group(2)
        items = values.get(name)
        if not isinstance(items, (list, tuple)):
            return match.group(0)
        row_renderer = ROW_RENDERERS.get(name)
        if row_renderer is not None:
            return "".join(row_renderer(item) for item in items)
        return "".join(_render_body(body, item) for item in items)

    return EACH_BLOCK_PATTERN.sub(replace, template)


def render_document(sections: Iterable[TemplateSection], values: Mapping[str, Any]) -> str:
    """
    Blocos {{#each}} são expandidos antes da substituição global, para que
    os campos de cada item não sejam sobrescritos por variáveis homônimas.
    """
    html = compose_sections(sections)
    html = render_each_blocks(html, values)
    return substitute_variables(html, values)


def wrap_preview(html: str) -> str:
    return f"""
      <div style="max-width: 800px; margin: 0 auto; font-family: Arial, sans-serif; line-height: 1.6;">
        {html}
      </div>
    """


def collect_variables(sections: Iterable[TemplateSection]) -> List[str]:
    """
    Lista de variáveis declaradas pelas seções, sem duplicatas, na ordem de aparição.
    """
    seen: Dict[str, None] = {}
    for section in sections:
        for variable in section.variables:
            seen.setdefault(variable, None)
    return list(seen)


def find_placeholders(template: str) -> List[str]:
    return sorted(set(re.findall(r"\{\{(\w+)\}\}", template)))


class SectionList:
    """
    Edição da lista de seções de um template (adicionar, remover, mover).
    """

    def __init__(self, sections: Optional[Iterable[TemplateSection]] = None) -> None:
        self._sections: List[TemplateSection] = sorted(sections or [], key=lambda s: s.order)

    @property
    def sections(self) -> List[TemplateSection]:
        return list(self._sections)

    def add(self, section: TemplateSection) -> TemplateSection:
        section.order = len(self._sections) + 1
        self._sections.append(section)
        self._sections.sort(key=lambda s: s.order)
        return section

    def remove(self, section_id: str) -> bool:
        before = len(self._sections)
        self._sections = [s for s in self._sections if s.id != section_id]
        return len(self._sections) != before

    def update(self, section_id: str, **changes: Any) -> Optional[TemplateSection]:
        for section in self._sections:
            if section.id == section_id:
                for key, value in changes.items():
                    if not hasattr(section, key):
                        raise ValueError(f"Atributo de seção desconhecido: {key}")
                    setattr(section, key, value)
                return section
        return None

    def move(self, section_id: str, direction: str) -> bool:
        """
        Troca a seção com a vizinha ("up" ou "down") e renumera as ordens a partir de 1.
        """
        index = next((i for i, s in enumerate(self._sections) if s.id == section_id), -1)
        if index == -1:
            return False

        target = index - 1 if direction == "up" else index + 1
        if not 0 <= target < len(self._sections):
            return False

        self._sections[index], self._sections[target] = self._sections[target], self._sections[index]
        for position, section in enumerate(self._sections, start=1):
            section.order = position
        return True
