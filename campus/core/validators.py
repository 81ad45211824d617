"""
Funções para normalizar e validar os campos do assistente de inscrição.
"""
import re
from datetime import date
from typing import Dict, Optional, List, Any

from .registration_state import RegistrationFormData, WizardStep


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Campos obrigatórios por etapa. A etapa 3 não tem campos: o "próximo" dispara a inscrição.
STEP_REQUIRED_FIELDS: Dict[WizardStep, List[str]] = {
    WizardStep.PERSONAL_INFO: [
        "first_name",
        "last_name",
        "email",
        "phone",
        "birth_date",
        "address",
    ],
    WizardStep.PROGRAM_SELECTION: ["department_id", "program_id", "year_level"],
    WizardStep.DOCUMENTS: [],
}

MAX_YEAR_LEVEL = 8


def is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def normalize_email(raw: str) -> str:
    return raw.strip().lower()


def normalize_phone(raw: str) -> Optional[str]:
    """
    Mantém apenas dígitos (e um "+" inicial). Retorna None se o número
    não tiver tamanho plausível (8 a 15 dígitos, padrão E.164).

    Exemplos:
        "06 12 34 56 78" → "0612345678"
        "+33 6 12 34 56 78" → "+33612345678"
    """
    raw = raw.strip()
    digits = re.sub(r"\D", "", raw)
    if not 8 <= len(digits) <= 15:
        return None
    return f"+{digits}" if raw.startswith("+") else digits


def parse_birth_date(raw: str) -> Optional[date]:
    """
    Aceita "AAAA-MM-DD" ou "DD/MM/AAAA". Retorna None se inválida
    ou no futuro.
    """
    text = raw.strip()
    match = re.match(r"^(\d{2})/(\d{2})/(\d{4})$", text)
    try:
        if match:
            parsed = date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
        else:
            parsed = date.fromisoformat(text)
    except ValueError:
        return None
    if parsed >= date.today():
        return None
    return parsed


def parse_year_level(raw: Any) -> Optional[int]:
    try:
        level = int(raw)
    except (TypeError, ValueError):
        return None
    if not 1 <= level <= MAX_YEAR_LEVEL:
        return None
    return level


def validate_field(name: str, value: Any) -> Optional[str]:
    """
    Valida um campo isolado. Retorna a mensagem exibida ao usuário
    ou None se o valor for aceito.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return "Ce champ est obligatoire"

    if name == "email" and not is_valid_email(value):
        return "Format email invalide"
    if name == "phone" and not normalize_phone(str(value)):
        return "Numéro de téléphone invalide"
    if name == "birth_date" and not parse_birth_date(str(value)):
        return "Date de naissance invalide"
    if name == "year_level" and parse_year_level(value) is None:
        return f"Le niveau doit être compris entre 1 et {MAX_YEAR_LEVEL}"
    if name in ("first_name", "last_name") and len(str(value).strip()) < 2:
        return "Au moins 2 caractères"
    return None


def validate_step(
    step: WizardStep,
    data: RegistrationFormData,
    program_departments: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """
    Valida os campos obrigatórios de uma etapa.

    Args:
        step: Etapa atual
        data: Dados do formulário
        program_departments: Mapa program_id -> department_id (opcional);
            quando informado, verifica se o programa pertence ao departamento

    Returns:
        Dict campo -> mensagem de erro (vazio se tudo válido)
    """
    errors: Dict[str, str] = {}
    for name in STEP_REQUIRED_FIELDS.get(step, []):
        error = validate_field(name, getattr(data, name))
        if error:
            errors[name] = error

    if (
        step == WizardStep.PROGRAM_SELECTION
        and program_departments is not None
        and "program_id" not in errors
        and "department_id" not in errors
    ):
        expected = program_departments.get(str(data.program_id))
        if expected is None:
            errors["program_id"] = "Programme invalide"
        elif expected != str(data.department_id):
            errors["program_id"] = "Ce programme n'appartient pas au département choisi"

    return errors


def normalize_field(name: str, value: Any) -> Any:
    """
    Normaliza valores aceitos antes de gravar no formulário.
    Valores inválidos são mantidos como vieram para a validação apontar o erro.
    """
    if value is None:
        return None
    if name == "email" and isinstance(value, str):
        return normalize_email(value)
    if name == "phone":
        return normalize_phone(str(value)) or value
    if name == "birth_date":
        parsed = parse_birth_date(str(value))
        return parsed.isoformat() if parsed else value
    if name == "year_level":
        level = parse_year_level(value)
        return level if level is not None else value
    if isinstance(value, str):
        return value.strip()
    return value
