"""
Detecção de conflitos e geração de calendário de exames.

Os dois algoritmos vivem no backend (procedimentos remotos); aqui só há a
chamada, a contagem por severidade e as recomendações textuais.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from ..infra.rpc_client import RpcClient, RpcError

logger = logging.getLogger(__name__)


@dataclass
class ConflictDetectionResult:
    conflicts: List[Dict[str, Any]] = field(default_factory=list)
    critical_count: int = 0
    high_count: int = 0
    auto_resolvable_count: int = 0
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conflicts": self.conflicts,
            "critical_count": self.critical_count,
            "high_count": self.high_count,
            "auto_resolvable_count": self.auto_resolvable_count,
            "recommendations": self.recommendations,
        }


def generate_recommendations(conflicts: List[Dict[str, Any]]) -> List[str]:
    recommendations: List[str] = []

    room = [c for c in conflicts if c.get("conflict_type") == "room_overlap"]
    supervisor = [c for c in conflicts if c.get("conflict_type") == "supervisor_overlap"]
    capacity = [c for c in conflicts if c.get("conflict_type") == "capacity_exceeded"]

    if room:
        recommendations.append(
            f"🏢 {len(room)} conflit(s) de salle - Considérez l'ajout de salles "
            f"supplémentaires ou la modification des horaires"
        )
    if supervisor:
        recommendations.append(
            f"👨‍🏫 {len(supervisor)} conflit(s) de surveillant - Assignez des surveillants "
            f"supplémentaires ou réorganisez les créneaux"
        )
    if capacity:
        recommendations.append(
            f"📊 {len(capacity)} dépassement(s) de capacité - Utilisez des salles plus "
            f"grandes ou divisez les groupes"
        )
    if len(conflicts) > 5:
        recommendations.append(
            "Relancez la génération automatique avec des paramètres optimisés"
        )
    return recommendations


def summarize_conflicts(conflicts: List[Dict[str, Any]]) -> ConflictDetectionResult:
    return ConflictDetectionResult(
        conflicts=conflicts,
        critical_count=sum(1 for c in conflicts if c.get("severity") == "critical"),
        high_count=sum(1 for c in conflicts if c.get("severity") == "high"),
        auto_resolvable_count=sum(1 for c in conflicts if c.get("auto_resolvable")),
        recommendations=generate_recommendations(conflicts),
    )


class ExamConflictService:
    """
    Fachada para os procedimentos detect_exam_conflicts e generate_exam_schedule.
    """

    def __init__(self, rpc_client: RpcClient) -> None:
        self._rpc = rpc_client

    def detect(self, academic_year_id: Optional[str] = None) -> ConflictDetectionResult:
        """
        Falha remota não é propagada: loga e devolve resultado vazio.
        """
        start_time = time.time()
        try:
            conflicts = self._rpc.call(
                "detect_exam_conflicts", {"p_academic_year_id": academic_year_id}
            )
        except RpcError as e:
            logger.error(
                f"Erro na detecção de conflitos: academic_year_id={academic_year_id}, error={e}"
            )
            return ConflictDetectionResult()

        if not isinstance(conflicts, list):
            conflicts = []
        result = summarize_conflicts(conflicts)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Detecção de conflitos concluída: academic_year_id={academic_year_id}, "
            f"total={len(conflicts)}, critical={result.critical_count}, "
            f"high={result.high_count}, duration_ms={duration_ms:.2f}"
        )
        return result

    def generate_schedule(
        self, academic_year_id: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Raises:
            RpcError: Se o procedimento remoto falhar
        """
        logger.info(f"Gerando calendário de exames: academic_year_id={academic_year_id}")
        return self._rpc.call(
            "generate_exam_schedule",
            {"p_academic_year_id": academic_year_id, "p_parameters": params or {}},
        )
