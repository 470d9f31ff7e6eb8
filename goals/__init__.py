"""
Módulos de metas financeiras

- Goal, UserProfile: Modelos de domínio das metas e do perfil de poupança
- GoalProbabilityEngine: Probabilidade, riscos e recomendações por meta
"""
from goals.models import (
    Goal,
    GoalPriority,
    GoalStatus,
    GoalType,
    UserProfile
)
from goals.probability import GoalProbabilityEngine

__all__ = [
    "Goal",
    "GoalPriority",
    "GoalStatus",
    "GoalType",
    "UserProfile",
    "GoalProbabilityEngine"
]
