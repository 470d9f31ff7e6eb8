"""
Modelos de domínio para metas financeiras e perfil de poupança
"""
import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

import pandas as pd

from config import DAYS_PER_MONTH
from utils.exceptions import InvalidInputError


class GoalType(Enum):
    """Tipos de meta"""
    SAVINGS = "savings"
    INVESTMENT = "investment"
    DEBT_PAYOFF = "debt_payoff"
    PURCHASE = "purchase"
    INCOME = "income"


class GoalPriority(Enum):
    """Prioridade da meta"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GoalStatus(Enum):
    """Situação da meta"""
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


def _to_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def _to_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    timestamp = pd.Timestamp(value)
    if timestamp.tzinfo is not None:
        timestamp = timestamp.tz_convert(None)
    return timestamp.to_pydatetime()


def _parse_enum(enum_cls, value, default):
    if not value:
        return default
    try:
        return enum_cls(value)
    except ValueError as e:
        raise InvalidInputError(f"Meta inválida: {enum_cls.__name__} desconhecido ({value})") from e


@dataclass
class Goal:
    """
    Meta financeira.

    `current_amount` pode passar de `target_amount` (aporte acima do alvo);
    o percentual exibido é limitado a 100%.
    """
    target_amount: float
    current_amount: float = 0.0
    goal_type: GoalType = GoalType.SAVINGS
    deadline: Optional[date] = None
    priority: GoalPriority = GoalPriority.MEDIUM
    status: GoalStatus = GoalStatus.ACTIVE
    created_at: Optional[datetime] = None
    id: Optional[Any] = None
    name: str = ""

    def __post_init__(self):
        if self.target_amount is None or self.target_amount <= 0:
            raise InvalidInputError(f"Meta inválida: target_amount deve ser positivo ({self.target_amount})")
        if self.current_amount is None or self.current_amount < 0:
            raise InvalidInputError(f"Meta inválida: current_amount negativo ({self.current_amount})")

        # Aceita datetime ou string ISO; prazos são comparados como date
        self.deadline = _to_date(self.deadline)
        self.created_at = _to_datetime(self.created_at)

    @property
    def remaining_amount(self) -> float:
        return self.target_amount - self.current_amount

    @property
    def progress(self) -> float:
        """Fração atingida (sem limite superior)"""
        return self.current_amount / self.target_amount

    @property
    def progress_percentage(self) -> float:
        return min(self.progress * 100, 100.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Goal":
        """
        Cria uma meta a partir de um registro da camada de armazenamento

        Args:
            data: Dicionário com as colunas da tabela de metas

        Returns:
            Goal
        """
        return cls(
            target_amount=float(data["target_amount"]),
            current_amount=float(data.get("current_amount") or 0),
            goal_type=_parse_enum(GoalType, data.get("goal_type"), GoalType.SAVINGS),
            deadline=_to_date(data.get("deadline")),
            priority=_parse_enum(GoalPriority, data.get("priority"), GoalPriority.MEDIUM),
            status=_parse_enum(GoalStatus, data.get("status"), GoalStatus.ACTIVE),
            created_at=_to_datetime(data.get("created_at")),
            id=data.get("id"),
            name=data.get("name") or data.get("title") or ""
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "goal_type": self.goal_type.value,
            "target_amount": self.target_amount,
            "current_amount": self.current_amount,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "priority": self.priority.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "progress": self.progress_percentage
        }


@dataclass
class UserProfile:
    """Perfil de poupança do usuário, fornecido a cada chamada"""
    monthly_savings_capacity: float = 0.0
    income_growth_rate: float = 0.0
    expense_reduction_rate: float = 0.0
    risk_tolerance: str = "medium"

    # Chaves usadas pelos clientes web
    _ALIASES = {
        "monthlySavingsCapacity": "monthly_savings_capacity",
        "incomeGrowthRate": "income_growth_rate",
        "expenseReductionRate": "expense_reduction_rate",
        "riskTolerance": "risk_tolerance",
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        values = {}
        for key, value in data.items():
            name = cls._ALIASES.get(key, key)
            if name in ("monthly_savings_capacity", "income_growth_rate", "expense_reduction_rate"):
                values[name] = float(value or 0)
            elif name == "risk_tolerance" and value:
                values[name] = str(value)
        return cls(**values)


def as_goal(goal: Union[Goal, Dict[str, Any]]) -> Goal:
    return goal if isinstance(goal, Goal) else Goal.from_dict(goal)


def as_profile(profile: Union[UserProfile, Dict[str, Any], None]) -> UserProfile:
    if profile is None:
        return UserProfile()
    return profile if isinstance(profile, UserProfile) else UserProfile.from_dict(profile)


def months_until(deadline: Optional[date], today: date) -> float:
    """
    Meses (de 30 dias, arredondados para cima) até o prazo.
    Sem prazo, o horizonte é infinito.
    """
    if deadline is None:
        return math.inf
    return math.ceil((deadline - today).days / DAYS_PER_MONTH)


def months_since(start: Optional[datetime], today: date) -> int:
    """Meses (de 30 dias, arredondados para cima) decorridos desde `start`"""
    if start is None:
        return 0
    start_date = start.date() if isinstance(start, datetime) else start
    return math.ceil((today - start_date).days / DAYS_PER_MONTH)
