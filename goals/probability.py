"""
Motor de probabilidade de metas financeiras
Estima a chance de atingir uma meta, enumera riscos e gera recomendações
"""
import math
from datetime import date
from typing import Dict, Any, List, Optional, Union

import pandas as pd

from config import MARKET_VOLATILITY_THRESHOLD, MIN_INCOME_GROWTH
from goals.models import (
    Goal,
    GoalType,
    UserProfile,
    as_goal,
    as_profile,
    months_since,
    months_until
)
from utils.logger import get_logger

logger = get_logger(__name__)

GoalLike = Union[Goal, Dict[str, Any]]
ProfileLike = Union[UserProfile, Dict[str, Any], None]


def _clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


class GoalProbabilityEngine:
    """
    Motor heurístico de probabilidade de metas.

    A probabilidade parte de 0.5 e recebe ajustes aditivos por regras
    discretas (progresso, capacidade, prazo, mercado), sendo limitada a [0, 1].
    """

    BASE_PROBABILITY = 0.5

    def __init__(self, today: Optional[date] = None):
        """
        Args:
            today: Data de referência (usa a data atual se não especificada)
        """
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    # === Tempo e contribuição ===

    def months_remaining(self, goal: Goal) -> float:
        return months_until(goal.deadline, self.today)

    def months_elapsed(self, goal: Goal) -> int:
        return months_since(goal.created_at, self.today)

    def required_monthly_contribution(self, goal: Goal, time_remaining: float) -> float:
        """Aporte mensal necessário; 0 quando o prazo já passou"""
        if time_remaining <= 0:
            return 0.0
        return goal.remaining_amount / time_remaining

    def expected_progress(self, goal: Goal) -> float:
        """Fração do tempo total já decorrida: elapsed / (elapsed + remaining)"""
        if goal.deadline is None:
            return 0.0
        elapsed = self.months_elapsed(goal)
        total = self.months_remaining(goal) + elapsed
        if total <= 0:
            return 0.0
        return elapsed / total

    @staticmethod
    def _capacity_ratio(capacity: float, required: float) -> Optional[float]:
        if required > 0:
            return capacity / required
        # Aporte necessário nulo (sem prazo): razão ilimitada
        if capacity > 0:
            return math.inf
        if capacity < 0:
            return -math.inf
        return None

    # === Probabilidade ===

    def calculate_goal_probability(
        self,
        goal: GoalLike,
        profile: ProfileLike,
        market_conditions: Optional[Dict[str, Any]] = None
    ) -> float:
        """
        Calcula a probabilidade de atingir a meta.

        Args:
            goal: Meta (Goal ou dicionário)
            profile: Perfil de poupança
            market_conditions: Flags de mercado (bullish, bearish, volatility)

        Returns:
            Probabilidade em [0, 1]
        """
        goal = as_goal(goal)
        profile = as_profile(profile)
        market_conditions = market_conditions or {}

        if goal.remaining_amount <= 0:
            return 1.0

        time_remaining = self.months_remaining(goal)

        # Prazo vencido: a probabilidade é o progresso atual
        if time_remaining <= 0:
            return _clamp(goal.current_amount / goal.target_amount)

        progress = goal.progress
        required = self.required_monthly_contribution(goal, time_remaining)
        capacity = profile.monthly_savings_capacity

        probability = self.BASE_PROBABILITY

        # Progresso atual
        if progress > 0.5:
            probability += 0.2
        if progress > 0.75:
            probability += 0.2

        # Capacidade vs aporte necessário
        capacity_ratio = self._capacity_ratio(capacity, required)
        if capacity_ratio is not None:
            if capacity_ratio >= 1.2:
                probability += 0.2
            elif capacity_ratio >= 1.0:
                probability += 0.1
            elif capacity_ratio < 0.8:
                probability -= 0.3
            elif capacity_ratio < 0.6:
                # Nunca atingido: razões abaixo de 0.6 já caem no ramo < 0.8
                probability -= 0.5

        # Tempo restante
        if time_remaining > 12:
            probability += 0.1
        elif time_remaining < 3:
            probability -= 0.3

        # Mercado (apenas metas de investimento)
        if goal.goal_type is GoalType.INVESTMENT:
            if market_conditions.get('bullish'):
                probability += 0.1
            if market_conditions.get('bearish'):
                probability -= 0.1

        return _clamp(probability)

    # === Recomendações ===

    def calculate_optimal_deadline(self, goal: Goal, monthly_capacity: float) -> Optional[date]:
        """Data em que a meta seria atingida poupando `monthly_capacity` por mês"""
        if monthly_capacity <= 0:
            return None
        months_needed = math.ceil(goal.remaining_amount / monthly_capacity)
        return (pd.Timestamp(self.today) + pd.DateOffset(months=months_needed)).date()

    @staticmethod
    def top_spending_categories(spending_patterns: Optional[Dict[str, Any]], limit: int = 3) -> List[str]:
        """
        Maiores categorias de gasto por total.

        Aceita um mapa categoria -> total ou o resultado de
        TrendAnalyzer.analyze_spending_patterns.
        """
        if not spending_patterns:
            return []

        totals = spending_patterns.get('category_patterns', spending_patterns)
        if not isinstance(totals, dict):
            return []

        ranked = sorted(
            ((category, float(total)) for category, total in totals.items()
             if isinstance(total, (int, float))),
            key=lambda item: item[1],
            reverse=True
        )
        return [category for category, _ in ranked[:limit]]

    def generate_recommendations(
        self,
        goal: GoalLike,
        profile: ProfileLike,
        spending_patterns: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Gera recomendações priorizadas para a meta.

        Args:
            goal: Meta
            profile: Perfil de poupança
            spending_patterns: Totais de gasto por categoria

        Returns:
            Lista ordenada de recomendações
        """
        goal = as_goal(goal)
        profile = as_profile(profile)

        recommendations = []
        probability = self.calculate_goal_probability(goal, profile)
        required = self.required_monthly_contribution(goal, self.months_remaining(goal))
        capacity = profile.monthly_savings_capacity

        # 1. Falta de capacidade mensal
        if capacity < required:
            shortfall = required - capacity
            recommendations.append({
                'type': 'budget_optimization',
                'priority': 'high',
                'title': 'Increase Monthly Savings',
                'description': f'You need to save ${shortfall:.2f} more per month to reach your goal',
                'action': 'Reduce expenses or increase income',
                'impact': 'high',
                'effort': 'medium'
            })

        # 2. Ajuste de prazo
        if probability < 0.3 and goal.deadline:
            suggested = self.calculate_optimal_deadline(goal, capacity)
            if suggested:
                recommendations.append({
                    'type': 'timeline_adjustment',
                    'priority': 'medium',
                    'title': 'Consider Extending Deadline',
                    'description': (
                        f'Extending your deadline to {suggested.isoformat()} '
                        f'would increase your success probability'
                    ),
                    'action': 'Adjust goal deadline',
                    'impact': 'high',
                    'effort': 'low',
                    'suggested_deadline': suggested.isoformat()
                })
            else:
                logger.debug("Sem capacidade de poupança para sugerir novo prazo")

        # 3. Crescimento de renda
        if profile.income_growth_rate < MIN_INCOME_GROWTH:
            recommendations.append({
                'type': 'income_optimization',
                'priority': 'medium',
                'title': 'Explore Income Growth',
                'description': 'Consider ways to increase your income to accelerate goal achievement',
                'action': 'Look for salary increases, side hustles, or investments',
                'impact': 'high',
                'effort': 'high'
            })

        # 4. Categorias de maior gasto
        top_categories = self.top_spending_categories(spending_patterns)
        if top_categories:
            recommendations.append({
                'type': 'spending_optimization',
                'priority': 'medium',
                'title': 'Optimize High-Spending Categories',
                'description': 'Consider reducing spending in: ' + ', '.join(top_categories),
                'action': 'Review and reduce expenses in these categories',
                'impact': 'medium',
                'effort': 'medium',
                'categories': top_categories
            })

        return recommendations

    # === Riscos ===

    def assess_risks(
        self,
        goal: GoalLike,
        profile: ProfileLike,
        market_conditions: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Avalia os riscos de não atingir a meta.

        Args:
            goal: Meta
            profile: Perfil de poupança
            market_conditions: Condições de mercado (usa `volatility`)

        Returns:
            Lista de riscos com severidade e mitigação
        """
        goal = as_goal(goal)
        profile = as_profile(profile)
        market_conditions = market_conditions or {}

        risks = []
        time_remaining = self.months_remaining(goal)

        if time_remaining < 6:
            risks.append({
                'type': 'time_risk',
                'severity': 'high',
                'description': 'Limited time remaining to achieve goal',
                'mitigation': 'Consider extending deadline or increasing contributions'
            })

        required = self.required_monthly_contribution(goal, time_remaining)
        if profile.monthly_savings_capacity < required * 0.8:
            risks.append({
                'type': 'capacity_risk',
                'severity': 'high',
                'description': 'Insufficient monthly savings capacity',
                'mitigation': 'Increase income or reduce expenses'
            })

        if goal.goal_type is GoalType.INVESTMENT:
            if market_conditions.get('volatility', 0) > MARKET_VOLATILITY_THRESHOLD:
                risks.append({
                    'type': 'market_risk',
                    'severity': 'medium',
                    'description': 'High market volatility may affect investment returns',
                    'mitigation': 'Consider more conservative investment strategies'
                })

        if goal.progress < self.expected_progress(goal) * 0.8:
            risks.append({
                'type': 'progress_risk',
                'severity': 'medium',
                'description': 'Behind expected progress',
                'mitigation': 'Increase contributions or adjust timeline'
            })

        return risks

    def analyze_goal(
        self,
        goal: GoalLike,
        profile: ProfileLike,
        spending_patterns: Optional[Dict[str, Any]] = None,
        market_conditions: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Relatório completo da meta: probabilidade, riscos e recomendações"""
        goal = as_goal(goal)
        profile = as_profile(profile)
        time_remaining = self.months_remaining(goal)

        report = {
            'goal_id': goal.id,
            'progress': goal.progress_percentage,
            'months_remaining': None if math.isinf(time_remaining) else time_remaining,
            'required_monthly_contribution': self.required_monthly_contribution(goal, time_remaining),
            'probability': self.calculate_goal_probability(goal, profile, market_conditions),
            'risks': self.assess_risks(goal, profile, market_conditions),
            'recommendations': self.generate_recommendations(goal, profile, spending_patterns)
        }

        logger.info(
            f"Meta analisada: id={goal.id}, probabilidade={report['probability']:.2f}, "
            f"riscos={len(report['risks'])}"
        )
        return report
