"""
Analisador de tendências financeiras
Previsão de gastos, crescimento de renda e capacidade de poupança
"""
import math
from datetime import date
from typing import List, Dict, Any, Optional, Sequence

import numpy as np
import pandas as pd

from config import (
    DATA_SUFFICIENCY_MONTHS,
    INCOME_FORECAST_MONTHS,
    MARKET_VOLATILITY_THRESHOLD,
    MAX_TREND_CONFIDENCE,
    SPENDING_FORECAST_PERIODS,
    SPENDING_TREND_MONTHS
)
from goals.models import Goal, GoalType, UserProfile, as_goal, as_profile, months_until
from ml.regression import RegressionEngine, RegressionModel, predict
from utils.exceptions import InvalidInputError
from utils.logger import get_logger, log_prediction

logger = get_logger(__name__)

INSUFFICIENT_DATA = "insufficient_data"


def _as_list(series: Optional[Sequence[float]]) -> List[float]:
    """Série (lista, tupla ou np.ndarray) como lista de floats; None vira lista vazia"""
    if series is None:
        return []
    return [float(v) for v in series]


class TrendAnalyzer:
    """
    Analisador de tendências sobre séries mensais.

    Funcionalidades:
    - Tendência de gastos (linear vs exponencial, melhor R²)
    - Crescimento de renda
    - Projeção da capacidade de poupança
    - Padrões de gasto, prazo de metas e risco financeiro
    """

    SEVERITY_WEIGHTS = {'high': 3, 'medium': 2, 'low': 1}

    def __init__(self, engine: Optional[RegressionEngine] = None, today: Optional[date] = None):
        """
        Inicializa o analisador

        Args:
            engine: Motor de regressão (cria um novo se não especificado)
            today: Data de referência para as janelas de tempo
        """
        self.engine = engine or RegressionEngine()
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    # === Utilitários de séries ===

    @staticmethod
    def average(series: Sequence[float]) -> float:
        return float(np.mean(series)) if len(series) else 0.0

    @staticmethod
    def volatility(series: Sequence[float]) -> float:
        """Coeficiente de variação (desvio padrão populacional / média)"""
        if len(series) < 2:
            return 0.0
        values = np.asarray(series, dtype=float)
        mean = values.mean()
        if mean == 0:
            return 0.0
        return float(values.std() / mean)

    def _fit_or_constant(self, fit, x, y) -> RegressionModel:
        """Executa o ajuste; dados insuficientes caem no preditor de média"""
        try:
            return fit(x, y)
        except InvalidInputError as e:
            logger.warning(f"Ajuste falhou, usando média constante: {e}")
            return self.engine.constant_model(y)

    def _prepare_transactions(self, transactions: List[Dict[str, Any]], months: int) -> pd.DataFrame:
        """Filtra despesas dentro da janela de `months` meses"""
        if not transactions:
            return pd.DataFrame(columns=['transaction_date', 'amount', 'category'])

        df = pd.DataFrame(transactions)
        if 'transaction_date' not in df.columns or 'amount' not in df.columns:
            logger.warning("Transações sem transaction_date ou amount")
            return pd.DataFrame(columns=['transaction_date', 'amount', 'category'])

        if 'transaction_type' in df.columns:
            df = df[df['transaction_type'].fillna('expense') == 'expense']

        df = df.copy()
        df['transaction_date'] = pd.to_datetime(df['transaction_date'], errors='coerce', utc=True).dt.tz_localize(None)
        df['amount'] = pd.to_numeric(df['amount'], errors='coerce').abs()
        df = df.dropna(subset=['transaction_date', 'amount'])

        cutoff = pd.Timestamp(self.today) - pd.DateOffset(months=months)
        return df[df['transaction_date'] >= cutoff]

    @staticmethod
    def _monthly_totals(df: pd.DataFrame) -> pd.Series:
        """Totais por mês-calendário em ordem cronológica"""
        if df.empty:
            return pd.Series(dtype=float)
        return df.groupby(df['transaction_date'].dt.to_period('M'))['amount'].sum().sort_index()

    # === Previsões ===

    def predict_spending_trend(
        self,
        transactions: List[Dict[str, Any]],
        months: int = SPENDING_TREND_MONTHS
    ) -> Dict[str, Any]:
        """
        Prevê os gastos dos próximos meses.

        Agrupa as despesas por mês, ajusta modelos linear e exponencial
        contra o índice do mês e usa o de maior R².

        Args:
            transactions: Transações {amount, transaction_type, transaction_date, ...}
            months: Janela histórica em meses

        Returns:
            Previsão com tendência, previsões mensais e confiança
        """
        monthly = self._monthly_totals(self._prepare_transactions(transactions, months))

        if len(monthly) < 2:
            return {
                'trend': INSUFFICIENT_DATA,
                'prediction': None,
                'confidence': 0
            }

        y = monthly.to_numpy(dtype=float)
        x = np.arange(len(y))

        try:
            linear = self.engine.linear_regression(x, y)
            exponential = self.engine.exponential_regression(x, y)
            if linear.r_squared > exponential.r_squared:
                best, trend = linear, 'linear'
            else:
                best, trend = exponential, 'exponential'
        except InvalidInputError as e:
            logger.warning(f"Regressão de gastos falhou, usando média constante: {e}")
            best, trend = self.engine.constant_model(y), 'constant'

        confidence = min(best.r_squared, MAX_TREND_CONFIDENCE)
        predictions = []
        for i in range(1, SPENDING_FORECAST_PERIODS + 1):
            next_month = len(x) + i - 1
            predictions.append({
                'month': next_month,
                'predicted_amount': max(0.0, predict(best, next_month)),
                'confidence': confidence
            })

        log_prediction(logger, 'spending', trend, confidence)

        return {
            'trend': trend,
            'current_average': float(y.mean()),
            'monthly_totals': {str(period): float(total) for period, total in monthly.items()},
            'predictions': predictions,
            'model': best.to_dict(),
            'confidence': confidence
        }

    def predict_income_growth(
        self,
        income_history: Sequence[float],
        months: int = INCOME_FORECAST_MONTHS
    ) -> Dict[str, Any]:
        """
        Prevê o crescimento da renda com regressão linear.

        Args:
            income_history: Renda mensal em ordem cronológica
            months: Meses a prever

        Returns:
            Taxa de crescimento (% por período) e previsões mensais
        """
        values = [float(v) for v in income_history]
        if len(values) < 2:
            return {
                'trend': INSUFFICIENT_DATA,
                'growth_rate': 0,
                'predictions': [],
                'confidence': 0
            }

        x = np.arange(len(values))
        model = self._fit_or_constant(self.engine.linear_regression, x, values)
        slope = model.params['slope']

        growth_rate = slope / (values[0] or 1)

        predictions = [
            {
                'month': i,
                'predicted_income': max(0.0, predict(model, len(x) + i - 1)),
                'confidence': model.r_squared
            }
            for i in range(1, months + 1)
        ]

        trend = 'growing' if slope > 0 else 'declining'
        log_prediction(logger, 'income', trend, model.r_squared)

        return {
            'trend': trend,
            'growth_rate': growth_rate * 100,
            'current_income': values[-1],
            'predictions': predictions,
            'confidence': model.r_squared
        }

    def analyze_trend(self, series: Sequence[float]) -> Dict[str, Any]:
        """Média, inclinação, direção e R² de uma série"""
        values = [float(v) for v in series]
        if len(values) < 2:
            return {
                'average': self.average(values),
                'slope': 0.0,
                'direction': 'stable',
                'confidence': 0.0,
                'r_squared': 0.0
            }

        model = self._fit_or_constant(self.engine.linear_regression, np.arange(len(values)), values)
        slope = model.params['slope']

        if slope > 0:
            direction = 'increasing'
        elif slope < 0:
            direction = 'decreasing'
        else:
            direction = 'stable'

        return {
            'average': self.average(values),
            'slope': slope,
            'direction': direction,
            'confidence': model.r_squared,
            'r_squared': model.r_squared
        }

    @staticmethod
    def project_value(current_value: float, trend: Dict[str, Any], periods: int) -> float:
        """
        Projeção multiplicativa: current * (1 + slope/current)^periods.
        Valor atual nulo projeta apenas slope * periods.
        """
        slope = trend['slope']
        if current_value == 0:
            return slope * periods
        return current_value * (1 + slope / current_value) ** int(periods)

    def prediction_confidence(self, income_history: Sequence[float], expense_history: Sequence[float]) -> float:
        """Combina volatilidade média e suficiência de dados (normalizada para 12 meses)"""
        income_volatility = self.volatility(income_history)
        expense_volatility = self.volatility(expense_history)
        data_points = min(len(income_history), len(expense_history))

        volatility_score = 1 - (income_volatility + expense_volatility) / 2
        data_score = min(data_points / DATA_SUFFICIENCY_MONTHS, 1)

        return (volatility_score + data_score) / 2

    def generate_monthly_projections(
        self,
        income_history: Sequence[float],
        expense_history: Sequence[float],
        months: int
    ) -> List[Dict[str, float]]:
        income_trend = self.analyze_trend(income_history)
        expense_trend = self.analyze_trend(expense_history)
        current_income = float(income_history[-1])
        current_expenses = float(expense_history[-1])

        projections = []
        for i in range(1, months + 1):
            projected_income = self.project_value(current_income, income_trend, i)
            projected_expenses = self.project_value(current_expenses, expense_trend, i)
            projections.append({
                'month': i,
                'projected_income': projected_income,
                'projected_expenses': projected_expenses,
                'projected_savings': projected_income - projected_expenses
            })
        return projections

    def predict_savings_capacity(
        self,
        income_history: Sequence[float],
        expense_history: Sequence[float],
        months: int = INCOME_FORECAST_MONTHS
    ) -> Dict[str, Any]:
        """
        Projeta a capacidade de poupança (renda projetada - despesas projetadas).

        Args:
            income_history: Renda mensal
            expense_history: Despesas mensais
            months: Horizonte da projeção

        Returns:
            Capacidade atual, projetada, tendências e confiança
        """
        if len(income_history) < 2 or len(expense_history) < 2:
            return {
                'current_capacity': 0,
                'projected_capacity': 0,
                'confidence': 0,
                'trend': INSUFFICIENT_DATA
            }

        income_trend = self.analyze_trend(income_history)
        expense_trend = self.analyze_trend(expense_history)

        current_income = float(income_history[-1])
        current_expenses = float(expense_history[-1])

        projected_income = self.project_value(current_income, income_trend, months)
        projected_expenses = self.project_value(current_expenses, expense_trend, months)
        confidence = self.prediction_confidence(income_history, expense_history)

        log_prediction(logger, 'savings', income_trend['direction'], confidence)

        return {
            'current_capacity': current_income - current_expenses,
            'projected_capacity': projected_income - projected_expenses,
            'projected_income': projected_income,
            'projected_expenses': projected_expenses,
            'confidence': confidence,
            'trend': {
                'income': income_trend,
                'expenses': expense_trend
            },
            'projections': self.generate_monthly_projections(income_history, expense_history, months)
        }

    # === Padrões de gasto ===

    @staticmethod
    def _detect_seasonality(amounts: List[float]) -> bool:
        """Diferença > 20% entre os dois semestres dos últimos 12 meses"""
        if len(amounts) < 12:
            return False
        recent = amounts[-12:]
        first_avg = float(np.mean(recent[:6]))
        second_avg = float(np.mean(recent[6:]))
        if first_avg == 0:
            return False
        return abs(first_avg - second_avg) / first_avg > 0.2

    def analyze_spending_patterns(
        self,
        transactions: List[Dict[str, Any]],
        months: int = SPENDING_TREND_MONTHS
    ) -> Dict[str, Any]:
        """
        Analisa padrões de gasto na janela recente.

        Args:
            transactions: Lista de transações
            months: Janela em meses

        Returns:
            Média mensal, tendência sazonal, totais por categoria,
            velocidade e volatilidade dos gastos
        """
        df = self._prepare_transactions(transactions, months)
        amounts = self._monthly_totals(df).tolist()

        # Variação relativa mês a mês
        trend = 0.0
        for previous, current in zip(amounts, amounts[1:]):
            if previous:
                trend += (current - previous) / previous

        category_patterns = {}
        if 'category' in df.columns and not df.empty:
            by_category = df.groupby(df['category'].fillna('other'))['amount'].sum()
            category_patterns = {str(k): float(v) for k, v in by_category.sort_values(ascending=False).items()}

        recent = df['amount'].head(30)

        return {
            'monthly_average': self.average(amounts),
            'seasonal_trends': {
                'direction': 'increasing' if trend > 0 else 'decreasing',
                'strength': abs(trend) / len(amounts) if amounts else 0.0,
                'seasonal': self._detect_seasonality(amounts)
            },
            'category_patterns': category_patterns,
            'spending_velocity': float(recent.sum()) / 30,
            'volatility': self.volatility(amounts)
        }

    # === Metas e risco ===

    def predict_goal_timeline(
        self,
        goal,
        profile,
        historical_data: Dict[str, Sequence[float]]
    ) -> Dict[str, Any]:
        """
        Estima em quantos meses a meta será atingida com a poupança histórica.

        Args:
            goal: Meta (Goal ou dicionário)
            profile: Perfil (usa income_growth_rate e expense_reduction_rate)
            historical_data: {income_history, expense_history}

        Returns:
            Prazo estimado, poupança mensal projetada e probabilidade
        """
        goal = as_goal(goal)
        profile = as_profile(profile)

        if goal.remaining_amount <= 0:
            return {
                'timeline': 0,
                'monthly_required': 0,
                'probability': 1,
                'confidence': 1
            }

        income_history = _as_list(historical_data.get('income_history'))
        expense_history = _as_list(historical_data.get('expense_history'))

        capacity = 0.0
        savings_trend = {'slope': 0.0, 'confidence': 0.0}
        if income_history and expense_history:
            capacity = self.average(income_history) - self.average(expense_history)
            savings_history = [
                income - (expense_history[i] if i < len(expense_history) else 0)
                for i, income in enumerate(income_history)
            ]
            savings_trend = self.analyze_trend(savings_history)

        projected = self.project_savings_capacity(capacity, savings_trend, profile)
        time_remaining = months_until(goal.deadline, self.today)

        if projected <= 0:
            return {
                'timeline': None,
                'monthly_required': projected,
                'probability': 0.0,
                'confidence': savings_trend['confidence'],
                'recommendations': self._timeline_recommendations(goal, projected, math.inf, time_remaining)
            }

        months_required = math.ceil(goal.remaining_amount / projected)
        if time_remaining <= 0:
            probability = 0.0
        elif months_required <= time_remaining:
            probability = 1.0
        else:
            probability = max(0.0, time_remaining / months_required)

        return {
            'timeline': months_required,
            'monthly_required': projected,
            'probability': probability,
            'confidence': savings_trend['confidence'],
            'recommendations': self._timeline_recommendations(goal, projected, months_required, time_remaining)
        }

    @staticmethod
    def project_savings_capacity(capacity: float, trend: Dict[str, Any], profile: UserProfile) -> float:
        """Capacidade + tendência, ajustada por crescimento de renda e redução de gastos"""
        projected = capacity + trend.get('slope', 0.0)
        return projected * (1 + profile.income_growth_rate - profile.expense_reduction_rate)

    @staticmethod
    def _timeline_recommendations(
        goal: Goal,
        monthly_savings: float,
        months_required: float,
        time_remaining: float
    ) -> List[Dict[str, Any]]:
        recommendations = []

        if months_required > time_remaining:
            if math.isinf(months_required):
                description = 'Your current savings capacity will not reach this goal'
            else:
                description = f'You need {months_required - time_remaining} more months to reach your goal'
            recommendations.append({
                'type': 'timeline_adjustment',
                'priority': 'high',
                'title': 'Extend Timeline or Increase Savings',
                'description': description,
                'action': 'Consider extending deadline or increasing monthly contributions'
            })

        if monthly_savings < goal.target_amount * 0.1:
            recommendations.append({
                'type': 'savings_optimization',
                'priority': 'medium',
                'title': 'Optimize Savings Strategy',
                'description': 'Consider ways to increase your monthly savings capacity',
                'action': 'Review expenses and explore income growth opportunities'
            })

        return recommendations

    def calculate_income_stability(self, income_history: Sequence[float]) -> float:
        if len(income_history) < 3:
            return 1.0
        return max(0.0, 1 - self.volatility(income_history))

    def calculate_required_savings(self, goals: List[Goal]) -> float:
        total = 0.0
        for goal in goals:
            time_remaining = months_until(goal.deadline, self.today)
            total += goal.remaining_amount / max(time_remaining, 1)
        return total

    def calculate_overall_risk(self, risks: List[Dict[str, Any]]) -> float:
        if not risks:
            return 0.0
        weights = [self.SEVERITY_WEIGHTS.get(r['severity'], 1) for r in risks]
        weighted = sum(r['score'] * w for r, w in zip(risks, weights))
        return weighted / sum(weights)

    def assess_financial_risk(
        self,
        profile,
        goals: List[Any],
        market_conditions: Optional[Dict[str, Any]] = None,
        income_history: Optional[Sequence[float]] = None
    ) -> Dict[str, Any]:
        """
        Avalia o risco financeiro do conjunto de metas.

        Args:
            profile: Perfil de poupança
            goals: Metas ativas
            market_conditions: Condições de mercado (usa `volatility`)
            income_history: Renda mensal para medir estabilidade

        Returns:
            Risco geral ponderado, riscos e recomendações de mitigação
        """
        profile = as_profile(profile)
        goals = [as_goal(g) for g in goals]
        market_conditions = market_conditions or {}
        risks = []

        stability = self.calculate_income_stability(_as_list(income_history))
        if stability < 0.7:
            risks.append({
                'type': 'income_instability',
                'severity': 'high',
                'score': 1 - stability,
                'description': 'Income shows high volatility',
                'mitigation': 'Consider diversifying income sources'
            })

        capacity = profile.monthly_savings_capacity
        required = self.calculate_required_savings(goals)
        if capacity < required * 0.8:
            risks.append({
                'type': 'insufficient_savings',
                'severity': 'high',
                'score': 1 - (capacity / required) if required > 0 else 1.0,
                'description': 'Insufficient monthly savings capacity',
                'mitigation': 'Increase income or reduce expenses'
            })

        volatility = market_conditions.get('volatility', 0)
        has_investment = any(g.goal_type is GoalType.INVESTMENT for g in goals)
        if has_investment and volatility > MARKET_VOLATILITY_THRESHOLD:
            risks.append({
                'type': 'market_volatility',
                'severity': 'medium',
                'score': volatility,
                'description': 'High market volatility may affect investment returns',
                'mitigation': 'Consider more conservative investment strategies'
            })

        recommendations = [
            {
                'type': risk['type'],
                'priority': 'high',
                'title': f"Address {risk['type'].replace('_', ' ')}",
                'description': risk['description'],
                'action': risk['mitigation']
            }
            for risk in risks if risk['severity'] == 'high'
        ]

        return {
            'overall_risk': self.calculate_overall_risk(risks),
            'risks': risks,
            'recommendations': recommendations
        }
