"""
Motor de regressão para previsões financeiras
Ajusta curvas linear, polinomial e exponencial a séries unidimensionais
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy import linalg

from config import DEFAULT_POLYNOMIAL_DEGREE, EXPONENTIAL_MIN_VALUE, MOVING_AVERAGE_WINDOW
from utils.exceptions import InvalidInputError
from utils.logger import get_logger

logger = get_logger(__name__)

Number = Union[int, float]


class ModelKind(Enum):
    """Algoritmos de regressão suportados"""
    LINEAR = "linear"
    POLYNOMIAL = "polynomial"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RegressionModel:
    """
    Modelo ajustado. Carrega apenas dados: o algoritmo, os parâmetros
    e o R². A previsão é feita por `predict(model, x)`.

    Parâmetros por algoritmo:
    - LINEAR: slope, intercept
    - POLYNOMIAL: coefficients (ordem 0..grau), degree
    - EXPONENTIAL: a, b  (y = a * e^(b*x))
    """
    kind: ModelKind
    params: Dict[str, Any] = field(default_factory=dict)
    r_squared: float = 0.0

    @property
    def equation(self) -> str:
        """Equação legível do modelo"""
        if self.kind is ModelKind.LINEAR:
            return f"y = {self.params['slope']:.4f}x + {self.params['intercept']:.2f}"
        if self.kind is ModelKind.EXPONENTIAL:
            return f"y = {self.params['a']:.4f} * e^({self.params['b']:.4f}x)"
        terms = [
            f"{c:.4f}" if i == 0 else f"{c:.4f}x^{i}"
            for i, c in enumerate(self.params['coefficients'])
        ]
        return "y = " + " + ".join(terms)

    def to_dict(self) -> Dict[str, Any]:
        params = {
            k: list(v) if isinstance(v, tuple) else v
            for k, v in self.params.items()
        }
        return {
            "algorithm": self.kind.value,
            "params": params,
            "r_squared": self.r_squared,
            "equation": self.equation
        }


def predict(model: RegressionModel, x):
    """
    Avalia o modelo em x (escalar ou sequência)

    Args:
        model: Modelo ajustado
        x: Valor ou valores de entrada

    Returns:
        float para entrada escalar, np.ndarray para sequências
    """
    x_arr = np.asarray(x, dtype=float)

    if model.kind is ModelKind.LINEAR:
        y = model.params['slope'] * x_arr + model.params['intercept']
    elif model.kind is ModelKind.POLYNOMIAL:
        y = np.polynomial.polynomial.polyval(x_arr, model.params['coefficients'])
    elif model.kind is ModelKind.EXPONENTIAL:
        y = model.params['a'] * np.exp(model.params['b'] * x_arr)
    else:
        raise InvalidInputError(f"Algoritmo desconhecido: {model.kind}")

    if np.ndim(y) == 0:
        return float(y)
    return y


class RegressionEngine:
    """
    Motor de regressão.

    Todas as operações são funções puras dos argumentos: o motor não
    guarda estado entre chamadas. Dados insuficientes geram
    InvalidInputError, que os chamadores tratam com `constant_model`.
    """

    def _validate(self, x: Sequence[Number], y: Sequence[Number], minimum: int, name: str) -> Tuple[np.ndarray, np.ndarray]:
        """Converte e valida as séries de entrada"""
        x_arr = np.asarray(x, dtype=float).ravel()
        y_arr = np.asarray(y, dtype=float).ravel()

        if len(x_arr) != len(y_arr) or len(x_arr) < minimum:
            raise InvalidInputError(
                f"Dados inválidos para regressão {name}: séries devem ter o mesmo "
                f"tamanho e ao menos {minimum} pontos (x={len(x_arr)}, y={len(y_arr)})"
            )
        if not (np.all(np.isfinite(x_arr)) and np.all(np.isfinite(y_arr))):
            raise InvalidInputError(f"Dados inválidos para regressão {name}: valores não finitos")

        return x_arr, y_arr

    @staticmethod
    def r_squared(actual, predicted) -> float:
        """
        Coeficiente de determinação R² = 1 - SSres/SStot.
        Retorna 0 quando SStot é 0 (série constante) ou vazia.
        """
        actual = np.asarray(actual, dtype=float)
        predicted = np.asarray(predicted, dtype=float)

        if actual.size == 0 or actual.size != predicted.size:
            return 0.0
        if np.ptp(actual) == 0:
            return 0.0

        ss_res = np.sum((actual - predicted) ** 2)
        ss_tot = np.sum((actual - actual.mean()) ** 2)
        if ss_tot == 0:
            return 0.0
        return float(1 - ss_res / ss_tot)

    def linear_regression(self, x: Sequence[Number], y: Sequence[Number]) -> RegressionModel:
        """
        Regressão linear por mínimos quadrados (somatórios em forma fechada)

        Args:
            x: Variável independente
            y: Variável dependente

        Returns:
            Modelo LINEAR com slope, intercept e R²
        """
        x_arr, y_arr = self._validate(x, y, minimum=2, name="linear")

        if np.ptp(x_arr) == 0:
            raise InvalidInputError("Dados inválidos para regressão linear: todos os x são iguais")

        n = len(x_arr)
        sum_x = x_arr.sum()
        sum_y = y_arr.sum()
        sum_xy = np.sum(x_arr * y_arr)
        sum_xx = np.sum(x_arr * x_arr)

        slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
        intercept = (sum_y - slope * sum_x) / n

        r_squared = self.r_squared(y_arr, slope * x_arr + intercept)

        return RegressionModel(
            kind=ModelKind.LINEAR,
            params={"slope": float(slope), "intercept": float(intercept)},
            r_squared=r_squared
        )

    def polynomial_regression(
        self,
        x: Sequence[Number],
        y: Sequence[Number],
        degree: int = DEFAULT_POLYNOMIAL_DEGREE
    ) -> RegressionModel:
        """
        Regressão polinomial via equações normais sobre a matriz de Vandermonde

        Args:
            x: Variável independente
            y: Variável dependente
            degree: Grau do polinômio

        Returns:
            Modelo POLYNOMIAL com coeficientes (termo constante primeiro)
        """
        if degree < 0:
            raise InvalidInputError(f"Grau inválido para regressão polinomial: {degree}")

        x_arr, y_arr = self._validate(x, y, minimum=degree + 1, name="polinomial")

        design = np.vander(x_arr, degree + 1, increasing=True)
        normal_matrix = design.T @ design
        rhs = design.T @ y_arr

        try:
            coefficients = linalg.solve(normal_matrix, rhs, assume_a='sym')
        except linalg.LinAlgError as e:
            raise InvalidInputError(f"Sistema singular na regressão polinomial: {e}") from e

        fitted = np.polynomial.polynomial.polyval(x_arr, coefficients)

        return RegressionModel(
            kind=ModelKind.POLYNOMIAL,
            params={
                "coefficients": tuple(float(c) for c in coefficients),
                "degree": degree
            },
            r_squared=self.r_squared(y_arr, fitted)
        )

    def exponential_regression(self, x: Sequence[Number], y: Sequence[Number]) -> RegressionModel:
        """
        Regressão exponencial y = a * e^(b*x).

        Ajusta uma reta a ln(y) (com y limitado a 0.001) e volta ao espaço
        original. O R² reportado é o do ajuste no espaço log.
        """
        x_arr, y_arr = self._validate(x, y, minimum=2, name="exponencial")

        log_y = np.log(np.maximum(y_arr, EXPONENTIAL_MIN_VALUE))
        log_fit = self.linear_regression(x_arr, log_y)

        return RegressionModel(
            kind=ModelKind.EXPONENTIAL,
            params={
                "a": float(np.exp(log_fit.params['intercept'])),
                "b": log_fit.params['slope']
            },
            r_squared=log_fit.r_squared
        )

    def fit(
        self,
        kind: ModelKind,
        x: Sequence[Number],
        y: Sequence[Number],
        degree: int = DEFAULT_POLYNOMIAL_DEGREE
    ) -> RegressionModel:
        """Ajusta o algoritmo indicado"""
        if kind is ModelKind.LINEAR:
            return self.linear_regression(x, y)
        if kind is ModelKind.POLYNOMIAL:
            return self.polynomial_regression(x, y, degree)
        if kind is ModelKind.EXPONENTIAL:
            return self.exponential_regression(x, y)
        raise InvalidInputError(f"Algoritmo desconhecido: {kind}")

    @staticmethod
    def constant_model(y: Sequence[Number]) -> RegressionModel:
        """
        Preditor de média constante usado como fallback quando um ajuste falha
        """
        values = np.asarray(y, dtype=float)
        mean = float(values.mean()) if values.size else 0.0
        return RegressionModel(
            kind=ModelKind.LINEAR,
            params={"slope": 0.0, "intercept": mean},
            r_squared=0.0
        )

    def moving_average(self, series: Sequence[Number], window: int = MOVING_AVERAGE_WINDOW) -> List[float]:
        """
        Média móvel: janela crescente nos primeiros `window - 1` pontos,
        janela deslizante depois. Séries menores que a janela voltam inalteradas.
        """
        if window < 1:
            raise InvalidInputError(f"Janela inválida para média móvel: {window}")

        values = [float(v) for v in series]
        if len(values) < window:
            return values

        return pd.Series(values).rolling(window=window, min_periods=1).mean().tolist()
