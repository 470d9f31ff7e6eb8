"""
Testes para o motor de regressão
"""
import math

import numpy as np
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from ml.regression import ModelKind, RegressionEngine, RegressionModel, predict
from utils.exceptions import InvalidInputError


class TestLinearRegression:
    """Testes para a regressão linear"""

    def setup_method(self):
        self.engine = RegressionEngine()

    def test_perfect_line(self):
        """Testa ajuste exato de y = 2x + 1"""
        model = self.engine.linear_regression([0, 1, 2, 3], [1, 3, 5, 7])

        assert model.kind is ModelKind.LINEAR
        assert model.params['slope'] == pytest.approx(2.0)
        assert model.params['intercept'] == pytest.approx(1.0)
        assert model.r_squared == pytest.approx(1.0)

    def test_r_squared_range(self):
        """Testa que R² de dados ruidosos fica em [0, 1]"""
        model = self.engine.linear_regression([0, 1, 2, 3, 4], [1, 4, 2, 5, 3])
        assert 0 <= model.r_squared <= 1

    def test_identical_x_raises(self):
        """Testa x idênticos (denominador nulo)"""
        with pytest.raises(InvalidInputError):
            self.engine.linear_regression([5, 5, 5], [1, 2, 3])

    def test_length_mismatch_raises(self):
        """Testa séries de tamanhos diferentes"""
        with pytest.raises(InvalidInputError):
            self.engine.linear_regression([1, 2, 3], [1, 2])

    def test_single_point_raises(self):
        """Testa série com um único ponto"""
        with pytest.raises(InvalidInputError):
            self.engine.linear_regression([1], [1])

    def test_invalid_input_is_value_error(self):
        """InvalidInputError também é ValueError"""
        with pytest.raises(ValueError):
            self.engine.linear_regression([], [])

    def test_constant_y_has_zero_r_squared(self):
        """Testa série constante: R² é 0"""
        model = self.engine.linear_regression([0, 1, 2], [4, 4, 4])
        assert model.params['slope'] == pytest.approx(0.0)
        assert model.r_squared == 0.0


class TestPolynomialRegression:
    """Testes para a regressão polinomial"""

    def setup_method(self):
        self.engine = RegressionEngine()

    def test_quadratic(self):
        """Testa ajuste de y = x²"""
        x = [-2, -1, 0, 1, 2, 3]
        model = self.engine.polynomial_regression(x, [v ** 2 for v in x], degree=2)

        c0, c1, c2 = model.params['coefficients']
        assert c0 == pytest.approx(0.0, abs=1e-8)
        assert c1 == pytest.approx(0.0, abs=1e-8)
        assert c2 == pytest.approx(1.0)
        assert model.r_squared == pytest.approx(1.0)
        assert predict(model, 4) == pytest.approx(16.0)

    def test_not_enough_points(self):
        """Testa grau maior que a quantidade de pontos"""
        with pytest.raises(InvalidInputError):
            self.engine.polynomial_regression([1, 2], [1, 4], degree=2)

    def test_coefficients_are_immutable(self):
        """Testa que os coeficientes ficam em tupla"""
        model = self.engine.polynomial_regression([0, 1, 2, 3], [1, 2, 5, 10])
        assert isinstance(model.params['coefficients'], tuple)


class TestExponentialRegression:
    """Testes para a regressão exponencial"""

    def setup_method(self):
        self.engine = RegressionEngine()

    def test_exponential_curve(self):
        """Testa ajuste de y = 2e^(0.5x)"""
        x = [0, 1, 2, 3, 4]
        y = [2 * math.exp(0.5 * v) for v in x]
        model = self.engine.exponential_regression(x, y)

        assert model.kind is ModelKind.EXPONENTIAL
        assert model.params['a'] == pytest.approx(2.0)
        assert model.params['b'] == pytest.approx(0.5)
        assert model.r_squared == pytest.approx(1.0)

    def test_zero_values_are_clamped(self):
        """Testa valores nulos/negativos (limitados antes do log)"""
        model = self.engine.exponential_regression([0, 1, 2], [0, -5, 10])
        assert math.isfinite(model.params['a'])
        assert math.isfinite(model.params['b'])


class TestRegressionHelpers:
    """Testes para utilitários do motor"""

    def setup_method(self):
        self.engine = RegressionEngine()

    def test_r_squared_empty(self):
        assert RegressionEngine.r_squared([], []) == 0.0

    def test_fit_dispatch(self):
        """Testa seleção de algoritmo por ModelKind"""
        model = self.engine.fit(ModelKind.LINEAR, [0, 1, 2], [0, 1, 2])
        assert model.kind is ModelKind.LINEAR

    def test_constant_model(self):
        """Testa preditor de média constante"""
        model = RegressionEngine.constant_model([2, 4, 6])
        assert model.params == {'slope': 0.0, 'intercept': 4.0}
        assert model.r_squared == 0.0
        assert predict(model, 100) == pytest.approx(4.0)

    def test_predict_scalar_and_sequence(self):
        """Testa previsão escalar e vetorial"""
        model = RegressionModel(ModelKind.LINEAR, {'slope': 1.0, 'intercept': 1.0}, 1.0)

        assert isinstance(predict(model, 2), float)
        assert np.allclose(predict(model, [0, 1, 2]), [1, 2, 3])

    def test_model_is_frozen(self):
        """Testa imutabilidade do modelo"""
        model = RegressionEngine.constant_model([1, 2])
        with pytest.raises(AttributeError):
            model.r_squared = 0.5

    def test_to_dict_and_equation(self):
        model = self.engine.linear_regression([0, 1, 2], [1, 3, 5])
        data = model.to_dict()

        assert data['algorithm'] == 'linear'
        assert data['equation'].startswith('y = 2.0000x')

    def test_moving_average(self):
        """Testa janela crescente seguida de janela deslizante"""
        result = self.engine.moving_average([1, 2, 3, 4, 5], window=3)
        assert result == pytest.approx([1.0, 1.5, 2.0, 3.0, 4.0])

    def test_moving_average_short_series(self):
        """Testa série menor que a janela (volta inalterada)"""
        assert self.engine.moving_average([7, 9], window=3) == [7.0, 9.0]

    def test_moving_average_invalid_window(self):
        with pytest.raises(InvalidInputError):
            self.engine.moving_average([1, 2, 3], window=0)
