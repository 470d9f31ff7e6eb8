"""
Exceções do motor de previsão financeira
"""


class ForecastingError(Exception):
    """Erro base do motor de previsão"""


class InvalidInputError(ForecastingError, ValueError):
    """Dados de entrada insuficientes ou inválidos para um ajuste"""


class DatasetLoadError(ForecastingError, IOError):
    """Fonte de dados ilegível ou malformada"""

    def __init__(self, message: str, source=None):
        super().__init__(message)
        self.source = source
