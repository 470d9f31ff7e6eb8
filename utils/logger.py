"""
Sistema de logging estruturado para o motor de previsão financeira

Cada módulo cria `logger = get_logger(__name__)`. As mensagens vão para o
console (coloridas quando a saída é um terminal) e para LOG_FILE.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from config import LOG_LEVEL, LOG_FILE

CONSOLE_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
FILE_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'


class ColoredFormatter(logging.Formatter):
    """Destaca o nível no console; treino/previsão em INFO e revisões em WARNING"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        # Copia para não contaminar o handler de arquivo com códigos ANSI
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if sys.stdout.isatty():
        handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def get_logger(name: str, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Retorna o logger do módulo, configurando-o na primeira chamada

    Args:
        name: Nome do logger (geralmente __name__)
        log_file: Arquivo de log (LOG_FILE se não especificado)

    Returns:
        Logger com handlers de console e arquivo
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))
    logger.addHandler(_console_handler())
    logger.addHandler(_file_handler(Path(log_file or LOG_FILE)))
    return logger


def log_training_result(logger: logging.Logger, target: str, metrics: dict) -> None:
    """
    Loga o resultado do treinamento de um alvo

    Args:
        logger: Logger a ser usado
        target: Nome da coluna alvo
        metrics: Métricas do melhor modelo
    """
    mse = metrics.get('mse')
    logger.info(
        f"TRAINING | target={target} | "
        f"algorithm={metrics.get('algorithm') or 'N/A'} | "
        f"r_squared={metrics.get('r_squared', 0):.4f} | "
        f"accuracy={metrics.get('accuracy', 0):.2%} | "
        f"mse={f'{mse:.4f}' if mse is not None else 'N/A'}"
    )


def log_prediction(logger: logging.Logger, kind: str, trend: str, confidence: float = 0.0) -> None:
    """
    Loga uma previsão gerada

    Args:
        logger: Logger a ser usado
        kind: Tipo de previsão (spending, income, savings)
        trend: Tendência/modelo escolhido
        confidence: Confiança da previsão
    """
    logger.info(
        f"PREDICTION | kind={kind} | trend={trend} | confidence={confidence:.3f}"
    )


def log_manual_review(logger: logging.Logger, description: str, category: str, confidence: float) -> None:
    """
    Loga categorizações que precisam de revisão manual

    Args:
        logger: Logger a ser usado
        description: Descrição da transação
        category: Categoria sugerida
        confidence: Confiança da sugestão
    """
    logger.warning(
        f"REVIEW | category={category} | confidence={confidence:.2f} | description={description}"
    )
