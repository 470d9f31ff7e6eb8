"""
Testes para o sistema de logging
"""
import logging

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.logger import ColoredFormatter, get_logger, log_training_result


class TestLogger:
    """Testes para get_logger e ColoredFormatter"""

    def test_formatter_does_not_change_record(self):
        """Cores ficam só na saída formatada"""
        record = logging.LogRecord("teste", logging.WARNING, __file__, 1, "revisar", None, None)
        output = ColoredFormatter('%(levelname)s | %(message)s').format(record)

        assert '\033[33m' in output
        assert record.levelname == 'WARNING'

    def test_writes_to_log_file(self, tmp_path):
        log_file = tmp_path / "forecasting.log"
        logger = get_logger("tests.logger.file", log_file=log_file)
        try:
            log_training_result(logger, "risk_score", {"algorithm": None, "r_squared": 0.0, "mse": None})
            logger.warning("aviso de teste")
            for handler in logger.handlers:
                handler.flush()

            content = log_file.read_text(encoding="utf-8")
            assert "aviso de teste" in content
            assert "\033[" not in content
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_handlers_are_not_duplicated(self, tmp_path):
        name = "tests.logger.dup"
        logger = get_logger(name, log_file=tmp_path / "a.log")
        try:
            count = len(logger.handlers)
            assert get_logger(name) is logger
            assert len(logger.handlers) == count == 2
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
