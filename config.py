"""
Configurações globais do motor de previsão financeira
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Carregar variáveis de ambiente
load_dotenv()

# === Diretórios ===
BASE_DIR = Path(__file__).parent
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
LOGS_DIR = Path(os.getenv("LOGS_DIR", BASE_DIR / "logs"))

# Criar diretórios se não existirem
DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# === Logging ===
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = LOGS_DIR / "forecasting.log"

# === Regressão ===
EXPONENTIAL_MIN_VALUE = 0.001  # Piso antes do log natural
DEFAULT_POLYNOMIAL_DEGREE = int(os.getenv("POLYNOMIAL_DEGREE", "2"))
MOVING_AVERAGE_WINDOW = int(os.getenv("MOVING_AVERAGE_WINDOW", "3"))

# === Previsões ===
SPENDING_TREND_MONTHS = int(os.getenv("SPENDING_TREND_MONTHS", "6"))
SPENDING_FORECAST_PERIODS = 3
INCOME_FORECAST_MONTHS = int(os.getenv("INCOME_FORECAST_MONTHS", "12"))
MAX_TREND_CONFIDENCE = 0.95
DATA_SUFFICIENCY_MONTHS = 12

# === Treinamento ===
DEFAULT_TEST_RATIO = float(os.getenv("TEST_RATIO", "0.2"))
RANDOM_SEED = int(os.getenv("RANDOM_SEED")) if os.getenv("RANDOM_SEED") else None
ACCURACY_TOLERANCE = 0.1  # Erro relativo aceito (10%)
DEFAULT_ALGORITHMS = ["linear", "polynomial", "exponential"]
TARGET_COLUMNS = [
    "savings_capacity",
    "spending_trend",
    "risk_score",
    "goal_achievement"
]

# === Categorização ===
CATEGORIES = [
    "housing",
    "food",
    "transportation",
    "utilities",
    "healthcare",
    "entertainment",
    "shopping",
    "other"
]
CATEGORY_CONFIDENCE_CAP = 0.95
CATEGORY_CONFIDENCE_FLOOR = 0.1
# Limiar de revisão manual: contrato fixo com o fluxo de revisão
MANUAL_REVIEW_THRESHOLD = 0.7

# === Metas ===
DAYS_PER_MONTH = 30
MARKET_VOLATILITY_THRESHOLD = 0.2
MIN_INCOME_GROWTH = 0.02
