"""
Pipeline de dados para treinamento dos modelos financeiros
Carrega, limpa, codifica e divide registros tabulares em treino/teste
"""
import io
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from config import DATA_DIR, DEFAULT_TEST_RATIO, RANDOM_SEED, TARGET_COLUMNS
from utils.exceptions import DatasetLoadError, InvalidInputError
from utils.logger import get_logger

logger = get_logger(__name__)

NUMERIC_PATTERN = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
NULL_TOKENS = {"", "null", "undefined"}

NUMERIC_FEATURES = [
    "age",
    "income",
    "monthly_expenses",
    "debt_amount",
    "credit_score",
    "savings_rate"
]


# === Codificação de variáveis categóricas ===

class SpendingCategory(Enum):
    """Perfil de gastos"""
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class RiskTolerance(Enum):
    """Tolerância a risco"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FinancialGoal(Enum):
    """Objetivo financeiro declarado"""
    EMERGENCY_FUND = "emergency_fund"
    HOUSE_PURCHASE = "house_purchase"
    EDUCATION = "education"
    RETIREMENT = "retirement"
    INVESTMENT = "investment"


SPENDING_CATEGORY_CODES = {
    SpendingCategory.CONSERVATIVE: 0,
    SpendingCategory.MODERATE: 1,
    SpendingCategory.AGGRESSIVE: 2,
}
RISK_TOLERANCE_CODES = {
    RiskTolerance.LOW: 0,
    RiskTolerance.MEDIUM: 1,
    RiskTolerance.HIGH: 2,
}
FINANCIAL_GOAL_CODES = {
    FinancialGoal.EMERGENCY_FUND: 0,
    FinancialGoal.HOUSE_PURCHASE: 1,
    FinancialGoal.EDUCATION: 2,
    FinancialGoal.RETIREMENT: 3,
    FinancialGoal.INVESTMENT: 4,
}

# Valores usados para entradas desconhecidas
DEFAULT_SPENDING_CATEGORY_CODE = 1  # moderate
DEFAULT_RISK_TOLERANCE_CODE = 1     # medium
DEFAULT_FINANCIAL_GOAL_CODE = 0     # emergency_fund


def _encode(enum_cls, codes: Dict[Enum, int], default: int, value) -> int:
    if value is None:
        return default
    try:
        member = enum_cls(str(value).strip().lower())
    except ValueError:
        return default
    return codes[member]


def encode_spending_category(value) -> int:
    return _encode(SpendingCategory, SPENDING_CATEGORY_CODES, DEFAULT_SPENDING_CATEGORY_CODE, value)


def encode_risk_tolerance(value) -> int:
    return _encode(RiskTolerance, RISK_TOLERANCE_CODES, DEFAULT_RISK_TOLERANCE_CODE, value)


def encode_financial_goals(value) -> int:
    return _encode(FinancialGoal, FINANCIAL_GOAL_CODES, DEFAULT_FINANCIAL_GOAL_CODE, value)


# === Alvos derivados ===

def _number(value) -> float:
    """Valor numérico do campo ou 0 quando ausente/não numérico"""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float, np.number)):
        return 0.0 if math.isnan(value) else float(value)
    text = str(value).strip()
    return float(text) if NUMERIC_PATTERN.match(text) else 0.0


def calculate_savings_capacity(record: Dict[str, Any]) -> float:
    return _number(record.get("income")) - _number(record.get("monthly_expenses"))


def calculate_spending_trend(record: Dict[str, Any]) -> float:
    """Razão despesas/renda em torno da linha de base 0.5"""
    income = _number(record.get("income"))
    expenses = _number(record.get("monthly_expenses"))
    if income == 0:
        return 0.0
    return (expenses / income) - 0.5


def calculate_risk_score(record: Dict[str, Any]) -> float:
    """Score de risco em [0, 1] (maior é mais arriscado)"""
    age = _number(record.get("age"))
    debt = _number(record.get("debt_amount"))
    income = _number(record.get("income"))
    credit_score = _number(record.get("credit_score"))

    debt_to_income = debt / income if income > 0 else 1.0

    if credit_score < 600:
        credit_risk = 1.0
    elif credit_score < 700:
        credit_risk = 0.5
    else:
        credit_risk = 0.0

    if age < 25:
        age_risk = 0.3
    elif age > 60:
        age_risk = 0.2
    else:
        age_risk = 0.0

    score = debt_to_income * 0.4 + credit_risk * 0.4 + age_risk * 0.2
    return max(0.0, min(1.0, score))


def calculate_goal_achievement(record: Dict[str, Any]) -> float:
    """Poupança mensal relativa à meta de 20% da renda mensal"""
    income = _number(record.get("income"))
    expenses = _number(record.get("monthly_expenses"))

    monthly_savings = income / 12 - expenses
    required_savings = 0.2 * income / 12

    if monthly_savings >= required_savings:
        return 1.0
    if required_savings <= 0:
        return 0.0
    return monthly_savings / required_savings


TARGET_FUNCTIONS = {
    "savings_capacity": calculate_savings_capacity,
    "spending_trend": calculate_spending_trend,
    "risk_score": calculate_risk_score,
    "goal_achievement": calculate_goal_achievement,
}


@dataclass
class Dataset:
    """
    Conjunto de dados processado.

    Cada série em `targets` tem o mesmo tamanho de `features`.
    """
    features: List[Dict[str, float]] = field(default_factory=list)
    targets: Dict[str, List[float]] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for name, values in self.targets.items():
            if len(values) != len(self.features):
                raise InvalidInputError(
                    f"Alvo '{name}' com {len(values)} valores para {len(self.features)} registros"
                )

    def __len__(self) -> int:
        return len(self.features)

    @property
    def feature_names(self) -> List[str]:
        if self.features:
            return list(self.features[0].keys())
        return list(self.metadata.get("features", []))

    def subset(self, indices: Sequence[int]) -> "Dataset":
        """Seleciona registros mantendo features e alvos alinhados"""
        indices = [int(i) for i in indices]
        return Dataset(
            features=[self.features[i] for i in indices],
            targets={name: [values[i] for i in indices] for name, values in self.targets.items()},
            metadata={
                "features": self.feature_names,
                "target_columns": list(self.targets.keys()),
                "total_records": len(indices),
                "source_indices": indices
            }
        )

    def to_frame(self) -> pd.DataFrame:
        """Features e alvos lado a lado em um DataFrame"""
        df = pd.DataFrame(self.features, columns=self.feature_names)
        for name, values in self.targets.items():
            df[name] = values
        return df


class DatasetPipeline:
    """
    Pipeline de preparação de dados financeiros.

    Etapas:
    - load: leitura e limpeza de registros (CSV ou em memória)
    - process: extração de features, codificação e alvos derivados
    - split: divisão aleatória em treino/teste
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Args:
            seed: Semente do embaralhamento (usa RANDOM_SEED se não especificada)
        """
        self.seed = seed if seed is not None else RANDOM_SEED

    # === Carregamento ===

    @staticmethod
    def clean_row(row: Dict[Any, Any]) -> Optional[Dict[str, Any]]:
        """
        Limpa um registro: remove espaços, descarta vazios e converte números

        Returns:
            Registro limpo ou None se ficou vazio
        """
        cleaned = {}
        for key, value in row.items():
            clean_key = str(key).strip()

            if value is None:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
                cleaned[clean_key] = float(value)
                continue

            clean_value = str(value).strip()
            if clean_value in NULL_TOKENS:
                continue

            if NUMERIC_PATTERN.match(clean_value):
                cleaned[clean_key] = float(clean_value)
            else:
                cleaned[clean_key] = clean_value

        return cleaned or None

    @staticmethod
    def resolve_path(source: Union[str, Path]) -> Path:
        """Caminhos relativos inexistentes são procurados em DATA_DIR"""
        path = Path(source)
        if not path.is_absolute() and not path.exists() and (DATA_DIR / path).exists():
            return DATA_DIR / path
        return path

    def _read_csv(self, source, delimiter: str) -> List[Dict[str, Any]]:
        if isinstance(source, (str, Path)):
            source = self.resolve_path(source)
        if isinstance(source, Path) and not source.exists():
            raise DatasetLoadError(f"Arquivo não encontrado: {source}", source=source)

        try:
            df = pd.read_csv(
                source,
                sep=delimiter,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True
            )
        except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DatasetLoadError(f"Erro ao ler dataset: {e}", source=source) from e

        return df.to_dict("records")

    def load(
        self,
        source: Union[str, Path, io.IOBase, pd.DataFrame, List[Dict[str, Any]]],
        delimiter: str = ","
    ) -> List[Dict[str, Any]]:
        """
        Carrega registros brutos

        Args:
            source: Caminho de CSV, arquivo aberto, DataFrame ou lista de dicionários
            delimiter: Separador do CSV

        Returns:
            Lista de registros limpos
        """
        if isinstance(source, pd.DataFrame):
            rows = source.to_dict("records")
        elif isinstance(source, list):
            rows = source
        elif isinstance(source, (str, Path)) or hasattr(source, "read"):
            rows = self._read_csv(source, delimiter)
        else:
            raise DatasetLoadError(f"Fonte de dados não suportada: {type(source).__name__}", source=source)

        records = []
        for row in rows:
            if not isinstance(row, dict):
                raise DatasetLoadError(f"Registro inválido: {row!r}", source=source)
            cleaned = self.clean_row(row)
            if cleaned:
                records.append(cleaned)

        logger.info(f"Carregados {len(records)} registros de {len(rows)} linhas")
        return records

    @staticmethod
    def load_sample_dataset() -> List[Dict[str, Any]]:
        """Conjunto de exemplo com 5 perfis financeiros"""
        return [
            {
                "user_id": 1, "age": 28, "income": 50000, "monthly_expenses": 3500,
                "savings_rate": 0.15, "debt_amount": 15000, "credit_score": 720,
                "spending_category": "moderate", "financial_goals": "house_purchase",
                "risk_tolerance": "medium"
            },
            {
                "user_id": 2, "age": 35, "income": 75000, "monthly_expenses": 4500,
                "savings_rate": 0.25, "debt_amount": 25000, "credit_score": 680,
                "spending_category": "conservative", "financial_goals": "retirement",
                "risk_tolerance": "low"
            },
            {
                "user_id": 3, "age": 42, "income": 90000, "monthly_expenses": 6000,
                "savings_rate": 0.20, "debt_amount": 40000, "credit_score": 750,
                "spending_category": "aggressive", "financial_goals": "investment",
                "risk_tolerance": "high"
            },
            {
                "user_id": 4, "age": 31, "income": 60000, "monthly_expenses": 4200,
                "savings_rate": 0.18, "debt_amount": 20000, "credit_score": 700,
                "spending_category": "moderate", "financial_goals": "education",
                "risk_tolerance": "medium"
            },
            {
                "user_id": 5, "age": 26, "income": 45000, "monthly_expenses": 3200,
                "savings_rate": 0.12, "debt_amount": 12000, "credit_score": 650,
                "spending_category": "conservative", "financial_goals": "emergency_fund",
                "risk_tolerance": "low"
            },
        ]

    # === Processamento ===

    @staticmethod
    def extract_features(record: Dict[str, Any]) -> Dict[str, float]:
        features = {name: _number(record.get(name)) for name in NUMERIC_FEATURES}
        features["spending_category_encoded"] = encode_spending_category(record.get("spending_category"))
        features["risk_tolerance_encoded"] = encode_risk_tolerance(record.get("risk_tolerance"))
        features["financial_goals_encoded"] = encode_financial_goals(record.get("financial_goals"))
        return features

    def process(self, raw_records: List[Dict[str, Any]]) -> Dataset:
        """
        Extrai features e calcula os alvos derivados

        Args:
            raw_records: Registros limpos

        Returns:
            Dataset com features, alvos e metadados
        """
        features = []
        targets = {name: [] for name in TARGET_COLUMNS}

        for record in raw_records:
            features.append(self.extract_features(record))
            for name in TARGET_COLUMNS:
                targets[name].append(TARGET_FUNCTIONS[name](record))

        feature_names = list(features[0].keys()) if features else NUMERIC_FEATURES + [
            "spending_category_encoded", "risk_tolerance_encoded", "financial_goals_encoded"
        ]

        dataset = Dataset(
            features=features,
            targets=targets,
            metadata={
                "features": feature_names,
                "target_columns": list(targets.keys()),
                "total_records": len(features)
            }
        )

        logger.info(f"Processados {len(dataset)} registros para treinamento")
        return dataset

    # === Divisão ===

    def split(
        self,
        dataset: Dataset,
        test_ratio: float = DEFAULT_TEST_RATIO,
        seed: Optional[int] = None
    ) -> Tuple[Dataset, Dataset]:
        """
        Embaralha e divide em treino/teste

        Args:
            dataset: Dataset processado
            test_ratio: Fração de teste (tamanho = floor(total * ratio))
            seed: Semente opcional

        Returns:
            Tupla (treino, teste)
        """
        if not 0 <= test_ratio <= 1:
            raise InvalidInputError(f"test_ratio deve estar em [0, 1]: {test_ratio}")

        total = len(dataset)
        test_size = math.floor(total * test_ratio)
        train_size = total - test_size

        rng = np.random.default_rng(seed if seed is not None else self.seed)
        indices = rng.permutation(total)

        train = dataset.subset(indices[:train_size])
        test = dataset.subset(indices[train_size:])

        logger.debug(f"Divisão: {len(train)} treino / {len(test)} teste")
        return train, test

    def load_and_process(
        self,
        source,
        test_ratio: float = DEFAULT_TEST_RATIO,
        delimiter: str = ","
    ) -> Dict[str, Any]:
        """Carrega, processa e divide um dataset em uma única chamada"""
        raw = self.load(source, delimiter=delimiter)
        processed = self.process(raw)
        train, test = self.split(processed, test_ratio)

        return {
            "raw_data": raw,
            "processed_data": processed,
            "train_data": train,
            "test_data": test,
            "metadata": processed.metadata
        }

    @staticmethod
    def get_dataset_stats(dataset: Dataset) -> Dict[str, Any]:
        """
        Estatísticas por feature e por alvo (min, max, média, contagem)
        """
        def describe(df: pd.DataFrame) -> Dict[str, Dict[str, float]]:
            numeric = df.apply(pd.to_numeric, errors="coerce")
            stats = {}
            for column in numeric.columns:
                values = numeric[column].dropna()
                if values.empty:
                    continue
                stats[column] = {
                    "min": float(values.min()),
                    "max": float(values.max()),
                    "mean": float(values.mean()),
                    "count": int(values.count())
                }
            return stats

        return {
            "total_records": len(dataset),
            "feature_count": len(dataset.feature_names) if dataset.features else 0,
            "target_count": len(dataset.targets),
            "feature_stats": describe(pd.DataFrame(dataset.features)),
            "target_stats": describe(pd.DataFrame(dataset.targets))
        }
