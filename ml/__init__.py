"""
Módulos de Machine Learning do motor de previsão financeira

Regressão:
- RegressionEngine: Ajustes linear, polinomial e exponencial + média móvel

Previsão:
- TrendAnalyzer: Tendência de gastos, crescimento de renda e capacidade de poupança

Treinamento:
- DatasetPipeline: Carga, limpeza, codificação e divisão de datasets
- ModelTrainer: Seleção do melhor algoritmo por alvo

Categorização:
- CategorizationScorer: Categorização de transações por palavras-chave
"""
from ml.regression import ModelKind, RegressionEngine, RegressionModel, predict
from ml.trend_analyzer import TrendAnalyzer
from ml.dataset_pipeline import Dataset, DatasetPipeline
from ml.model_trainer import ModelStore, ModelTrainer
from ml.categorizer import CategorizationScorer, CategoryPrediction, get_category_suggestions

__all__ = [
    # Regressão
    "ModelKind",
    "RegressionEngine",
    "RegressionModel",
    "predict",
    # Previsão
    "TrendAnalyzer",
    # Treinamento
    "Dataset",
    "DatasetPipeline",
    "ModelStore",
    "ModelTrainer",
    # Categorização
    "CategorizationScorer",
    "CategoryPrediction",
    "get_category_suggestions"
]
