"""
Treinamento e seleção de modelos de regressão sobre datasets financeiros
"""
from datetime import datetime
from typing import Optional, List, Dict, Any, Sequence

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from config import (
    ACCURACY_TOLERANCE,
    DEFAULT_ALGORITHMS,
    DEFAULT_POLYNOMIAL_DEGREE,
    DEFAULT_TEST_RATIO,
    EXPONENTIAL_MIN_VALUE,
    TARGET_COLUMNS
)
from ml.dataset_pipeline import Dataset, DatasetPipeline
from ml.regression import ModelKind, RegressionEngine, RegressionModel, predict
from utils.exceptions import InvalidInputError
from utils.logger import get_logger, log_training_result

logger = get_logger(__name__)


class ModelStore:
    """
    Armazena os melhores modelos e métricas por alvo.

    Ciclo de vida: criar -> treinar (save) -> consultar -> clear.
    """

    def __init__(self):
        self._models: Dict[str, Optional[RegressionModel]] = {}
        self._metrics: Dict[str, Dict[str, Any]] = {}

    def save(self, target: str, model: Optional[RegressionModel], metrics: Dict[str, Any]) -> None:
        self._models[target] = model
        self._metrics[target] = metrics

    def get_model(self, target: str) -> Optional[RegressionModel]:
        return self._models.get(target)

    def get_metrics(self, target: str) -> Optional[Dict[str, Any]]:
        return self._metrics.get(target)

    def targets(self) -> List[str]:
        return list(self._metrics.keys())

    def clear(self) -> None:
        self._models.clear()
        self._metrics.clear()

    def __contains__(self, target: str) -> bool:
        return target in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)


class ModelTrainer:
    """
    Treinador de modelos financeiros.

    Para cada alvo, ajusta todos os algoritmos candidatos sobre a primeira
    coluna de features e mantém o de maior R² no conjunto de teste.
    """

    def __init__(
        self,
        engine: Optional[RegressionEngine] = None,
        pipeline: Optional[DatasetPipeline] = None,
        store: Optional[ModelStore] = None
    ):
        self.engine = engine or RegressionEngine()
        self.pipeline = pipeline or DatasetPipeline()
        self.store = store or ModelStore()
        self.training_history: List[Dict[str, Any]] = []

    # === Métricas ===

    @staticmethod
    def calculate_accuracy(actual: Sequence[float], predicted: Sequence[float],
                           tolerance: float = ACCURACY_TOLERANCE) -> float:
        """Fração de previsões com erro relativo <= tolerância"""
        if len(actual) != len(predicted):
            raise InvalidInputError("Tamanhos diferentes entre valores reais e previstos")
        if len(actual) == 0:
            return 0.0

        correct = 0
        for a, p in zip(actual, predicted):
            diff = abs(a - p)
            max_val = max(abs(a), abs(p))
            relative_error = diff / max_val if max_val > 0 else 0.0
            if relative_error <= tolerance:
                correct += 1
        return correct / len(actual)

    @staticmethod
    def first_feature_column(dataset: Dataset) -> List[float]:
        """Primeira coluna de features (apenas ela é usada no ajuste)"""
        names = dataset.feature_names
        if not names:
            return [0.0] * len(dataset)
        return [float(record.get(names[0]) or 0) for record in dataset.features]

    # === Treinamento ===

    def train_algorithm(
        self,
        x_train: Sequence[float],
        y_train: Sequence[float],
        x_test: Sequence[float],
        y_test: Sequence[float],
        algorithm: str
    ) -> Dict[str, Any]:
        """
        Treina um algoritmo e avalia no conjunto de teste

        Args:
            x_train: Feature de treino
            y_train: Alvo de treino
            x_test: Feature de teste
            y_test: Alvo de teste
            algorithm: 'linear', 'polynomial' ou 'exponential'

        Returns:
            Dicionário com modelo, R², acurácia e previsões
        """
        kind = ModelKind(algorithm)

        if len(x_train) != len(y_train):
            raise InvalidInputError("Tamanhos diferentes entre features e alvos")

        y_fit = list(y_train)
        if kind is ModelKind.EXPONENTIAL:
            y_fit = [max(v, EXPONENTIAL_MIN_VALUE) for v in y_fit]

        try:
            model = self.engine.fit(kind, x_train, y_fit, DEFAULT_POLYNOMIAL_DEGREE)
        except InvalidInputError as e:
            logger.warning(f"Falha no ajuste {algorithm}, usando média constante: {e}")
            model = self.engine.constant_model(y_fit)

        predictions = np.atleast_1d(predict(model, list(x_test))).tolist() if len(x_test) else []

        return {
            "model": model,
            "r_squared": RegressionEngine.r_squared(y_test, predictions),
            "accuracy": self.calculate_accuracy(y_test, predictions),
            "predictions": predictions
        }

    def train_target_model(
        self,
        train_data: Dataset,
        test_data: Dataset,
        target: str,
        algorithms: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Treina todos os algoritmos para um alvo e mantém o melhor

        Args:
            train_data: Dataset de treino
            test_data: Dataset de teste
            target: Nome do alvo
            algorithms: Algoritmos candidatos

        Returns:
            Dicionário com o melhor modelo e suas métricas
        """
        algorithms = algorithms or DEFAULT_ALGORITHMS
        target_values = train_data.targets.get(target)
        if not target_values:
            raise InvalidInputError(f"Nenhum valor de alvo encontrado para {target}")

        test_values = list(test_data.targets.get(target, []))
        x_train = self.first_feature_column(train_data)
        x_test = self.first_feature_column(test_data)

        best = {
            "algorithm": None,
            "model": None,
            "r_squared": 0.0,
            "accuracy": 0.0,
            "predictions": []
        }

        for algorithm in algorithms:
            try:
                result = self.train_algorithm(x_train, target_values, x_test, test_values, algorithm)
            except (InvalidInputError, ValueError) as e:
                logger.warning(f"Algoritmo {algorithm} falhou para {target}: {e}")
                continue

            if result["r_squared"] > best["r_squared"]:
                best = {"algorithm": algorithm, **result}

        has_predictions = bool(best["predictions"]) and len(best["predictions"]) == len(test_values)
        metrics = {
            "algorithm": best["algorithm"],
            "r_squared": best["r_squared"],
            "accuracy": best["accuracy"],
            "mse": float(mean_squared_error(test_values, best["predictions"])) if has_predictions else None,
            "mae": float(mean_absolute_error(test_values, best["predictions"])) if has_predictions else None,
            "predictions": best["predictions"],
            "actual": test_values
        }

        return {"model": best["model"], "metrics": metrics}

    def train_financial_models(
        self,
        train_data: Dataset,
        test_data: Dataset,
        targets: Optional[List[str]] = None,
        algorithms: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Treina um modelo por alvo e guarda os resultados no ModelStore

        Args:
            train_data: Dataset de treino
            test_data: Dataset de teste
            targets: Alvos a treinar
            algorithms: Algoritmos candidatos

        Returns:
            Modelos, métricas e recomendações de treinamento
        """
        targets = targets or TARGET_COLUMNS
        algorithms = algorithms or DEFAULT_ALGORITHMS
        logger.info(f"Iniciando treinamento: {len(train_data)} registros, alvos={targets}")

        models = {}
        metrics = {}
        for target in targets:
            result = self.train_target_model(train_data, test_data, target, algorithms)
            models[target] = result["model"]
            metrics[target] = result["metrics"]
            self.store.save(target, result["model"], result["metrics"])
            log_training_result(logger, target, result["metrics"])

        self.training_history.append({
            "timestamp": datetime.now().isoformat(),
            "dataset_size": len(train_data),
            "targets": list(targets),
            "algorithms": list(algorithms),
            "overall_accuracy": self.calculate_overall_accuracy(metrics)
        })

        logger.info("Treinamento concluído")
        return {
            "models": models,
            "metrics": metrics,
            "recommendations": self.generate_training_recommendations(metrics)
        }

    @staticmethod
    def generate_training_recommendations(metrics: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Sinaliza alvos com R² baixo, erro alto ou bom desempenho"""
        recommendations = []

        for target, metric in metrics.items():
            if metric["r_squared"] < 0.5:
                recommendations.append({
                    "type": "low_accuracy",
                    "target": target,
                    "message": (
                        f"{target} model has low accuracy (R² = {metric['r_squared']:.3f}). "
                        f"Consider more data or feature engineering."
                    ),
                    "priority": "high"
                })

            if metric["mse"] is not None and metric["mse"] > 1000:
                recommendations.append({
                    "type": "high_error",
                    "target": target,
                    "message": (
                        f"{target} model has high prediction error (MSE = {metric['mse']:.2f}). "
                        f"Consider data preprocessing."
                    ),
                    "priority": "medium"
                })

            if metric["accuracy"] > 0.8:
                recommendations.append({
                    "type": "good_performance",
                    "target": target,
                    "message": f"{target} model shows good performance (Accuracy = {metric['accuracy']:.1%}).",
                    "priority": "low"
                })

        return recommendations

    @staticmethod
    def calculate_overall_accuracy(metrics: Dict[str, Dict[str, Any]]) -> float:
        accuracies = [m["accuracy"] for m in metrics.values()]
        return sum(accuracies) / len(accuracies) if accuracies else 0.0

    # === Fluxos completos ===

    def train_with_sample_data(self, test_ratio: float = DEFAULT_TEST_RATIO) -> Dict[str, Any]:
        """Treina sobre o conjunto de exemplo embutido"""
        raw = self.pipeline.load_sample_dataset()
        processed = self.pipeline.process(raw)
        train, test = self.pipeline.split(processed, test_ratio)

        results = self.train_financial_models(train, test)
        return {
            "dataset": {"train_data": train, "test_data": test, "metadata": processed.metadata},
            "training_results": results,
            "stats": self.pipeline.get_dataset_stats(train)
        }

    def load_and_train(self, source, test_ratio: float = DEFAULT_TEST_RATIO, **options) -> Dict[str, Any]:
        """
        Carrega um dataset (CSV ou em memória) e treina todos os alvos

        Raises:
            DatasetLoadError: se a fonte não puder ser lida
        """
        dataset = self.pipeline.load_and_process(source, test_ratio, delimiter=options.get("delimiter", ","))
        results = self.train_financial_models(
            dataset["train_data"],
            dataset["test_data"],
            targets=options.get("targets"),
            algorithms=options.get("algorithms")
        )
        return {
            "dataset": dataset,
            "training_results": results,
            "stats": self.pipeline.get_dataset_stats(dataset["train_data"])
        }

    # === Consulta ===

    def get_trained_model(self, target: str) -> Optional[RegressionModel]:
        return self.store.get_model(target)

    def get_model_metrics(self, target: str) -> Optional[Dict[str, Any]]:
        return self.store.get_metrics(target)

    def get_training_history(self) -> List[Dict[str, Any]]:
        return list(self.training_history)

    def clear_models(self) -> None:
        """Limpa modelos, métricas e histórico"""
        self.store.clear()
        self.training_history = []
        logger.info("Modelos treinados removidos")

    def export_models(self) -> Dict[str, Any]:
        """Exporta modelos e métricas em estruturas serializáveis"""
        return {
            "models": {
                target: model.to_dict() if model else None
                for target, model in ((t, self.store.get_model(t)) for t in self.store.targets())
            },
            "metrics": {t: self.store.get_metrics(t) for t in self.store.targets()},
            "training_history": self.get_training_history()
        }
