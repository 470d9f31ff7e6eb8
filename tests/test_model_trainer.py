"""
Testes para o treinador de modelos
"""
import json

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from ml.dataset_pipeline import DatasetPipeline
from ml.model_trainer import ModelStore, ModelTrainer
from ml.regression import ModelKind, RegressionModel


class TestModelStore:
    """Testes para o armazenamento de modelos"""

    def test_save_and_clear(self):
        store = ModelStore()
        model = RegressionModel(ModelKind.LINEAR, {'slope': 1.0, 'intercept': 0.0}, 0.9)
        store.save('risk_score', model, {'r_squared': 0.9})

        assert 'risk_score' in store
        assert store.get_model('risk_score') is model
        assert store.targets() == ['risk_score']

        store.clear()
        assert len(store) == 0
        assert store.get_metrics('risk_score') is None


class TestModelTrainer:
    """Testes para a classe ModelTrainer"""

    @pytest.fixture
    def linear_records(self):
        """Capacidade de poupança proporcional à idade"""
        return [
            {'age': age, 'income': 1000 * age, 'monthly_expenses': 10 * age}
            for age in range(20, 70)
        ]

    @pytest.fixture
    def trainer(self):
        return ModelTrainer(pipeline=DatasetPipeline(seed=42))

    def test_calculate_accuracy(self):
        """Erro relativo de 5% conta, de 33% não"""
        assert ModelTrainer.calculate_accuracy([100, 200], [105, 300]) == 0.5

    def test_calculate_accuracy_zeros(self):
        assert ModelTrainer.calculate_accuracy([0, 0], [0, 0]) == 1.0
        assert ModelTrainer.calculate_accuracy([], []) == 0.0

    def test_train_algorithm_fallback(self, trainer):
        """x idênticos caem no preditor de média constante"""
        result = trainer.train_algorithm([30, 30, 30], [1, 2, 3], [30], [2], 'linear')

        assert result['model'].params == {'slope': 0.0, 'intercept': 2.0}
        assert result['predictions'] == [2.0]

    def test_unknown_algorithm(self, trainer):
        with pytest.raises(ValueError):
            trainer.train_algorithm([1, 2], [1, 2], [3], [3], 'neural_network')

    def test_selects_best_model(self, trainer, linear_records):
        results = trainer.load_and_train(linear_records, test_ratio=0.2)
        metrics = results['training_results']['metrics']['savings_capacity']

        assert metrics['algorithm'] in ('linear', 'polynomial')
        assert metrics['r_squared'] > 0.99
        assert metrics['accuracy'] == 1.0
        assert metrics['mse'] is not None
        assert len(metrics['predictions']) == 10

    def test_constant_target_has_no_model(self, trainer, linear_records):
        """Alvo constante: nenhum algoritmo supera R² 0"""
        results = trainer.load_and_train(linear_records, test_ratio=0.2, targets=['spending_trend'])
        metrics = results['training_results']['metrics']['spending_trend']

        assert metrics['algorithm'] is None
        assert metrics['mse'] is None
        assert results['training_results']['models']['spending_trend'] is None

    def test_unknown_algorithm_is_skipped(self, trainer, linear_records):
        results = trainer.load_and_train(
            linear_records,
            targets=['savings_capacity'],
            algorithms=['neural_network', 'linear']
        )
        assert results['training_results']['metrics']['savings_capacity']['algorithm'] == 'linear'

    def test_train_with_sample_data(self, trainer):
        """Conjunto de exemplo: um registro de teste, R² sempre 0"""
        results = trainer.train_with_sample_data()
        metrics = results['training_results']['metrics']

        assert set(metrics) == {'savings_capacity', 'spending_trend', 'risk_score', 'goal_achievement'}
        assert all(m['r_squared'] == 0.0 for m in metrics.values())

        low_accuracy = [r for r in results['training_results']['recommendations'] if r['type'] == 'low_accuracy']
        assert len(low_accuracy) == 4
        assert results['stats']['total_records'] == 4

    def test_model_queries(self, trainer, linear_records):
        trainer.load_and_train(linear_records, targets=['savings_capacity'])

        assert isinstance(trainer.get_trained_model('savings_capacity'), RegressionModel)
        assert trainer.get_model_metrics('savings_capacity')['r_squared'] > 0.99
        assert len(trainer.get_training_history()) == 1

    def test_export_models_is_serializable(self, trainer, linear_records):
        trainer.load_and_train(linear_records, targets=['savings_capacity', 'spending_trend'])
        exported = trainer.export_models()

        assert exported['models']['spending_trend'] is None
        assert exported['models']['savings_capacity']['algorithm'] in ('linear', 'polynomial')
        json.dumps(exported)

    def test_clear_models(self, trainer, linear_records):
        trainer.load_and_train(linear_records, targets=['savings_capacity'])
        trainer.clear_models()

        assert trainer.get_trained_model('savings_capacity') is None
        assert trainer.get_training_history() == []
