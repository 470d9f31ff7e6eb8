"""
Testes para o pipeline de datasets
"""
import io

import pandas as pd
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from ml.dataset_pipeline import (
    Dataset,
    DatasetPipeline,
    calculate_goal_achievement,
    calculate_risk_score,
    calculate_spending_trend,
    encode_financial_goals,
    encode_risk_tolerance,
    encode_spending_category
)
from utils.exceptions import DatasetLoadError, InvalidInputError


class TestEncoding:
    """Testes para codificação de variáveis categóricas"""

    def test_spending_category(self):
        assert encode_spending_category('conservative') == 0
        assert encode_spending_category('moderate') == 1
        assert encode_spending_category('aggressive') == 2

    def test_zero_codes_are_kept(self):
        """Categorias com código 0 não caem no valor padrão"""
        assert encode_risk_tolerance('low') == 0
        assert encode_financial_goals('emergency_fund') == 0

    def test_unknown_values_use_defaults(self):
        assert encode_spending_category('lavish') == 1
        assert encode_risk_tolerance(None) == 1
        assert encode_financial_goals('yacht') == 0

    def test_case_insensitive(self):
        assert encode_financial_goals(' Retirement ') == 3


class TestDerivedTargets:
    """Testes para os alvos derivados"""

    def test_spending_trend_zero_income(self):
        assert calculate_spending_trend({'income': 0, 'monthly_expenses': 100}) == 0.0

    def test_risk_score_bounds(self):
        risky = {'age': 22, 'debt_amount': 500000, 'income': 10000, 'credit_score': 500}
        safe = {'age': 40, 'debt_amount': 0, 'income': 100000, 'credit_score': 800}

        assert calculate_risk_score(risky) == 1.0
        assert calculate_risk_score(safe) == 0.0

    def test_goal_achievement(self):
        record = {'income': 50000, 'monthly_expenses': 3500}
        assert calculate_goal_achievement(record) == pytest.approx(0.8)

    def test_goal_achievement_met(self):
        assert calculate_goal_achievement({'income': 120000, 'monthly_expenses': 1000}) == 1.0


class TestDatasetPipeline:
    """Testes para carga, processamento e divisão"""

    @pytest.fixture
    def pipeline(self):
        return DatasetPipeline(seed=42)

    @pytest.fixture
    def large_dataset(self, pipeline):
        records = [
            {'age': 20 + i % 50, 'income': 30000 + 500 * i, 'monthly_expenses': 2000 + 10 * i}
            for i in range(100)
        ]
        return pipeline.process(records)

    def test_clean_row(self):
        row = {' age ': ' 30 ', 'name': ' Ana ', 'empty': '', 'nothing': 'null', 'undef': 'undefined'}
        assert DatasetPipeline.clean_row(row) == {'age': 30.0, 'name': 'Ana'}

    def test_clean_row_empty(self):
        assert DatasetPipeline.clean_row({'a': '', 'b': None}) is None

    def test_sample_dataset(self, pipeline):
        dataset = pipeline.process(pipeline.load_sample_dataset())

        assert len(dataset) == 5
        assert dataset.targets['savings_capacity'][0] == pytest.approx(46500.0)
        assert dataset.features[1]['spending_category_encoded'] == 0
        assert set(dataset.targets) == {'savings_capacity', 'spending_trend', 'risk_score', 'goal_achievement'}

    def test_split_sizes(self, pipeline, large_dataset):
        """100 registros com razão 0.2: 80 treino / 20 teste sem interseção"""
        train, test = pipeline.split(large_dataset, 0.2)

        train_idx = set(train.metadata['source_indices'])
        test_idx = set(test.metadata['source_indices'])

        assert len(train) == 80
        assert len(test) == 20
        assert train_idx.isdisjoint(test_idx)
        assert train_idx | test_idx == set(range(100))

    def test_split_keeps_targets_aligned(self, pipeline, large_dataset):
        train, _ = pipeline.split(large_dataset, 0.2)

        for position, source in enumerate(train.metadata['source_indices']):
            assert train.features[position] == large_dataset.features[source]
            assert train.targets['risk_score'][position] == large_dataset.targets['risk_score'][source]

    def test_split_reproducible_with_seed(self, large_dataset):
        first, _ = DatasetPipeline(seed=7).split(large_dataset, 0.3)
        second, _ = DatasetPipeline(seed=7).split(large_dataset, 0.3)

        assert first.metadata['source_indices'] == second.metadata['source_indices']

    def test_split_invalid_ratio(self, pipeline, large_dataset):
        with pytest.raises(InvalidInputError):
            pipeline.split(large_dataset, 1.5)

    def test_load_csv(self, pipeline):
        """Testa CSV com linha vazia e valores numéricos em texto"""
        csv = io.StringIO(
            "age,income,monthly_expenses,risk_tolerance\n"
            "30,60000,4000,low\n"
            ",,,\n"
            "40,80000,5000,high\n"
        )
        records = pipeline.load(csv)

        assert len(records) == 2
        assert records[0] == {'age': 30.0, 'income': 60000.0, 'monthly_expenses': 4000.0, 'risk_tolerance': 'low'}

    def test_load_csv_file(self, pipeline, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("age;income\n25;40000\n", encoding="utf-8")

        records = pipeline.load(path, delimiter=";")
        assert records == [{'age': 25.0, 'income': 40000.0}]

    def test_relative_path_uses_data_dir(self, pipeline, tmp_path, monkeypatch):
        """Arquivo relativo inexistente no diretório atual é buscado em DATA_DIR"""
        import ml.dataset_pipeline as module

        (tmp_path / "perfis.csv").write_text("age,income\n33,70000\n", encoding="utf-8")
        monkeypatch.setattr(module, "DATA_DIR", tmp_path)

        assert pipeline.load("perfis.csv") == [{'age': 33.0, 'income': 70000.0}]

    def test_load_dataframe(self, pipeline):
        df = pd.DataFrame([{'age': 30, 'income': 50000}, {'age': 41, 'income': None}])
        records = pipeline.load(df)

        assert records[0] == {'age': 30.0, 'income': 50000.0}
        assert records[1] == {'age': 41.0}

    def test_missing_file(self, pipeline, tmp_path):
        with pytest.raises(DatasetLoadError) as exc_info:
            pipeline.load(tmp_path / "missing.csv")
        assert exc_info.value.source == tmp_path / "missing.csv"

    def test_unsupported_source(self, pipeline):
        with pytest.raises(DatasetLoadError):
            pipeline.load(12345)

    def test_load_and_process(self, pipeline):
        result = pipeline.load_and_process(pipeline.load_sample_dataset(), test_ratio=0.2)

        assert len(result['train_data']) == 4
        assert len(result['test_data']) == 1
        assert result['metadata']['total_records'] == 5

    def test_dataset_stats(self, pipeline):
        dataset = pipeline.process(pipeline.load_sample_dataset())
        stats = DatasetPipeline.get_dataset_stats(dataset)

        assert stats['total_records'] == 5
        assert stats['feature_count'] == 9
        assert stats['feature_stats']['age']['min'] == 26.0
        assert stats['target_stats']['savings_capacity']['count'] == 5

    def test_dataset_length_mismatch(self):
        with pytest.raises(InvalidInputError):
            Dataset(features=[{'age': 1.0}], targets={'risk_score': [0.1, 0.2]})

    def test_to_frame(self, pipeline):
        frame = pipeline.process(pipeline.load_sample_dataset()).to_frame()

        assert len(frame) == 5
        assert 'savings_capacity' in frame.columns
