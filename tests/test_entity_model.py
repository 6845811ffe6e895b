import numpy as np
import pytest

from dyadfactor.config import LearnerConfig
from dyadfactor.entity_model import EntityFactorModel, Initialized, Uninitialized
from dyadfactor.learner import OnlineLogisticLearner
from dyadfactor.errors import (
    ConfigurationError,
    DegenerateBiasError,
    DegenerateValueError,
    DimensionMismatchError,
    InvalidIndexError,
    InvalidLabelError,
)


def make_model(num_factors: int = 3, **config) -> EntityFactorModel:
    return EntityFactorModel(num_factors, LearnerConfig(**config), rng=np.random.default_rng(0))


def test_extend_randomizes_only_the_touched_row() -> None:
    model = make_model()
    assert model.row_state(5) == Uninitialized()
    model.extend(5)
    assert model.row_state(5) == Initialized(0)
    assert model.num_rows == 6
    assert np.any(model.weights(5) != 0.0)
    for entity_id in range(5):
        assert model.row_state(entity_id) == Uninitialized()
        np.testing.assert_array_equal(model.store.get_row(entity_id), np.zeros(4))
    np.testing.assert_array_equal(model.initialized_ids(), [5])


def test_extend_is_idempotent() -> None:
    model = make_model()
    first = model.weights(2).copy()
    model.extend(2)
    np.testing.assert_array_equal(model.weights(2), first)


def test_initial_bias_overrides_noise() -> None:
    model = EntityFactorModel(3, rng=np.random.default_rng(1), initial_bias=0.0)
    assert model.get_bias(4) == 0.0
    assert np.any(model.weights(4)[1:] != 0.0)


def test_train_counts_updates_and_anneals() -> None:
    model = make_model(lambda_=0.0)
    assert model.current_learning_rate(1) == 1.0
    model.train(1, 1, np.ones(4))
    model.train(1, 0, np.ones(4))
    assert model.update_count(1) == 2
    assert model.row_state(1) == Initialized(2)
    assert model.current_learning_rate(1) == pytest.approx(0.5)


def test_train_touches_only_its_row() -> None:
    model = make_model()
    other = model.weights(0).copy()
    model.train(1, 1, np.ones(4))
    np.testing.assert_array_equal(model.weights(0), other)
    assert model.update_count(0) == 0


def test_invalid_arguments_do_not_extend() -> None:
    model = make_model()
    with pytest.raises(InvalidIndexError):
        model.train(-1, 1, np.ones(4))
    with pytest.raises(InvalidLabelError):
        model.train(3, 2, np.ones(4))
    with pytest.raises(DimensionMismatchError):
        model.train(3, 1, np.ones(3))
    assert model.num_rows == 0


def test_failed_step_restores_counter_and_row() -> None:
    model = make_model(mu0=1e10)
    model.extend(0)
    model.store.assign_row(0, np.zeros(4))
    before = model.weights(0).copy()
    with np.errstate(over="ignore", invalid="ignore"):
        with pytest.raises(DegenerateValueError):
            model.train(0, 1, np.array([1e300, 0.0, 0.0, 0.0]))
    assert model.update_count(0) == 0
    np.testing.assert_array_equal(model.weights(0), before)


def test_bias_accessors() -> None:
    model = make_model()
    model.set_bias(0, 1.5)
    assert model.get_bias(0) == 1.5
    assert model.weights(0)[0] == 1.5
    model.adjust_bias(0, 0.5)
    assert model.get_bias(0) == 2.0
    model.scale_bias(0, 3.0)
    assert model.get_bias(0) == 6.0


def test_non_finite_bias_is_rejected() -> None:
    model = make_model()
    model.set_bias(0, 1e308)
    with pytest.raises(DegenerateBiasError):
        model.set_bias(0, float("nan"))
    with pytest.raises(DegenerateBiasError):
        model.adjust_bias(0, float("inf"))
    with pytest.raises(DegenerateBiasError):
        model.scale_bias(0, 10.0)
    assert model.get_bias(0) == 1e308


def test_fluent_configuration() -> None:
    model = make_model()
    assert model.learning_rate(0.5).lambda_(0.1) is model
    assert model.config.mu0 == 0.5
    assert model.get_lambda() == pytest.approx(0.1)
    with pytest.raises(ConfigurationError):
        model.learning_rate(0.0)
    with pytest.raises(ConfigurationError):
        model.lambda_(-1.0)
    assert model.config.mu0 == 0.5


def test_snapshot_and_restore() -> None:
    model = make_model()
    snapshot = model.snapshot(7)
    model.train(7, 1, np.ones(4))
    assert model.row_state(7) == Initialized(1)
    model.restore(snapshot)
    assert model.row_state(7) == Uninitialized()
    np.testing.assert_array_equal(model.store.get_row(7), np.zeros(4))

    model.train(7, 1, np.ones(4))
    snapshot = model.snapshot(7)
    weights = model.weights(7).copy()
    model.train(7, 0, np.ones(4))
    model.restore(snapshot)
    assert model.row_state(7) == Initialized(1)
    np.testing.assert_array_equal(model.weights(7), weights)


def test_num_factors_must_be_positive() -> None:
    with pytest.raises(ConfigurationError):
        EntityFactorModel(0)


def test_learning_rates_are_per_row() -> None:
    model = make_model(lambda_=0.0)
    for _ in range(3):
        model.train(0, 1, np.ones(4))
    model.train(1, 1, np.ones(4))
    assert model.current_learning_rate(0) == pytest.approx(1.0 / 3.0)
    assert model.current_learning_rate(1) == pytest.approx(1.0)
    assert model.current_learning_rate(2) == pytest.approx(1.0)


class FrozenBiasLearner(OnlineLogisticLearner):
    def per_term_learning_rate(self, j: int) -> float:
        return 0.0 if j == 0 else 1.0


def test_learner_class_controls_per_term_rates() -> None:
    model = EntityFactorModel(
        3, LearnerConfig(lambda_=0.0), rng=np.random.default_rng(0), learner_cls=FrozenBiasLearner
    )
    before = model.weights(0).copy()
    model.train(0, 1, np.ones(4))
    after = model.weights(0)
    assert after[0] == before[0]
    assert np.all(after[1:] > before[1:])
