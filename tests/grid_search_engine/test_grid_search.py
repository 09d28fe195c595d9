import math

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import Ridge
from sklearn.metrics import mean_squared_error, r2_score
from sklearn.model_selection import KFold, ShuffleSplit
from sklearn.neighbors import KNeighborsRegressor

from modules.cross_validation_engine import cross_validate
from modules.grid_search_engine import GridSearchCV, GridSearchResult
from modules.model_factory import SklearnEstimator
from utils.exceptions import ConfigurationError, EstimatorFailure, NotFittedError, SchemaError

from conftest import ConstantEstimator, ThresholdEstimator, exact_match_scorer, level_scorer


class TestSelection:

    def test_end_to_end_threshold_scenario(self, linear_data):
        X, y = linear_data
        search = GridSearchCV(
            ThresholdEstimator(),
            {"alpha": [0.1, 1.0], "beta": ["x", "y"]},
            exact_match_scorer,
            cv=KFold(4),
        ).fit(X, y)

        assert search.best_params_ == {"alpha": 1.0, "beta": "y"}
        assert search.best_score_ == 1.0
        assert search.best_index_ == 3
        assert search.cv_results_ == {
            "alpha": [0.1, 0.1, 1.0, 1.0],
            "beta": ["x", "y", "x", "y"],
            "score": [0.0, 0.0, 0.0, 1.0],
        }
        assert isinstance(search.best_estimator_, ThresholdEstimator)
        assert search.best_estimator_.alpha == 1.0

    def test_policy_inversion(self, constant_data):
        X, y = constant_data
        grid = {"level": [0.9, 0.5, 0.7]}

        higher = GridSearchCV(ConstantEstimator(), grid, level_scorer, cv=3).fit(X, y)
        lower = GridSearchCV(ConstantEstimator(), grid, level_scorer, cv=3, lower_is_better=True).fit(X, y)

        assert higher.best_index_ == 0 and higher.best_score_ == pytest.approx(0.9)
        assert lower.best_index_ == 1 and lower.best_score_ == pytest.approx(0.5)

    @pytest.mark.parametrize("lower_is_better, expected", [(False, 0), (True, 2)])
    def test_ties_go_to_first_enumerated(self, constant_data, lower_is_better, expected):
        X, y = constant_data
        search = GridSearchCV(
            ConstantEstimator(), {"level": [0.9, 0.5], "tag": ["a", "b"]},
            level_scorer, cv=3, n_jobs=4, lower_is_better=lower_is_better,
        ).fit(X, y)

        assert search.cv_results_["score"] == pytest.approx([0.9, 0.9, 0.5, 0.5])
        assert search.best_index_ == expected

    def test_template_is_never_modified(self, linear_data):
        X, y = linear_data
        template = ThresholdEstimator()
        GridSearchCV(template, {"alpha": [1.0], "beta": ["y"]}, exact_match_scorer, cv=4).fit(X, y)
        assert (template.alpha, template.beta, template.coef_) == (0.1, "x", None)


class TestDeterminism:

    @pytest.fixture
    def grid(self):
        return {"alpha": [0.01, 0.1, 1.0, 10.0, 100.0], "fit_intercept": [True, False]}

    def _search(self, data, grid, **kwargs):
        X, y = data
        return GridSearchCV(
            SklearnEstimator(Ridge()), grid, r2_score,
            cv=KFold(5, shuffle=True, random_state=0), **kwargs,
        ).fit(X, y)

    @pytest.mark.parametrize("kwargs", [
        {"n_jobs": 4},
        {"n_jobs": 3, "dispatch": "dynamic"},
        {"n_jobs": 2, "cv_n_jobs": 2},
        {"n_jobs": -1, "reuse_scratch": False},
    ])
    def test_parallel_degree_never_changes_the_answer(self, regression_data, grid, kwargs):
        sequential = self._search(regression_data, grid, n_jobs=1)
        parallel = self._search(regression_data, grid, **kwargs)

        assert parallel.best_index_ == sequential.best_index_
        assert parallel.best_params_ == sequential.best_params_
        assert parallel.best_score_ == pytest.approx(sequential.best_score_)
        pd.testing.assert_frame_equal(parallel.result_.to_frame(), sequential.result_.to_frame())

    def test_lower_is_better_error_metric(self, regression_data, grid):
        X, y = regression_data
        search = GridSearchCV(
            SklearnEstimator(Ridge()), grid, mean_squared_error,
            cv=KFold(5), lower_is_better=True,
        ).fit(X, y)
        scores = search.cv_results_["score"]
        assert search.best_score_ == min(scores)
        assert search.best_index_ == scores.index(min(scores))


class TestGridEdgeCases:

    def test_empty_grid_evaluates_template_once(self, constant_data):
        X, y = constant_data
        search = GridSearchCV(ConstantEstimator(level=0.4), {}, level_scorer, cv=3).fit(X, y)
        assert search.cv_results_ == {"score": [pytest.approx(0.4)]}
        assert search.best_params_ == {}
        assert search.best_index_ == 0

    def test_missing_grid_has_no_assignments(self, constant_data, mock_logger):
        X, y = constant_data
        search = GridSearchCV(ConstantEstimator(), None, level_scorer, cv=3, logger=mock_logger).fit(X, y)
        assert search.cv_results_ == {"score": []}
        assert search.best_index_ is None
        assert search.best_params_ is None
        assert math.isnan(search.best_score_)
        assert search.best_estimator_ is None
        mock_logger.warning.assert_called()

    def test_parameter_named_score_is_rejected(self, constant_data):
        X, y = constant_data
        search = GridSearchCV(ConstantEstimator(), {"score": [1.0]}, level_scorer, cv=3)
        with pytest.raises(SchemaError, match="score"):
            search.fit(X, y)

    def test_malformed_grid(self, constant_data):
        X, y = constant_data
        with pytest.raises(SchemaError):
            GridSearchCV(ConstantEstimator(), {"level": []}, level_scorer, cv=3).fit(X, y)

    def test_to_frame(self, constant_data):
        X, y = constant_data
        search = GridSearchCV(ConstantEstimator(), {"level": [0.1, 0.2]}, level_scorer, cv=3).fit(X, y)
        frame = search.result_.to_frame()
        assert list(frame.columns) == ["level", "score"]
        assert frame["score"].tolist() == pytest.approx([0.1, 0.2])
        assert isinstance(search.result_, GridSearchResult)


class TestErrors:

    def test_unknown_parameter_carries_assignment_context(self, constant_data):
        X, y = constant_data
        search = GridSearchCV(ConstantEstimator(), {"depth": [1, 2]}, level_scorer, cv=3)
        with pytest.raises(ConfigurationError, match="Assignment 0") as exc:
            search.fit(X, y)
        assert exc.value.assignment_index == 0
        assert exc.value.params == {"depth": 1}

    @pytest.mark.parametrize("n_jobs", [1, 3])
    @pytest.mark.parametrize("dispatch", ["static", "dynamic"])
    def test_raise_reports_lowest_failing_assignment(self, constant_data, n_jobs, dispatch):
        X, y = constant_data
        search = GridSearchCV(
            ConstantEstimator(), {"fail_stage": ["none", "fit", "transform"]},
            level_scorer, cv=3, n_jobs=n_jobs, dispatch=dispatch,
        )
        with pytest.raises(EstimatorFailure) as exc:
            search.fit(X, y)
        assert exc.value.assignment_index == 1
        assert exc.value.stage == "fit"
        assert exc.value.fold == 0
        assert exc.value.params == {"fail_stage": "fit"}

    def test_collect_excludes_failures_from_selection(self, constant_data, mock_logger):
        X, y = constant_data
        search = GridSearchCV(
            ConstantEstimator(), {"level": [0.2, 0.9], "fail_stage": ["none", "transform"]},
            level_scorer, cv=3, n_jobs=2, on_error="collect", logger=mock_logger,
        ).fit(X, y)

        assert sorted(search.errors_) == [1, 3]
        assert all(isinstance(e, EstimatorFailure) for e in search.errors_.values())
        assert search.errors_[3].assignment_index == 3
        scores = search.cv_results_["score"]
        assert math.isnan(scores[1]) and math.isnan(scores[3])
        assert search.best_index_ == 2
        assert search.best_params_ == {"level": 0.9, "fail_stage": "none"}

    def test_collect_configuration_errors(self, constant_data):
        X, y = constant_data
        search = GridSearchCV(
            ConstantEstimator(), {"level": [0.5, "high"]}, level_scorer, cv=3, on_error="collect",
        ).fit(X, y)
        assert isinstance(search.errors_[1], ConfigurationError)
        assert search.best_index_ == 0

    def test_collect_invalid_sklearn_values(self, regression_data):
        X, y = regression_data
        search = GridSearchCV(
            SklearnEstimator(Ridge()), {"alpha": [1.0, "high"]}, r2_score, cv=3, on_error="collect",
        ).fit(X, y)
        assert isinstance(search.errors_[1], ConfigurationError)
        assert search.best_params_ == {"alpha": 1.0}

    def test_invalid_settings(self):
        with pytest.raises(ConfigurationError):
            GridSearchCV(ConstantEstimator(), {}, level_scorer, on_error="skip")
        with pytest.raises(ConfigurationError):
            GridSearchCV(ConstantEstimator(), {}, level_scorer, dispatch="queue")
        with pytest.raises(ConfigurationError):
            GridSearchCV(ConstantEstimator(), {}, "r2")


class TestEstimatorContract:

    def test_unfitted_access_raises(self):
        search = GridSearchCV(ConstantEstimator(), {"level": [1.0]}, level_scorer)
        with pytest.raises(NotFittedError):
            search.best_index_
        with pytest.raises(NotFittedError):
            search.transform(np.zeros((2, 2)))

    def test_clone_is_unfitted_with_same_settings(self, constant_data):
        X, y = constant_data
        search = GridSearchCV(
            ConstantEstimator(), {"level": [1.0, 2.0]}, level_scorer,
            cv=KFold(3), n_jobs=2, lower_is_better=True,
        ).fit(X, y)
        copy = search.clone()

        assert copy.result_ is None
        assert copy.param_grid == search.param_grid
        assert (copy.n_jobs, copy.lower_is_better) == (2, True)
        assert copy.estimator is not search.estimator

    def test_transform_delegates_to_best_estimator(self, constant_data):
        X, y = constant_data
        search = GridSearchCV(ConstantEstimator(), {"level": [0.3, 0.6]}, level_scorer, cv=3).fit(X, y)
        np.testing.assert_array_equal(search.predict(np.zeros((4, 2))), np.full(4, 0.6))

    def test_configured_neighbours_search_predicts_from_best_fold(self, regression_data):
        X, y = regression_data
        config = {
            "estimator": {"model": "KNeighborsRegressor"},
            "param_grid": {"n_neighbors": [1]},
            "cv": {"n_splits": 3, "shuffle": False},
        }
        search = GridSearchCV.from_config(config).fit(X, y)

        references, scores = [], []
        for train, test in KFold(3).split(X):
            reference = KNeighborsRegressor(n_neighbors=1).fit(X[train], y[train])
            references.append(reference)
            scores.append(r2_score(y[test], reference.predict(X[test])))
        best = int(np.argmax(scores))

        np.testing.assert_allclose(search.predict(X), references[best].predict(X))

    def test_nested_cross_validation(self, regression_data):
        X, y = regression_data
        inner = GridSearchCV(SklearnEstimator(Ridge()), {"alpha": [0.1, 1.0, 10.0]}, r2_score, cv=3)

        outer = cross_validate(inner, X, y, scorer=r2_score, cv=KFold(4), n_jobs=2)

        assert outer.n_folds == 4
        assert all(isinstance(est, GridSearchCV) for est in outer.estimators)
        assert all(est.best_params_["alpha"] in (0.1, 1.0, 10.0) for est in outer.estimators)
        assert inner.result_ is None
        assert np.isfinite(outer.test_score).all()

    def test_plain_sklearn_estimator_is_wrapped(self, regression_data):
        X, y = regression_data
        search = GridSearchCV(Ridge(), {"alpha": [0.1, 1.0]}, r2_score, cv=ShuffleSplit(3, random_state=0))
        search.fit(X, y)
        assert isinstance(search.estimator, SklearnEstimator)
        assert search.best_estimator_.model.alpha in (0.1, 1.0)


class TestLogging:

    def test_verbose_logs_assignments_and_fold_summary(self, constant_data, mock_logger):
        X, y = constant_data
        GridSearchCV(
            ConstantEstimator(), {"level": [0.1, 0.2]}, level_scorer,
            cv=3, verbose=True, logger=mock_logger,
        ).fit(X, y)

        messages = [c.args[0] for c in mock_logger.info.call_args_list]
        assert any(m.startswith("Grid search: 2 assignments x 3 folds") for m in messages)
        assert sum("-> score" in m for m in messages) == 2
        assert any("Best assignment [1]" in m for m in messages)
        assert any("Fold summary of best assignment" in m for m in messages)

    def test_quiet_search_logs_assignments_at_debug(self, constant_data, mock_logger):
        X, y = constant_data
        GridSearchCV(ConstantEstimator(), {"level": [0.1]}, level_scorer, cv=3, logger=mock_logger).fit(X, y)

        info = [c.args[0] for c in mock_logger.info.call_args_list]
        debug = [c.args[0] for c in mock_logger.debug.call_args_list]
        assert not any("-> score" in m for m in info)
        assert any("-> score" in m for m in debug)
