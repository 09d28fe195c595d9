import numpy as np
import pandas as pd
from typing import Dict


def fold_table(cv_result) -> pd.DataFrame:
    """
    One row per fold: score, timings, train/test sizes and failure stage.
    Failed folds keep their row with NaN score and the stage that failed.
    """
    rows = []
    for i, fold in enumerate(cv_result.folds):
        if fold is None:
            error = cv_result.errors.get(i)
            rows.append({
                "fold": i,
                "test_score": np.nan,
                "fit_time": np.nan,
                "score_time": np.nan,
                "train_size": np.nan,
                "test_size": np.nan,
                "failed_stage": getattr(error, "stage", None),
            })
            continue
        rows.append({
            "fold": i,
            "test_score": fold.test_score,
            "fit_time": fold.fit_time,
            "score_time": fold.score_time,
            "train_size": fold.train_size,
            "test_size": fold.test_size,
            "failed_stage": None,
        })
    return pd.DataFrame(rows)


def summarize_folds(fold_scores: Dict[str, np.ndarray]) -> pd.DataFrame:
    """
    Summarize fold-to-fold consistency of scores.
    Expects fold_scores like {"test_score": np.array([...]), "fit_time": np.array([...])}.
    NaN entries (failed folds) are excluded from the statistics but counted.
    """
    rows = []
    for metric, scores in fold_scores.items():
        scores = np.asarray(scores, dtype=float)
        if scores.size == 0:
            continue
        finite = scores[~np.isnan(scores)]
        if finite.size == 0:
            rows.append({"metric": metric, "folds": len(scores), "failed": len(scores),
                         "mean": np.nan, "std": np.nan, "min": np.nan, "max": np.nan, "range": np.nan})
            continue
        rows.append({
            "metric": metric,
            "folds": len(scores),
            "failed": int(scores.size - finite.size),
            "mean": float(np.mean(finite)),
            "std": float(np.std(finite)),
            "min": float(np.min(finite)),
            "max": float(np.max(finite)),
            "range": float(np.max(finite) - np.min(finite)),
        })
    return pd.DataFrame(rows)
