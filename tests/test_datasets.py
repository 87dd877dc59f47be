"""Tests for the survival, logistic and remote-table datasets."""

import numpy as np
import pandas as pd
import pytest

from glmmcompare.config import LMMConfig, LogisticConfig
from glmmcompare.data import (
    BinomialData,
    factorize_groups,
    load_dragons,
    load_remote_table,
    simulate_covariate_survival,
)
from glmmcompare.data import datasets
from glmmcompare.data.datasets import grouped_from_frame


class TestSurvival:

    def test_counts(self, survival_data):
        assert len(survival_data) == 1
        assert survival_data.survived[0] == 19
        assert survival_data.released[0] == 57
        assert not survival_data.has_covariate

    def test_batch(self, survival_data):
        batch = survival_data.to_batch()
        assert batch.response.tolist() == [19.0]
        assert batch.trials.tolist() == [57.0]
        assert batch.covariate is None

    def test_bernoulli_frame_has_one_row_per_animal(self, survival_data):
        frame = survival_data.to_bernoulli_frame()
        assert list(frame.columns) == ["survived"]
        assert len(frame) == 57
        assert frame["survived"].sum() == 19
        assert set(frame["survived"]) == {0, 1}

    def test_bernoulli_frame_repeats_covariate(self):
        data = BinomialData(
            survived=np.array([1, 2]),
            released=np.array([2, 3]),
            covariate_raw=np.array([10.0, 20.0]),
            covariate_std=np.array([-0.7, 0.7]),
        )
        frame = data.to_bernoulli_frame()
        assert frame["survived"].tolist() == [1, 0, 1, 1, 0]
        assert frame["covariate"].tolist() == [10.0, 10.0, 20.0, 20.0, 20.0]
        assert frame["covariate_std"].tolist() == [-0.7, -0.7, 0.7, 0.7, 0.7]

    def test_invalid_counts_raise(self):
        with pytest.raises(ValueError):
            BinomialData(survived=np.array([5]), released=np.array([3]))
        with pytest.raises(ValueError):
            BinomialData(survived=np.array([0]), released=np.array([0]))
        with pytest.raises(ValueError):
            BinomialData(survived=np.array([1, 2]), released=np.array([3]))


class TestCovariateSurvival:

    def test_shapes_and_truth(self):
        config = LogisticConfig(n_years=15, released=40)
        data = simulate_covariate_survival(config)
        assert len(data) == 15
        assert (data.released == 40).all()
        assert ((data.survived >= 0) & (data.survived <= 40)).all()
        assert data.truth == {"intercept": config.intercept, "slope": config.slope}
        assert data.covariate_std.mean() == pytest.approx(0.0, abs=1e-12)

    def test_deterministic(self):
        a = simulate_covariate_survival(LogisticConfig(seed=3))
        b = simulate_covariate_survival(LogisticConfig(seed=3))
        np.testing.assert_array_equal(a.survived, b.survived)

    def test_frame(self):
        frame = simulate_covariate_survival(LogisticConfig()).to_frame()
        assert list(frame.columns) == ["survived", "released", "covariate", "covariate_std"]

    def test_too_few_years_raise(self):
        with pytest.raises(ValueError):
            simulate_covariate_survival(LogisticConfig(n_years=1))


@pytest.fixture
def dragons_csv(tmp_path):
    source = tmp_path / "source"
    source.mkdir()
    frame = pd.DataFrame(
        {
            "testScore": [10.0, 12.0, 30.0, 33.0, 20.0, 21.0],
            "bodyLength": [150.0, 160.0, 200.0, 210.0, 170.0, 180.0],
            "mountainRange": ["Bavarian", "Bavarian", "Julian", "Julian", "Ligurian", "Ligurian"],
            "site": ["a", "b", "a", "b", "a", "b"],
        }
    )
    path = source / "dragons.csv"
    frame.to_csv(path, index=False)
    return path


class TestRemoteTable:

    def test_downloads_once_and_reads_csv(self, dragons_csv, tmp_path):
        cache = tmp_path / "cache"
        frame = load_remote_table(dragons_csv.as_uri(), cache)
        assert (cache / "dragons.csv").exists()
        assert len(frame) == 6

        dragons_csv.unlink()
        again = load_remote_table(dragons_csv.as_uri(), cache)
        pd.testing.assert_frame_equal(frame, again)

    def test_failed_download_is_not_cached(self, dragons_csv, tmp_path, monkeypatch):
        class BrokenResponse:
            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def read(self):
                raise ConnectionResetError("connection reset")

        monkeypatch.setattr(datasets, "urlopen", lambda url: BrokenResponse())
        cache = tmp_path / "cache"
        with pytest.raises(ConnectionResetError):
            load_remote_table(dragons_csv.as_uri(), cache)
        assert list(cache.iterdir()) == []

        monkeypatch.undo()
        frame = load_remote_table(dragons_csv.as_uri(), cache)
        assert len(frame) == 6
        assert [p.name for p in cache.iterdir()] == ["dragons.csv"]

    def test_unsupported_suffix(self, tmp_path):
        with pytest.raises(ValueError):
            load_remote_table("https://example.org/data.xlsx", tmp_path)

    def test_load_dragons(self, dragons_csv, tmp_path):
        config = LMMConfig(url=dragons_csv.as_uri(), cache_dir=str(tmp_path / "cache"))
        data = load_dragons(config)
        assert len(data) == 6
        assert data.n_groups == 3
        assert data.group_ids.tolist() == [0, 0, 1, 1, 2, 2]
        assert data.covariate_std.std(ddof=1) == pytest.approx(1.0)

        frame = data.to_frame()
        assert list(frame.columns) == ["testScore", "bodyLength", "bodyLength_std", "mountainRange"]
        assert frame["mountainRange"].tolist()[2] == "Julian"

        batch = data.to_batch()
        assert batch.n_groups == 3
        assert batch.group_ids.tolist() == [0, 0, 1, 1, 2, 2]

    def test_missing_column(self):
        frame = pd.DataFrame({"a": [1.0, 2.0], "b": [3.0, 4.0]})
        with pytest.raises(ValueError):
            grouped_from_frame(frame, "a", "b", "group")


def test_factorize_keeps_first_seen_order():
    codes, labels = factorize_groups(["z", "a", "z", "m"])
    assert codes.tolist() == [0, 1, 0, 2]
    assert labels.tolist() == ["z", "a", "m"]
