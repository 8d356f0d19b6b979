"""
Tests for serialization utilities.

Tests cover:
- Artifact bundle saving/loading
- Version metadata and mismatch warnings
- JSON helpers
"""

import warnings

import numpy as np
import pytest

from gag_ml.utils.serialization import (
    library_versions,
    load_joblib,
    load_json,
    save_joblib,
    save_json,
)


class TestJoblibSerialization:
    """Test joblib save/load functionality."""

    def test_save_load_basic_object(self, tmp_path):
        obj = {"key": "value", "draws": np.arange(4.0)}
        path = tmp_path / "nested" / "test.joblib"

        save_joblib(obj, path)
        loaded = load_joblib(path, check_versions=False)

        assert loaded["key"] == "value"
        np.testing.assert_array_equal(loaded["draws"], obj["draws"])

    def test_bundle_with_current_versions_is_silent(self, tmp_path):
        path = tmp_path / "bundle.joblib"
        save_joblib({"artifact": 1, "versions": library_versions()}, path)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert load_joblib(path)["artifact"] == 1

    def test_version_mismatch_warns(self, tmp_path):
        path = tmp_path / "bundle.joblib"
        save_joblib({"artifact": 1, "versions": {"numpy": "0.0.1"}}, path)

        with pytest.warns(UserWarning, match="numpy"):
            load_joblib(path)

    def test_version_check_disabled(self, tmp_path):
        path = tmp_path / "bundle.joblib"
        save_joblib({"artifact": 1, "versions": {"numpy": "0.0.1"}}, path)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            load_joblib(path, check_versions=False)


def test_library_versions_keys():
    versions = library_versions()
    assert {"numpy", "pandas", "scipy", "sklearn", "pymc", "arviz"} <= set(versions)


def test_save_load_json(tmp_path):
    path = tmp_path / "out" / "settings.json"
    save_json({"a": 1, "path": tmp_path, "values": [None, 2.5]}, path)

    loaded = load_json(path)

    assert loaded["a"] == 1
    assert loaded["path"] == str(tmp_path)  # Non-JSON types stringified
    assert loaded["values"] == [None, 2.5]
