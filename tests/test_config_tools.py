"""
Tests for configuration validation and diff tools.
"""

import pytest

from gag_ml.cli.config_tools import diff_configs, validate_config_file


@pytest.fixture
def write_yaml(tmp_path):
    def _write(name, text):
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write


class TestValidateConfigFile:
    def test_defaults_valid(self, write_yaml):
        path = write_yaml("ok.yaml", "seed: 3\n")
        is_valid, errors, warnings = validate_config_file(path)

        assert is_valid
        assert errors == []
        assert warnings == []

    def test_schema_error(self, write_yaml):
        path = write_yaml("bad.yaml", "evaluation:\n  min_specificity: 1.5\n")
        is_valid, errors, _ = validate_config_file(path)

        assert not is_valid
        assert len(errors) == 1

    def test_unknown_key_is_error(self, write_yaml):
        path = write_yaml("typo.yaml", "samplr:\n  draws: 10\n")
        is_valid, errors, _ = validate_config_file(path)
        assert not is_valid

    def test_semantic_issue_is_warning(self, write_yaml):
        path = write_yaml("few.yaml", "sampler:\n  chains: 1\n")
        is_valid, errors, warnings = validate_config_file(path)

        assert is_valid
        assert errors == []
        assert any("chains" in w for w in warnings)

    def test_strict_promotes_warnings(self, write_yaml):
        path = write_yaml("few.yaml", "sampler:\n  chains: 1\n")
        is_valid, errors, warnings = validate_config_file(path, strict=True)

        assert not is_valid
        assert any("chains" in e for e in errors)
        assert warnings == []

    def test_overrides_applied(self, write_yaml):
        path = write_yaml("ok.yaml", "seed: 3\n")
        is_valid, _, warnings = validate_config_file(path, overrides=["evaluation.n_boot=50"])

        assert is_valid
        assert any("n_boot" in w for w in warnings)

    def test_missing_file(self, tmp_path):
        is_valid, errors, _ = validate_config_file(tmp_path / "nope.yaml")
        assert not is_valid
        assert errors


class TestDiffConfigs:
    def test_identical(self, write_yaml):
        a = write_yaml("a.yaml", "seed: 1\n")
        b = write_yaml("b.yaml", "seed: 1\n")
        assert not any(diff_configs(a, b).values())

    def test_different_values_use_dotted_keys(self, write_yaml):
        a = write_yaml("a.yaml", "seed: 1\nsampler:\n  draws: 500\n")
        b = write_yaml("b.yaml", "seed: 2\nsampler:\n  draws: 800\n")

        different = diff_configs(a, b)["different"]

        assert different["seed"] == {"first": 1, "second": 2}
        assert different["sampler.draws"] == {"first": 500, "second": 800}
        assert "sampler.chains" not in different

    def test_defaults_fill_missing_sections(self, write_yaml):
        a = write_yaml("a.yaml", "seed: 1\n")
        b = write_yaml("b.yaml", "seed: 1\nselection:\n  max_terms: 5\n")

        result = diff_configs(a, b)

        assert result["different"] == {"selection.max_terms": {"first": None, "second": 5}}
        assert result["only_in_first"] == {}
