"""
Tests for YAML configuration loading.
"""
import pytest

from alignseg.config.config_loader import ConfigLoader, DEFAULT_CONFIG_PATH, get_config, reload_config
from alignseg.core.alignment import OverhangStrategy, ScoringParameters, ORIGINAL_DEFAULT, NEW_SW_PARAMETERS
from alignseg.core.exceptions import ConfigurationError, InvalidParameterError


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


def test_packaged_defaults():
    assert DEFAULT_CONFIG_PATH.exists()
    config = ConfigLoader()
    assert config.get_scoring_parameters() == ORIGINAL_DEFAULT
    assert config.get_overhang_strategy() is OverhangStrategy.SOFTCLIP
    seg = config.get_segmentation_params()
    assert seg['max_num_changepoints'] == 25
    assert seg['seed'] == 1216
    assert seg['window_sizes'] == [8, 16, 32, 64, 128, 256]
    assert config.get_performance_params()['num_workers'] == 1
    assert config.validate() == (True, [])


def test_missing_file_falls_back_to_defaults(tmp_path):
    config = ConfigLoader(str(tmp_path / "missing.yaml"))
    assert config.get_alignment_params()['overhang_strategy'] == 'softclip'
    assert config.get_debug_params()['log_level'] == 'INFO'


def test_invalid_yaml_falls_back_to_defaults(tmp_path):
    config = ConfigLoader(write_config(tmp_path, "alignment: [unclosed\n"))
    assert config.get_scoring_parameters() == ORIGINAL_DEFAULT


def test_non_mapping_yaml_rejected(tmp_path):
    with pytest.raises(ConfigurationError):
        ConfigLoader(write_config(tmp_path, "- just\n- a list\n"))


def test_empty_file_uses_defaults(tmp_path):
    config = ConfigLoader(write_config(tmp_path, ""))
    assert config.get_segmentation_params()['kernel_approximation_dimension'] == 100


def test_partial_section_overrides_keep_other_defaults(tmp_path):
    config = ConfigLoader(write_config(tmp_path, (
        "segmentation:\n"
        "  max_num_changepoints: 5\n"
        "performance:\n"
        "  num_workers: auto\n"
    )))
    seg = config.get_segmentation_params()
    assert seg['max_num_changepoints'] == 5
    assert seg['kernel_variance'] == 0.0
    assert config.get_performance_params()['num_workers'] == 'auto'
    assert config.config['_source'].endswith("config.yaml")


def test_scoring_from_preset_name(tmp_path):
    config = ConfigLoader(write_config(tmp_path, "alignment:\n  scoring: New_SW_Parameters\n"))
    assert config.get_scoring_parameters() == NEW_SW_PARAMETERS


def test_scoring_from_mapping(tmp_path):
    config = ConfigLoader(write_config(tmp_path, (
        "alignment:\n"
        "  scoring:\n"
        "    match: 50\n"
        "    mismatch: -100\n"
        "    gap_open: -220\n"
        "    gap_extend: -12\n"
    )))
    assert config.get_scoring_parameters() == ScoringParameters(50, -100, -220, -12)


def test_scoring_mapping_missing_weight(tmp_path):
    config = ConfigLoader(write_config(tmp_path, "alignment:\n  scoring:\n    match: 50\n"))
    with pytest.raises(ConfigurationError):
        config.get_scoring_parameters()
    is_valid, errors = config.validate()
    assert not is_valid
    assert any("gap_open" in e for e in errors)


def test_unknown_preset_rejected(tmp_path):
    config = ConfigLoader(write_config(tmp_path, "alignment:\n  scoring: blosum62\n"))
    with pytest.raises(InvalidParameterError):
        config.get_scoring_parameters()


def test_invalid_strategy_reported(tmp_path):
    config = ConfigLoader(write_config(tmp_path, "alignment:\n  overhang_strategy: trim\n"))
    with pytest.raises(InvalidParameterError):
        config.get_overhang_strategy()
    is_valid, errors = config.validate()
    assert not is_valid
    assert len(errors) == 1


def test_invalid_segmentation_reported(tmp_path):
    config = ConfigLoader(write_config(tmp_path, "segmentation:\n  window_sizes: [8, 8]\n"))
    is_valid, errors = config.validate()
    assert not is_valid
    assert errors == ["Window sizes must all be unique."]


def test_global_config_reload(tmp_path):
    assert get_config() is get_config()
    path = write_config(tmp_path, "alignment:\n  overhang_strategy: ignore\n")
    try:
        assert reload_config(path).get_overhang_strategy() is OverhangStrategy.IGNORE
        assert get_config().get_overhang_strategy() is OverhangStrategy.IGNORE
    finally:
        reload_config(str(DEFAULT_CONFIG_PATH))
