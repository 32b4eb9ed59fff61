"""
Configuration loader for alignseg.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..core.alignment import OverhangStrategy, ScoringParameters
from ..core.exceptions import ConfigurationError
from ..diagnostics.validation import validate_configuration

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"


class ConfigLoader:
    """Loads and manages configuration from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self.config = {}
        self.load_config()

    def load_config(self):
        """Load configuration from YAML file, falling back to built-in defaults."""
        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f)
        except FileNotFoundError:
            logger.warning("Config file %s not found. Using defaults.", self.config_path)
            self.config = self._get_default_config()
            return
        except yaml.YAMLError as e:
            logger.error("Error loading config file %s: %s", self.config_path, e)
            self.config = self._get_default_config()
            return

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Invalid YAML format in {self.config_path}: expected a mapping")

        # sections missing from the file keep their default values
        config = self._get_default_config()
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        config['_source'] = str(self.config_path.resolve())
        self.config = config

    def _get_default_config(self) -> Dict[str, Any]:
        """Return default configuration if YAML file is not found."""
        return copy.deepcopy({
            'alignment': {
                'scoring': 'original_default',
                'overhang_strategy': 'softclip',
                'exact_match_shortcut': True,
                'max_matrix_cells': 25_000_000,
            },
            'segmentation': {
                'max_num_changepoints': 25,
                'kernel_variance': 0.0,
                'kernel_approximation_dimension': 100,
                'window_sizes': [8, 16, 32, 64, 128, 256],
                'num_changepoints_penalty_linear_factor': 1.0,
                'num_changepoints_penalty_log_linear_factor': 1.0,
                'seed': 1216,
            },
            'performance': {
                'num_workers': 1,
            },
            'debug': {
                'log_level': 'INFO',
                'log_file': None,
            },
        })

    def get_alignment_params(self) -> Dict[str, Any]:
        """Get alignment parameters."""
        return self.config.get('alignment', {})

    def get_segmentation_params(self) -> Dict[str, Any]:
        """Get segmentation parameters."""
        return self.config.get('segmentation', {})

    def get_performance_params(self) -> Dict[str, Any]:
        """Get performance parameters."""
        return self.config.get('performance', {})

    def get_debug_params(self) -> Dict[str, Any]:
        return self.config.get('debug', {})

    def validate(self):
        """Return (is_valid, error_messages) for the loaded configuration."""
        return validate_configuration(self.config)

    def get_scoring_parameters(self) -> ScoringParameters:
        """Scoring weights from a preset name or an explicit mapping."""
        scoring = self.get_alignment_params().get('scoring', 'original_default')
        if isinstance(scoring, str):
            return ScoringParameters.from_name(scoring)
        if isinstance(scoring, dict):
            try:
                return ScoringParameters(
                    match=scoring['match'],
                    mismatch=scoring['mismatch'],
                    gap_open=scoring['gap_open'],
                    gap_extend=scoring['gap_extend'],
                )
            except KeyError as e:
                raise ConfigurationError(f"Scoring weight missing from configuration: {e}")
        raise ConfigurationError("alignment.scoring must be a preset name or a mapping of weights")

    def get_overhang_strategy(self) -> OverhangStrategy:
        return OverhangStrategy.parse(
            self.get_alignment_params().get('overhang_strategy', 'softclip'))


# Global config instance
config_loader = None


def get_config() -> ConfigLoader:
    """Get the global config loader instance."""
    global config_loader
    if config_loader is None:
        config_loader = ConfigLoader()
    return config_loader


def reload_config(config_path: Optional[str] = None) -> ConfigLoader:
    """Reload configuration from file."""
    global config_loader
    if config_path or config_loader is None:
        config_loader = ConfigLoader(config_path)
    else:
        config_loader.load_config()
    return config_loader


__all__ = [
    'DEFAULT_CONFIG_PATH',
    'ConfigLoader',
    'get_config',
    'reload_config',
]
