"""Configuration module for llm-grid."""

from llm_grid.config.loader import get_config_path, load_config, save_config
from llm_grid.config.schema import Config

__all__ = ["Config", "load_config", "save_config", "get_config_path"]
