"""
Configuration loader for PyVDYP.
Provides unified access to YAML, TOML, and JSON configuration files.

Supports:
- YAML (.yaml, .yml) - site curve definitions, species tables
- TOML (.toml) - structured configuration with types
- JSON (.json) - coefficient tables exported from other tools

Bundled files (in the package cfg/ directory):
- site_curves.yaml: every site index curve with its family, solving
  strategy, coefficients and years-to-breast-height estimate
- species.yaml: genus aliases, hardwoods, pure inventory type groups,
  genus pairs ranked together and default site curves by region
- site_index_conversions.yaml: species-to-species site index relations
"""
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .exceptions import ConfigurationError, FileNotFoundError as VDYPFileNotFoundError, InvalidDataError
from .logging_config import get_logger

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = get_logger(__name__)

SITE_CURVES_FILE = 'site_curves.yaml'
SPECIES_FILE = 'species.yaml'
SITE_INDEX_CONVERSIONS_FILE = 'site_index_conversions.yaml'


class ConfigLoader:
    """Loads and caches PyVDYP configuration from the cfg/ directory.

    Files are parsed once and then served from a cache; the returned
    dictionaries are shared and must be treated as read-only.

    Attributes:
        cfg_dir: Path to the configuration directory
    """

    def __init__(self, cfg_dir: Optional[Union[str, Path]] = None):
        """Initialize the configuration loader.

        Args:
            cfg_dir: Path to the configuration directory. Defaults to the
                cfg/ directory inside the package.
        """
        if cfg_dir is None:
            cfg_dir = Path(__file__).parent / 'cfg'
        self.cfg_dir = Path(cfg_dir)
        if not self.cfg_dir.is_dir():
            raise ConfigurationError(f"Configuration directory does not exist: {self.cfg_dir}")

        self._cache: Dict[str, Dict[str, Any]] = {}

    def _load_config_file(self, file_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML, TOML or JSON file.

        Args:
            file_path: Path to the configuration file

        Returns:
            Dictionary containing configuration data

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If file format is not supported
            InvalidDataError: If the file cannot be parsed or is empty
        """
        if not file_path.exists():
            raise VDYPFileNotFoundError(str(file_path), "configuration file")

        suffix = file_path.suffix.lower()

        try:
            if suffix in ['.yaml', '.yml']:
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f)
            elif suffix == '.toml':
                with open(file_path, 'rb') as f:
                    data = tomllib.load(f)
            elif suffix == '.json':
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported configuration file format: {suffix}. "
                                         f"Supported formats: .yaml, .yml, .toml, .json")
        except yaml.YAMLError as e:
            raise InvalidDataError("YAML configuration", f"parsing error: {e}") from e
        except json.JSONDecodeError as e:
            raise InvalidDataError("JSON configuration", f"parsing error: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise InvalidDataError("TOML configuration", f"parsing error: {e}") from e

        if not data:
            raise InvalidDataError(f"configuration file {file_path.name}", "file is empty")
        if not isinstance(data, dict):
            raise InvalidDataError(f"configuration file {file_path.name}", "top level must be a mapping")
        return data

    def load_coefficient_file(self, filename: str) -> Dict[str, Any]:
        """Load a bundled configuration file with caching.

        Args:
            filename: Name of the file inside cfg_dir (e.g. 'site_curves.yaml')

        Returns:
            Dictionary containing the parsed file

        Raises:
            FileNotFoundError: If the file doesn't exist
            InvalidDataError: If the file cannot be parsed
        """
        if filename not in self._cache:
            logger.debug("Loading configuration file %s", filename)
            self._cache[filename] = self._load_config_file(self.cfg_dir / filename)
        return self._cache[filename]

    def load_site_curves(self) -> Dict[str, Any]:
        """Curve definitions keyed by curve name."""
        return self._section(SITE_CURVES_FILE, 'curves')

    def load_species_config(self) -> Dict[str, Any]:
        """Genus tables and default site curves."""
        return self.load_coefficient_file(SPECIES_FILE)

    def load_site_index_conversions(self) -> Dict[str, Any]:
        """Species list and pair relations used for site index conversion."""
        return self.load_coefficient_file(SITE_INDEX_CONVERSIONS_FILE)

    def load_site_curve_map(self, file_path: Union[str, Path]):
        """Load an external site curve map.

        The file maps a species alias to the curve used in each region::

            site_curves:
              B: {C: BA_NIGH, I: BL_CHENAC}
              PL: {C: 45, I: 45}

        Curves may be given by name or historical number.

        Args:
            file_path: Path to a YAML, TOML or JSON file

        Returns:
            A SiteCurveMap
        """
        from .site_index.curves import SiteCurveMap

        data = self._load_config_file(Path(file_path))
        entries = data.get('site_curves', data)
        if not isinstance(entries, dict):
            raise InvalidDataError("site curve map", "'site_curves' must be a mapping")
        return SiteCurveMap.from_mapping(entries)

    def clear_cache(self) -> None:
        """Clear the file cache.

        Useful for testing or when configuration files may have changed.
        """
        self._cache.clear()

    def _section(self, filename: str, key: str) -> Dict[str, Any]:
        data = self.load_coefficient_file(filename)
        if key not in data:
            raise ConfigurationError(f"'{key}' section missing from {filename}")
        return data[key]


# Global configuration loader instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the process-wide configuration loader.

    Returns:
        Shared ConfigLoader reading the bundled cfg/ directory
    """
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_coefficient_file(filename: str) -> Dict[str, Any]:
    """Convenience function to load a bundled configuration file with caching.

    Args:
        filename: Name of the file (e.g., 'site_curves.yaml')

    Returns:
        Dictionary containing the parsed file
    """
    return get_config_loader().load_coefficient_file(filename)
