"""Tests for configuration loading and external site curve maps."""
import json

import pytest

from pyvdyp.config_loader import ConfigLoader, get_config_loader
from pyvdyp.exceptions import ConfigurationError, DataError, InvalidDataError
from pyvdyp.site_index import Region, SiteCurveMap, SiteIndexEquation, get_default_curve


# ============================================================
# Test Bundled Configuration
# ============================================================
class TestBundledConfiguration:
    """Test the configuration shipped with the package."""

    def test_site_curves(self):
        curves = get_config_loader().load_site_curves()
        assert len(curves) == len(SiteIndexEquation)
        assert curves['FDC_BRUCE']['number'] == 16

    def test_species_config(self):
        config = get_config_loader().load_species_config()
        assert set(config) >= {'genera', 'hardwoods', 'itg_pure', 'itg_mixed', 'default_curves'}

    def test_conversions(self):
        conversions = get_config_loader().load_site_index_conversions()
        assert 'HWC' in conversions['species']
        assert conversions['relations']

    def test_cache_returns_same_object(self):
        loader = ConfigLoader()
        first = loader.load_species_config()
        assert loader.load_species_config() is first
        loader.clear_cache()
        assert loader.load_species_config() is not first

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            ConfigLoader(tmp_path / "nowhere")

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataError, match="not found"):
            ConfigLoader(tmp_path).load_species_config()

    def test_missing_section(self, tmp_path):
        (tmp_path / "site_curves.yaml").write_text("other: 1\n")
        with pytest.raises(ConfigurationError, match="'curves' section"):
            ConfigLoader(tmp_path).load_site_curves()

    def test_empty_file(self, tmp_path):
        (tmp_path / "species.yaml").write_text("")
        with pytest.raises(InvalidDataError, match="empty"):
            ConfigLoader(tmp_path).load_species_config()

    def test_malformed_yaml(self, tmp_path):
        (tmp_path / "species.yaml").write_text("genera: [AC, B\n")
        with pytest.raises(InvalidDataError, match="parsing error"):
            ConfigLoader(tmp_path).load_species_config()


# ============================================================
# Test Site Curve Maps
# ============================================================
class TestLoadSiteCurveMap:
    """Test loading site curve maps in each supported format."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "curves.yaml"
        path.write_text("site_curves:\n  B: {C: BA_NIGH, I: BL_CHENAC}\n  PL: {C: 45, I: 45}\n")
        curve_map = get_config_loader().load_site_curve_map(path)
        assert len(curve_map) == 4
        assert curve_map.get('B', 'I') is SiteIndexEquation.BL_CHENAC
        assert curve_map.get('pl', Region.COASTAL) is SiteIndexEquation.PLI_THROWER

    def test_json_without_section(self, tmp_path):
        path = tmp_path / "curves.json"
        path.write_text(json.dumps({"H": {"C": "HWC_WILEY"}}))
        curve_map = get_config_loader().load_site_curve_map(path)
        assert ('H', 'C') in curve_map
        assert ('H', 'I') not in curve_map

    def test_toml(self, tmp_path):
        path = tmp_path / "curves.toml"
        path.write_text('[site_curves.S]\nC = "SS_NIGH"\nI = "SW_GOUDNIGH"\n')
        curve_map = get_config_loader().load_site_curve_map(path)
        assert curve_map.get('S', 'I') is SiteIndexEquation.SW_GOUDNIGH

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "curves.csv"
        path.write_text("B,C,BA_NIGH\n")
        with pytest.raises(ConfigurationError, match="Unsupported"):
            get_config_loader().load_site_curve_map(path)

    def test_unknown_curve(self, tmp_path):
        path = tmp_path / "curves.yaml"
        path.write_text("site_curves:\n  B: {C: NOT_A_CURVE}\n")
        with pytest.raises(InvalidDataError, match="entry for B"):
            get_config_loader().load_site_curve_map(path)

    def test_unknown_region(self, tmp_path):
        path = tmp_path / "curves.yaml"
        path.write_text("site_curves:\n  B: {X: BA_NIGH}\n")
        with pytest.raises(InvalidDataError):
            get_config_loader().load_site_curve_map(path)

    def test_entry_not_a_mapping(self):
        with pytest.raises(InvalidDataError, match="must be a mapping"):
            SiteCurveMap.from_mapping({'B': 'BA_NIGH'})


# ============================================================
# Test Default Curves
# ============================================================
class TestDefaultCurves:
    """Test the built-in default site curves."""

    @pytest.mark.parametrize("genus,region,expected", [
        ('H', 'C', SiteIndexEquation.HWC_WILEYAC),
        ('H', 'I', SiteIndexEquation.HWI_NIGH),
        ('f', Region.INTERIOR, SiteIndexEquation.FDI_THROWER),
        ('Y', 'C', SiteIndexEquation.CWC_NIGH),
    ])
    def test_default(self, genus, region, expected):
        assert get_default_curve(genus, region) is expected

    def test_unknown_species(self):
        assert get_default_curve('ZZ', 'C') is None
        assert get_default_curve(None, 'C') is None
