"""Tests for unit conversion."""

import pytest

from rebanho.core.units import arrobas_to_kg, format_gmd, format_weight, kg_to_arrobas


class TestConversions:
    """Tests for kg/arroba conversion."""

    def test_arrobas_to_kg(self):
        """Verify one arroba is 15 kg."""
        assert arrobas_to_kg(18) == pytest.approx(270.0)

    def test_kg_to_arrobas(self):
        """Verify the inverse conversion."""
        assert kg_to_arrobas(450.0) == pytest.approx(30.0)


class TestFormatting:
    """Tests for display formatting."""

    def test_format_weight(self):
        """Verify weight is shown in kg and arrobas."""
        assert format_weight(380.0) == "380.0 kg (25.3 @)"

    def test_format_weight_missing(self):
        """Verify absent weights show N/A."""
        assert format_weight(None) == "N/A"

    def test_format_gmd(self):
        """Verify daily gain formatting."""
        assert format_gmd(0.85) == "0.850 kg/dia"
        assert format_gmd(None) == "N/A"
