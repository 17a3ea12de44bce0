"""Unit conversion utilities using pint.

All internal weights are stored in kilograms (kg). Slaughter targets
are quoted in arrobas, the regional cattle-weight unit. One arroba is
``settings.arroba_kg`` kilograms of live weight (15 kg by default).
The same factor is used everywhere in the package.
"""

import pint

from rebanho.core.config import settings

# Create a unit registry (lazily initialized)
_ureg: pint.UnitRegistry | None = None


def get_ureg() -> pint.UnitRegistry:
    """Get the pint unit registry with the arroba unit defined."""
    global _ureg
    if _ureg is None:
        _ureg = pint.UnitRegistry()
        _ureg.define(f"arroba = {settings.arroba_kg} * kilogram")
    return _ureg


# =============================================================================
# Weight Conversions
# =============================================================================


def kg_to_arrobas(weight_kg: float) -> float:
    """Convert kilograms to arrobas."""
    ureg = get_ureg()
    return (weight_kg * ureg.kilogram).to(ureg.arroba).magnitude


def arrobas_to_kg(arrobas: float) -> float:
    """Convert arrobas to kilograms."""
    ureg = get_ureg()
    return (arrobas * ureg.arroba).to(ureg.kilogram).magnitude


# =============================================================================
# Formatting
# =============================================================================


def format_weight(weight_kg: float | None, decimals: int = 1) -> str:
    """Format a weight for display.

    Returns:
        Formatted string like "380.0 kg (25.3 @)" or "N/A"
    """
    if weight_kg is None:
        return "N/A"
    return f"{weight_kg:.{decimals}f} kg ({kg_to_arrobas(weight_kg):.1f} @)"


def format_gmd(gmd: float | None) -> str:
    """Format an average daily gain (kg/day) for display."""
    if gmd is None:
        return "N/A"
    return f"{gmd:.3f} kg/dia"
