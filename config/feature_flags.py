"""
SteelCad - Feature Flags
========================

Feature Flags ermöglichen inkrementelle Rollouts und einfaches Rollback.
Neue Features werden mit Flag=False eingeführt und nach Validierung aktiviert.

Diese Datei enthält aktive Debug-Flags und experimentelle Features.
"""

from typing import Dict

# Feature Flag Registry
# =====================

FEATURE_FLAGS: Dict[str, bool] = {
    # Debug-Modi
    "snap_debug": False,  # Kandidaten-Listing im Snap-Resolver ([SNAP])
    "connection_debug": False,  # Patch-Details bei der Propagation ([CONNECTION])
    "recipe_debug": False,  # Kind-Rezepte bei jeder Regeneration ([RECIPE])

    # Verhalten
    "connection_auto_apply": True,  # Constraint direkt nach dem Erstellen anwenden
}


def is_enabled(flag: str) -> bool:
    """
    Prüft ob ein Feature-Flag aktiviert ist.

    Args:
        flag: Name des Feature-Flags

    Returns:
        True wenn aktiviert, False wenn nicht aktiviert oder unbekannt
    """
    return FEATURE_FLAGS.get(flag, False)


def set_flag(flag: str, value: bool) -> None:
    """
    Setzt ein Feature-Flag zur Laufzeit.
    Nützlich für Tests und Debugging.

    Args:
        flag: Name des Feature-Flags
        value: Neuer Wert
    """
    FEATURE_FLAGS[flag] = value


def get_all_flags() -> Dict[str, bool]:
    """Gibt alle Feature-Flags zurück."""
    return FEATURE_FLAGS.copy()
