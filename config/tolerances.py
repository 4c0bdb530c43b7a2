"""
SteelCad - Zentralisierte Toleranz-Konfiguration
================================================

Alle Toleranzen an einem Ort.

Toleranz-Philosophie:
- Snapping: 30 Welteinheiten (mm) zum Strahl, 0.05 NDC zum Cursor
- Schnittpunkte: Parallel-Guard auf |v1 x v2|^2, Koplanaritaet 0.1
- Richtungen: kuerzer als 1e-3 werden nicht normalisiert

Verwendung:
    from config.tolerances import Tolerances

    # Direkt als Klassenvariablen
    tol = Tolerances.SNAP_WORLD

    # Oder via Convenience-Funktionen
    from config.tolerances import snap_world_tolerance
    tol = snap_world_tolerance()
"""


class Tolerances:
    """
    Zentrale Toleranz-Konstanten fuer SteelCad.

    Kategorien:
    - SNAP_*: Snap-Resolver (Welt- und Bildschirmabstand)
    - INTERSECTION_*: Linie-Linie Schnittpunkte
    - AXIS_*: Achsen-Snapping
    - DIRECTION_*: Richtungsvektoren in Rezepten
    - CONNECTION_*: Connection-Graph
    """

    # =========================================================================
    # Snapping
    # =========================================================================

    # Maximaler Abstand eines Kandidaten zum Maus-Strahl (Welteinheiten)
    SNAP_WORLD = 30.0

    # Maximaler Abstand zum Cursor in normalisierten Bildschirmkoordinaten
    SNAP_SCREEN = 0.05

    # Kandidaten mit hoeherer Prioritaet werden nie akzeptiert
    SNAP_MAX_PRIORITY = 3

    # =========================================================================
    # Linie-Linie Schnittpunkte
    # =========================================================================

    # |v1 x v2|^2 darunter gelten Linien als parallel
    INTERSECTION_PARALLEL = 1e-6

    # |w0 . (v1 x v2)| darueber gelten Linien als windschief
    INTERSECTION_COPLANAR = 0.1

    # Segmente kuerzer als das werden vor der Rechnung verworfen
    INTERSECTION_MIN_LENGTH = 1e-9

    # =========================================================================
    # Achsen-Snapping
    # =========================================================================

    # Halbe Laenge der Hilfsachsen um den Ursprung
    AXIS_EXTENT = 10000.0

    # =========================================================================
    # Rezepte / Geometrie
    # =========================================================================

    # Quadrierte Laenge, unter der eine Richtung nicht normalisiert wird
    DIRECTION_MIN_LENGTH_SQ = 1e-3

    # Mindestabstand der zwei Klicks beim Erstellen eines Komponenten
    CREATE_MIN_DISTANCE = 1.0

    # =========================================================================
    # Connection-Graph
    # =========================================================================

    # Prioritaetsdifferenz ab der eine Verbindung einseitig wird
    CONNECTION_PRIORITY_THRESHOLD = 100

    # =========================================================================
    # Mathematische Epsilon-Werte
    # =========================================================================

    # Vermeidet Division durch Null
    EPSILON_MATH = 1e-9

    # Punkt-Vergleich (sind zwei Punkte "gleich"?)
    COMPARE_POINT = 1e-6


# =============================================================================
# Convenience-Funktionen
# =============================================================================

def snap_world_tolerance() -> float:
    """Gibt die Welt-Toleranz fuer Snapping zurueck."""
    return Tolerances.SNAP_WORLD


def snap_screen_tolerance() -> float:
    """Gibt die Bildschirm-Toleranz fuer Snapping zurueck."""
    return Tolerances.SNAP_SCREEN


# =============================================================================
# Toleranz-Validierung (fuer Debugging)
# =============================================================================

def validate_tolerances():
    """
    Validiert dass alle Toleranzen sinnvolle Werte haben.
    Nuetzlich fuer Tests und Debugging.
    """
    issues = []

    if Tolerances.SNAP_WORLD <= 0:
        issues.append(f"SNAP_WORLD muss positiv sein: {Tolerances.SNAP_WORLD}")

    if not (0.0 < Tolerances.SNAP_SCREEN < 2.0):
        issues.append(f"SNAP_SCREEN ausserhalb des NDC-Bereichs: {Tolerances.SNAP_SCREEN}")

    if Tolerances.INTERSECTION_PARALLEL <= Tolerances.EPSILON_MATH:
        issues.append(
            f"INTERSECTION_PARALLEL ({Tolerances.INTERSECTION_PARALLEL}) "
            f"strenger als EPSILON_MATH ({Tolerances.EPSILON_MATH})"
        )

    return issues


# Automatische Validierung beim Import (nur Warnung, kein Fehler)
_validation_issues = validate_tolerances()
if _validation_issues:
    from loguru import logger
    for issue in _validation_issues:
        logger.warning(f"Toleranz-Validierung: {issue}")
