import pytest

from config.feature_flags import set_flag
from modeling.connection_graph import ConnectionGraph
from modeling.element_modifier import ElementModifier
from modeling.element_store import ElementStore
from modeling.events import EventBus
from modeling.recipes import ParametricEngine


# Global Feature Flag Defaults - Single Source of Truth for Test Isolation
# ========================================================================
# WICHTIG: Jeder Test muss mit sauberen Feature-Flags starten.
# Diese Defaults müssen mit config/feature_flags.py synchron gehalten werden.
FEATURE_FLAG_DEFAULTS = {
    # Debug-Modi
    "snap_debug": False,
    "connection_debug": False,
    "recipe_debug": False,

    # Verhalten
    "connection_auto_apply": True,
}


@pytest.fixture(autouse=True)
def _global_feature_flag_isolation():
    """
    Globale Feature-Flag-Isolation.

    Stellt sicher, dass jeder Test mit sauberen, deterministischen
    Feature-Flags startet.
    """
    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)

    yield

    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)


# ---------------------------------------------------------------------------
# Shared model fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(bus):
    return ElementStore(bus)


@pytest.fixture
def graph(store, bus):
    g = ConnectionGraph(store, bus)
    yield g
    g.detach()


@pytest.fixture
def engine():
    return ParametricEngine()


@pytest.fixture
def modifier(store, bus, engine, graph):
    # graph fixture listed so propagation is wired for modifier tests
    return ElementModifier(store, bus, engine)


@pytest.fixture
def recorder(bus):
    """Collects every published notification as (name, data)."""
    events = []

    def attach(*names):
        for name in names:
            bus.subscribe(name, lambda data, _n=name: events.append((_n, data)))
        return events

    return attach
