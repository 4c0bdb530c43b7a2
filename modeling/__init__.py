
"""
SteelCad - Structural Modeling Core
Element store, connection graph and parametric composites
"""

from modeling.events import EventBus
from modeling.elements import Element, ElementKind
from modeling.element_store import ElementStore
from modeling.connection_types import ConnectionType, Directionality, Role, Connection
from modeling.connection_graph import ConnectionGraph
from modeling.result_types import OperationResult, ResultStatus
