"""
SteelCad - Snapping
Snap resolution, picking rays and pointer-driven edit sessions.
"""

from snapping.camera import PerspectiveCamera, Ray
from snapping.snap_resolver import DEFAULT_SNAP_MODES, SnapMode, SnapResolver, SnapResult
from snapping.drag_session import CreationSession, DragSession
