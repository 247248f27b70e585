"""
Session handling: store abstraction, metrics recorder and coordinator.
"""

from persuader.session.coordinator import SessionCoordinationError, coordinate_session
from persuader.session.metrics import SessionMetricsRecorder, updated_metrics
from persuader.session.store import InMemorySessionStore, SessionStore

__all__ = [
    "SessionCoordinationError",
    "coordinate_session",
    "SessionMetricsRecorder",
    "updated_metrics",
    "InMemorySessionStore",
    "SessionStore",
]
