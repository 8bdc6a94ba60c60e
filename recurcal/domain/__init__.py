"""Series expansion and occurrence editing."""

from .expansion import ExpansionCoordinator
from .instance_mutator import InstanceMutator
from .service import CalendarService

__all__ = ["CalendarService", "ExpansionCoordinator", "InstanceMutator"]
