"""
Core data models, reactive primitives, health aggregation and degradation control.

Only dependency-free modules are re-exported here; the health bar and the
degradation controller are imported from their modules (or from callqos).
"""

from .models import *
from .signals import *
from .timers import *
from .history import *
