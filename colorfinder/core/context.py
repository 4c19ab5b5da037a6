"""
Application context.

Built once at startup and passed by reference to every component.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from colorfinder.config import ColorFinderConfig
from colorfinder.core.events import ControlBus
from colorfinder.core.permissions import PermissionCollaborator, StaticPermissions
from colorfinder.core.status import StatusReporter
from colorfinder.pipeline.scheduler import TickScheduler


Clock = Callable[[], float]


@dataclass
class AppContext:
    """Shared services for a Color Finder session."""
    config: ColorFinderConfig = field(default_factory=ColorFinderConfig)
    clock: Clock = time.monotonic
    scheduler: TickScheduler = field(default_factory=TickScheduler)
    bus: ControlBus = field(default_factory=ControlBus)
    status: StatusReporter = field(default_factory=StatusReporter)
    permissions: Optional[PermissionCollaborator] = None

    def __post_init__(self):
        if self.permissions is None:
            self.permissions = StaticPermissions(
                grant_on_request=self.config.grant_camera_permission
            )

    def now(self) -> float:
        return self.clock()
