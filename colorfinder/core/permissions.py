"""
Platform permission collaborator.

The Mode Controller never talks to platform dialogs directly. It asks a
PermissionCollaborator, which answers synchronously for already-granted
permissions and with a PermissionRequest that resolves later otherwise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Set


class PermissionRequest:
    """
    An outstanding permission request.

    Resolved exactly once, with granted or denied. Pollable from the tick
    loop; resolution may come from any thread.
    """

    def __init__(self, permission_id: str):
        self.permission_id = permission_id
        self._granted: Optional[bool] = None

    def resolve(self, granted: bool):
        if self._granted is None:
            self._granted = bool(granted)

    @property
    def resolved(self) -> bool:
        return self._granted is not None

    @property
    def granted(self) -> bool:
        return bool(self._granted)


class PermissionCollaborator(ABC):
    """Interface to the platform permission system."""

    @abstractmethod
    def has_permission(self, permission_id: str) -> bool:
        pass

    @abstractmethod
    def request_permission(self, permission_id: str) -> PermissionRequest:
        pass


class StaticPermissions(PermissionCollaborator):
    """
    Desktop permission collaborator.

    There is no dialog on desktop, so grants come from configuration and
    requests resolve immediately.
    """

    def __init__(self, granted: Iterable[str] = (), grant_on_request: bool = False):
        self._granted: Set[str] = set(granted)
        self.grant_on_request = grant_on_request

    def has_permission(self, permission_id: str) -> bool:
        return permission_id in self._granted

    def request_permission(self, permission_id: str) -> PermissionRequest:
        request = PermissionRequest(permission_id)
        if self.grant_on_request:
            self._granted.add(permission_id)
        request.resolve(self.grant_on_request)
        return request
