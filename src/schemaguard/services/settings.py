"""
Settings operations. Admins manage settings whether or not they are on the
viewer whitelist and whether or not the manager is enabled.
"""

from typing import Any, Dict

from ..access.gate import AccessGate, Caller
from ..access.settings import Settings
from .base import service_operation


class SettingsService:
    """Settings operations for one caller."""

    def __init__(self, caller: Caller, gate: AccessGate):
        self.caller = caller
        self.gate = gate

    @service_operation
    def get(self) -> Settings:
        self.gate.authorize_manage(self.caller)
        return self.gate.settings()

    @service_operation
    def update(self, changes: Dict[str, Any]) -> Settings:
        self.gate.authorize_manage(self.caller)
        return self.gate.update_settings(changes or {})

    @service_operation
    def activate(self) -> Settings:
        self.gate.authorize_manage(self.caller)
        return self.gate.activate()

    @service_operation
    def deactivate(self) -> Settings:
        self.gate.authorize_manage(self.caller)
        return self.gate.deactivate()

    @service_operation
    def add_viewer_email(self, email: str) -> Settings:
        self.gate.authorize_manage(self.caller)
        return self.gate.add_viewer_email(email)

    @service_operation
    def remove_viewer_email(self, email: str) -> Settings:
        self.gate.authorize_manage(self.caller)
        return self.gate.remove_viewer_email(email)

    @service_operation
    def reset(self) -> None:
        self.gate.authorize_manage(self.caller)
        self.gate.reset()
