"""Duplicate gate, approval policies and per-identity locks."""

from recspine.gate.approval import AlwaysOverride, AutoApprove, InteractiveApproval
from recspine.gate.duplicate import DuplicateGate
from recspine.gate.locks import IdentityLockRegistry, lock_keys

__all__ = [
    "AlwaysOverride",
    "AutoApprove",
    "InteractiveApproval",
    "DuplicateGate",
    "IdentityLockRegistry",
    "lock_keys",
]
