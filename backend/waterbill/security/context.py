"""
Acting identity for audited operations
Built by the HTTP layer, passed opaquely into every mutating service call
"""
from dataclasses import dataclass
from typing import Optional

SYSTEM_ACTOR = "System"


@dataclass(frozen=True)
class ActorContext:
    """
    Who performed an operation and from where

    Attributes:
        performed_by: username, "System" for unattended work
        ip_address: client address, if known
    """

    performed_by: str = SYSTEM_ACTOR
    ip_address: Optional[str] = None
