"""
Explicit per-request identity passed into every service call.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    user_id: str
    email: Optional[str] = None
