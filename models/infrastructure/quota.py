"""
FileKeep Server - Quota Model

Dataclass for per-request quota figures.
"""

from dataclasses import dataclass


@dataclass
class Quota:
    """
    Storage figures for one user, derived on every request

    free may be negative when a user is over their ceiling; it is only
    floored when serialized.
    """
    total: int
    used: int
    free: int
    max_upload: int

    def ToResponse(self) -> dict:
        return {
            "total": int(self.total),
            "used": int(self.used),
            "free": max(0, int(self.free)),
            "maxUpload": max(0, int(self.max_upload)),
        }
