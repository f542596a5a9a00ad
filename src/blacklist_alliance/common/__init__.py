"""Common infrastructure shared by the client: errors, logging, resilience."""

from blacklist_alliance.common.cancellation import CancellationToken
from blacklist_alliance.common.exceptions import BlacklistAllianceError, ErrorKind

__all__ = [
    "BlacklistAllianceError",
    "CancellationToken",
    "ErrorKind",
]
