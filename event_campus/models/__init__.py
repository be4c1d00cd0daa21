from .auth import UserOrm, UserSessionOrm
from .event import EventOrm
from .registration import RegistrationOrm
from .attendance import AttendanceOrm
from .whitelist import WhitelistRequestOrm

__all__ = [
    "UserOrm",
    "UserSessionOrm",
    "EventOrm",
    "RegistrationOrm",
    "AttendanceOrm",
    "WhitelistRequestOrm",
]
