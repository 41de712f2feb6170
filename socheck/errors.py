# so-check - Search-order privilege escalation checker
# License: MIT

"""Error taxonomy. Only setup errors ever stop a scan."""


class SOCheckError(Exception):
    """Base class for so-check errors"""


class FatalSetupError(SOCheckError):
    """Raised before scanning when the audit cannot run at all"""

