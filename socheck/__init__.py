# so-check - Search-order privilege escalation checker
# License: MIT
# Description: Audits dynamic linker configuration and executable search paths for hijacking vectors.

__version__ = "0.1.0"
