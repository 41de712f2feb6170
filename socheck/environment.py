# so-check - Search-order privilege escalation checker
# License: MIT

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """Process environment captured once at startup.

    Every component receives this value instead of reading ``os.environ`` or the
    working directory mid-scan, so a scan is a pure function of the snapshot and
    the filesystem.
    """
    path: Optional[str]
    ld_library_path: Optional[str]
    ld_run_path: Optional[str]
    cwd: str
    euid: int

    @classmethod
    def capture(cls, environ=None):
        """Build a snapshot from the live process (or from a given mapping)"""
        environ = os.environ if environ is None else environ
        try:
            cwd = os.getcwd()
        except OSError:
            # Working directory was removed underneath us
            cwd = '/'
        return cls(
            path=environ.get('PATH'),
            ld_library_path=environ.get('LD_LIBRARY_PATH'),
            ld_run_path=environ.get('LD_RUN_PATH'),
            cwd=cwd,
            euid=os.geteuid(),
        )

    @property
    def is_superuser(self):
        return self.euid == 0

    def as_dict(self):
        return {
            'PATH': self.path or '',
            'LD_LIBRARY_PATH': self.ld_library_path or '',
            'LD_RUN_PATH': self.ld_run_path or '',
        }
