# so-check - Search-order privilege escalation checker
# License: MIT

"""Filesystem risk checks, always from the point of view of the current effective user."""

import os
import stat

from socheck.config import ORIGIN_TOKENS
from socheck.models import PathAssessment

CURRENT_DIR_MARKERS = ('', '.')


def expand_origin(raw_path, relative_base):
    """Substitute every ``$ORIGIN`` / ``${ORIGIN}`` with the owning binary's directory.

    Pure string substitution, no normalisation: ``$ORIGIN/../lib`` against
    ``/usr/bin`` gives ``/usr/bin/../lib``.
    """
    if relative_base is None:
        return raw_path
    expanded = raw_path
    for token in ORIGIN_TOKENS:
        expanded = expanded.replace(token, relative_base)
    return expanded


def has_origin_token(raw_path):
    return any(token in raw_path for token in ORIGIN_TOKENS)


class RiskChecker:
    def __init__(self, environment):
        self.environment = environment

    def _access(self, path, mode):
        if os.access in os.supports_effective_ids:
            return os.access(path, mode, effective_ids=True)
        return os.access(path, mode)

    def canonicalize(self, path):
        """Absolute, symlink-free form of ``path``; relative paths hang off the snapshot's cwd"""
        if not os.path.isabs(path):
            path = os.path.join(self.environment.cwd, path)
        return os.path.realpath(path)

    def is_writable(self, path):
        try:
            return self._access(path, os.W_OK)
        except OSError:
            return False

    def assess(self, raw_path, relative_base=None):
        """Evaluate one candidate path.

        Empty and "." are reported as current directory markers without touching
        the filesystem. Otherwise ``$ORIGIN`` is expanded against ``relative_base``,
        the result canonicalised and tested for existence and writability.
        """
        if raw_path in CURRENT_DIR_MARKERS:
            return PathAssessment(raw_path=raw_path, is_current_dir_marker=True)

        expanded = raw_path
        if relative_base is not None and has_origin_token(raw_path):
            expanded = expand_origin(raw_path, relative_base)
        try:
            resolved = self.canonicalize(expanded)
        except (OSError, ValueError):
            return PathAssessment(raw_path=raw_path)

        try:
            st = os.stat(resolved)
        except (OSError, ValueError):
            parent = os.path.dirname(resolved)
            can_create = os.path.isdir(parent) and self.is_writable(parent)
            return PathAssessment(raw_path=raw_path, resolved_path=resolved, can_create=can_create)

        return PathAssessment(
            raw_path=raw_path,
            resolved_path=resolved,
            exists=True,
            is_directory=stat.S_ISDIR(st.st_mode),
            is_writable=self.is_writable(resolved),
        )

    def is_setuid(self, path):
        try:
            return bool(os.stat(path).st_mode & stat.S_ISUID)
        except OSError:
            return False

    def is_executable_file(self, path):
        """Regular file the current user may execute (symlinks followed)"""
        try:
            st = os.stat(path)
        except OSError:
            return False
        return stat.S_ISREG(st.st_mode) and self._access(path, os.X_OK)

    def is_regular_file(self, path):
        try:
            return stat.S_ISREG(os.stat(path).st_mode)
        except OSError:
            return False
