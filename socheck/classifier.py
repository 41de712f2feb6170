# so-check - Search-order privilege escalation checker
# License: MIT

"""Turns risk verdicts and binary attributes into findings.

Rules are independent: every rule that matches adds its own finding and no
finding suppresses another.
"""

from socheck.models import Category, Finding, Origin, Severity

# Search lists whose writable directories count as WRITABLE_SEARCH_DIR
SEARCH_DIR_ORIGINS = (
    Origin.PATH,
    Origin.LINKER_DEFAULT,
    Origin.LD_SO_CONF,
    Origin.LD_SO_CONF_D,
    Origin.RPATH,
    Origin.RUNPATH,
)

ENV_LIBRARY_ORIGINS = (Origin.LD_LIBRARY_PATH, Origin.LD_RUN_PATH)

RUNPATH_PRECEDENCE_NOTE = "RUNPATH is also set and takes precedence over RPATH for this binary"
RPATH_PRECEDENCE_NOTE = "RPATH is ignored by the loader because this binary also sets RUNPATH"


def _issue(category, subject, message, details=()):
    return Finding(
        severity=Severity.ISSUE,
        subject_path=subject,
        category=category,
        message=message,
        details=tuple(details),
    )


def _precedence_details(entry, record):
    """RUNPATH wins over RPATH at load time; both are still reported"""
    if record is None or not (record.rpath_entries and record.runpath_entries):
        return ()
    if entry.origin == Origin.RPATH:
        return (RPATH_PRECEDENCE_NOTE,)
    if entry.origin == Origin.RUNPATH:
        return (RUNPATH_PRECEDENCE_NOTE,)
    return ()


class EscalationClassifier:
    """Stateless; safe to share between scan workers"""

    def classify_entry(self, entry, assessment, record=None):
        """Findings for one search path entry and its risk verdict.

        ``record`` is the binary an RPATH/RUNPATH entry came from, used only to
        annotate loader precedence.
        """
        findings = []
        label = entry.describe()

        if entry.origin == Origin.LD_SO_PRELOAD:
            return self._classify_preload_entry(entry, assessment)

        if assessment.is_current_dir_marker:
            if entry.raw_value == '':
                message = f"{label} contains empty path"
            else:
                message = f"{label} contains working directory '.'"
            findings.append(_issue(
                Category.CURRENT_DIR_IN_SEARCH_PATH,
                entry.source if entry.origin.is_binary_embedded else label,
                message,
                _precedence_details(entry, record),
            ))
            return findings

        if not (assessment.exists and assessment.is_directory and assessment.is_writable):
            return findings

        directory = assessment.resolved_path

        if entry.origin in ENV_LIBRARY_ORIGINS:
            findings.append(_issue(
                Category.ENV_VAR_WRITABLE_DIR,
                directory,
                f"{entry.origin.value} {directory} is writable!",
            ))

        if entry.origin in SEARCH_DIR_ORIGINS:
            if entry.origin == Origin.PATH:
                message = f"{directory} directory in $PATH is writable!"
            elif entry.origin.is_binary_embedded:
                message = f"{directory} directory in {label} is writable!"
            else:
                message = f"{directory} directory in library search path ({label}) is writable!"
            findings.append(_issue(Category.WRITABLE_SEARCH_DIR, directory, message))

        if entry.origin.is_binary_embedded:
            details = []
            if entry.raw_value != directory:
                details.append(f"declared as {entry.raw_value}")
            details.extend(_precedence_details(entry, record))
            findings.append(_issue(
                Category.RPATH_HIJACK,
                directory,
                f"{entry.source} {entry.origin.value} {directory} is writable!",
                details,
            ))

        return findings

    def _classify_preload_entry(self, entry, assessment):
        if assessment.is_writable and not assessment.is_directory:
            return [_issue(
                Category.PRELOAD_HIJACK,
                assessment.resolved_path,
                f"{assessment.resolved_path} listed in {entry.source} is writable!",
            )]
        if assessment.can_create:
            return [_issue(
                Category.PRELOAD_HIJACK,
                assessment.resolved_path,
                f"{assessment.resolved_path} listed in {entry.source} does not exist and can be created!",
            )]
        return []

    def classify_target(self, path, assessment, origin, directory_writable=False):
        """A file found inside a search directory.

        The file can be swapped out when it is writable itself or when the
        directory it was found in is writable (rename or unlink and replace).
        """
        if not assessment.exists or assessment.is_directory:
            return []
        if not (assessment.is_writable or directory_writable):
            return []

        where = "$PATH" if origin == Origin.PATH else "library search path"
        if assessment.is_writable:
            message = f"{assessment.resolved_path} in {where} is writable!"
        else:
            message = f"{assessment.resolved_path} in {where} can be replaced, its directory is writable!"
        details = () if path == assessment.resolved_path else (f"found as {path}",)
        return [_issue(Category.WRITABLE_TARGET, assessment.resolved_path, message, details)]

    def classify_preload_file(self, assessment):
        if assessment.exists and assessment.is_writable:
            return [_issue(
                Category.PRELOAD_HIJACK,
                assessment.resolved_path,
                f"{assessment.resolved_path} is writable!",
            )]
        return []

    def classify_config_file(self, assessment):
        if not (assessment.exists and assessment.is_writable):
            return []
        if assessment.is_directory:
            message = f"{assessment.resolved_path} linker configuration directory is writable!"
        else:
            message = f"{assessment.resolved_path} linker configuration file is writable!"
        return [_issue(Category.CONFIG_WRITABLE, assessment.resolved_path, message)]

    def classify_executable(self, record, interpreter_assessment=None):
        """Findings about the binary itself: dependencies, sanitizer runtime, interpreter"""
        findings = []

        for library in sorted(record.missing_dependencies):
            findings.append(_issue(
                Category.MISSING_DEPENDENCY,
                record.path,
                f"{record.path} missing: {library} => not found",
            ))

        if record.links_sanitizer_runtime:
            if record.is_setuid:
                findings.append(_issue(
                    Category.SANITIZER_SETUID,
                    record.path,
                    f"{record.path} is setuid and uses a sanitizer runtime!",
                ))
            else:
                findings.append(Finding(
                    severity=Severity.INFO,
                    subject_path=record.path,
                    category=Category.SANITIZER_SETUID,
                    message=f"{record.path} uses a sanitizer runtime",
                ))

        if (record.interpreter_path and interpreter_assessment is not None
                and interpreter_assessment.exists and interpreter_assessment.is_writable):
            if record.is_setuid:
                message = f"{record.path} is setuid and its interpreter {record.interpreter_path} is writable!"
            else:
                message = f"{record.path} interpreter {record.interpreter_path} is writable!"
            findings.append(_issue(Category.INTERPRETER_WRITABLE, record.path, message))

        return findings
