"""Exception taxonomy for the orchestrator.

Every fatal condition raised by the engine derives from ``LibrarianError`` so
the CLI can turn it into a non-zero exit with a readable message.  The
subclasses mirror the failure classes callers need to tell apart:

- **configuration**: bad or contradictory input, detected before work starts
- **integrity**: a fetched corpus does not match its pinned hash
- **generation**: an external backend, formatter, or build step failed
- **consistency**: a build step mutated already-committed source
- **git / publish**: local VCS or remote publishing failed
"""

from __future__ import annotations


class LibrarianError(Exception):
    """Base class for all orchestrator failures."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(LibrarianError, ValueError):
    """Invalid or contradictory configuration.  Never retried."""


class MissingLibraryOrAllError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("must specify library name or use --all flag")


class BothLibraryAndAllError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("cannot specify both library name and --all flag")


class EmptySourcesError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("sources required in librarian.yaml")


class MissingPinError(ConfigurationError):
    """A source has neither a local directory nor a pinned commit."""

    def __init__(self, name: str) -> None:
        super().__init__(f"source '{name}' requires either 'dir' or 'commit'")


class VeneerOutputError(ConfigurationError):
    def __init__(self, library: str) -> None:
        super().__init__(f"veneer '{library}' requires an explicit output path")


class UnsupportedLanguageError(ConfigurationError):
    """No backend registered for a language / phase combination."""

    def __init__(self, language: str, phase: str) -> None:
        self.language = language
        self.phase = phase
        super().__init__(f"language '{language}' does not support {phase}")


class MissingTokenError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("a GitHub token must be provided when push is requested")


class KeepFileMissingError(ConfigurationError):
    """A keep-list entry does not exist in the directory being cleaned."""

    def __init__(self, entry: str) -> None:
        self.entry = entry
        super().__init__(f"keep file '{entry}' does not exist")


class NotADirectoryCleanError(ConfigurationError):
    def __init__(self, path: str) -> None:
        super().__init__(f"'{path}' is not a directory")


class MissingOutputError(ConfigurationError):
    """A destructive clean was asked for a library with no output directory."""

    def __init__(self, library: str) -> None:
        self.library = library
        super().__init__(f"library '{library}' has no output directory; refusing to clean")


class ApiScopeError(ConfigurationError):
    """A backend cannot separate one API's output from its library's."""

    def __init__(self, library: str, api_path: str, language: str) -> None:
        super().__init__(
            f"library '{library}' generates several APIs and the {language} backend "
            f"cannot clean '{api_path}' on its own"
        )


# ---------------------------------------------------------------------------
# Library selection
# ---------------------------------------------------------------------------


class LibraryNotFoundError(LibrarianError, LookupError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"library not found: '{name}'")


class SkipGenerateError(LibrarianError):
    """The named library exists but is excluded from generation."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"library has skip_generate set: '{name}'")


class NoLibrariesToGenerateError(LibrarianError):
    def __init__(self) -> None:
        super().__init__("no libraries to generate: all libraries have skip_generate set")


# ---------------------------------------------------------------------------
# Integrity / generation / consistency
# ---------------------------------------------------------------------------


class IntegrityError(LibrarianError):
    """Downloaded corpus content does not match the declared hash."""

    def __init__(self, source: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"sha256 mismatch for {source}: expected {expected}, got {actual}")


class GenerationError(LibrarianError):
    """An external process (generator, formatter, build) failed."""

    def __init__(self, message: str, *, command: list[str] | None = None, returncode: int | None = None) -> None:
        self.command = command
        self.returncode = returncode
        super().__init__(message)


class ConsistencyError(LibrarianError):
    """Building the committed tree produced further changes."""

    def __init__(self, api_id: str) -> None:
        self.api_id = api_id
        super().__init__(f"building '{api_id}' created changes in the repo")


# ---------------------------------------------------------------------------
# Git / publish
# ---------------------------------------------------------------------------


class GitError(LibrarianError):
    """A git command failed."""


class PublishError(LibrarianError):
    """Pushing or opening the review request failed."""
