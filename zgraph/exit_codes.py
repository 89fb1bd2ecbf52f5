"""
Standard exit codes and error types for zgraph.

Following Unix/POSIX conventions for command-line tools. Data-validation
errors (the build graph is wrong) derive from ZGraphError; misuse of the
call contract (the resolver was called wrongly) raises ContractError,
which is a TypeError and never a ZGraphError.
"""
from typing import Optional, Sequence

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NO_PROJECTS_FOUND = 64   # No project descriptors found under the root
VERSION_ERROR = 65       # Running zgraph is older than required
CONFIG_ERROR = 66        # Configuration file error
PERMISSION_ERROR = 67    # Insufficient permissions
DATA_ERROR = 70          # Malformed identifier, version, glob or descriptor
GRAPH_ERROR = 72         # Resolution failed with diagnostics
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'TOMLDecodeError': DATA_ERROR,
    'YAMLError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    exit_code = getattr(exc, 'exit_code', None)
    if isinstance(exit_code, int):
        return exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class NoProjectsFoundError(CommandError):
    """Raised when no project descriptor exists under the given root."""
    def __init__(self, message: str = "No projects found"):
        super().__init__(message, NO_PROJECTS_FOUND)


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class ZGraphError(CommandError):
    """Base class for errors caused by the data handed to zgraph."""
    def __init__(self, message: str, exit_code: int = DATA_ERROR):
        super().__init__(message, exit_code)


class MalformedIdentifier(ZGraphError, ValueError):
    """Raised when an identifier string does not follow the grammar."""
    def __init__(self, text: str, reason: str):
        super().__init__(f"malformed identifier {text!r}: {reason}")
        self.text = text
        self.reason = reason


class MalformedVersion(ZGraphError, ValueError):
    """Raised when a version string is not valid semver."""
    def __init__(self, text: str, reason: str = "expected MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]"):
        super().__init__(f"malformed version {text!r}: {reason}")
        self.text = text
        self.reason = reason


class InvalidGlob(ZGraphError, ValueError):
    """Raised when an include/exclude glob cannot be compiled."""
    def __init__(self, glob: str, reason: str):
        super().__init__(f"invalid glob {glob!r}: {reason}")
        self.glob = glob
        self.reason = reason


class InvalidProjectDescriptor(ZGraphError, ValueError):
    """Raised when a project or rule descriptor has the wrong shape."""
    def __init__(self, message: str, source: Optional[str] = None):
        if source:
            message = f"{source}: {message}"
        super().__init__(message)
        self.source = source


class UnsupportedVersion(ZGraphError):
    """Raised when the running zgraph is older than a required minimum."""
    def __init__(self, running: str, required: str):
        super().__init__(
            f"zgraph {running} is older than the required version {required}",
            VERSION_ERROR,
        )
        self.running = running
        self.required = required


class ResolutionFailed(ZGraphError):
    """Raised when a resolution finished with error diagnostics."""
    def __init__(self, diagnostics: Sequence):
        count = len(diagnostics)
        noun = "error" if count == 1 else "errors"
        super().__init__(f"dependency graph resolution failed with {count} {noun}", GRAPH_ERROR)
        self.diagnostics = tuple(diagnostics)


class ResolutionCancelled(ZGraphError):
    """Raised when a caller cancels a resolution between phases."""
    def __init__(self, phase: str):
        super().__init__(f"resolution cancelled before {phase}", INTERRUPTED)
        self.phase = phase


class ContractError(TypeError):
    """
    Raised when zgraph is called with missing or wrongly typed inputs.

    This is a programming error in the caller, not a problem with the
    build graph, and therefore carries no data-error exit code.
    """
