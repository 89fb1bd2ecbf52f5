"""
Minimum-version gate for zgraph.

External tooling calls require_minimum_version() at startup to refuse
running against a zgraph that is too old. The running version is fixed
once, from the package version, and never changes at runtime.
"""

from typing import Optional, Union

from . import __version__
from .domain.version import Version, as_version, satisfies
from .exit_codes import UnsupportedVersion

RUNNING_VERSION = Version.parse(__version__)


def running_version() -> Version:
    return RUNNING_VERSION


def require_minimum_version(
    required: Union[str, Version],
    running: Optional[Union[str, Version]] = None,
) -> Version:
    """
    Fail unless the running zgraph is at least the required version.

    Args:
        required: Minimum acceptable version
        running: Version to check instead of the installed one

    Returns:
        The running version

    Raises:
        MalformedVersion: If either version string is not valid semver
        UnsupportedVersion: If running < required
    """
    required_version = as_version(required)
    running_ver = RUNNING_VERSION if running is None else as_version(running)
    if not satisfies(running_ver, required_version):
        raise UnsupportedVersion(running_ver.format(), required_version.format())
    return running_ver
