"""
Include/exclude file patterns for zgraph.

A Pattern is either an explicit ordered list of include globs or an
include/exclude record. A repository-relative path is selected when it
matches at least one include glob and no exclude glob. An empty include
set with a non-empty exclude set selects everything that is not excluded.

Globs use gitwildmatch syntax (``*``, ``?``, ``[...]``, ``**``) and are
anchored to the repository root. A glob matches a path itself, not the
contents of a matching directory: use ``dir/**`` for those.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from pathspec import GitIgnoreSpec, PathSpec

from ..exit_codes import ContractError, InvalidGlob, InvalidProjectDescriptor


def _check_brackets(glob: str) -> None:
    """Reject bracket expressions that never close."""
    i = 0
    while i < len(glob):
        char = glob[i]
        if char == '\\':
            i += 2
            continue
        if char == '[':
            j = i + 1
            if j < len(glob) and glob[j] in '!^':
                j += 1
            # A ']' right after the opening bracket is a literal member
            if j < len(glob) and glob[j] == ']':
                j += 1
            while j < len(glob) and glob[j] != ']':
                if glob[j] == '/':
                    raise InvalidGlob(glob, "bracket expression spans a path separator")
                j += 1
            if j >= len(glob):
                raise InvalidGlob(glob, "unbalanced '['")
            i = j
        elif char == ']':
            raise InvalidGlob(glob, "unbalanced ']'")
        i += 1


def normalize_path(path: str) -> str:
    """Repository-relative POSIX form: no leading './' or surrounding slashes."""
    path = path.replace('\\', '/')
    while path.startswith('./'):
        path = path[2:]
    path = path.strip('/')
    return '' if path == '.' else path


def _anchor(glob: str) -> str:
    glob = glob.rstrip('/')
    return glob if glob.startswith('/') else '/' + glob


def _compile_one(glob: str) -> PathSpec:
    anchored = _anchor(glob)
    lines = [anchored]
    # gitignore matching also selects everything below a matched directory;
    # a glob here selects the path itself only. The directory-only negation
    # loses to a direct match of the same path.
    if not anchored.endswith('**'):
        lines.append('!' + anchored + '/')
    try:
        return GitIgnoreSpec.from_lines(lines)
    except ValueError as e:
        raise InvalidGlob(glob, str(e)) from e


def compile_globs(globs: Sequence[str]) -> List[PathSpec]:
    """
    Compile globs into root-anchored PathSpecs, one per glob.

    Raises:
        InvalidGlob: If a glob is empty or cannot be compiled
    """
    specs = []
    for glob in globs:
        if not isinstance(glob, str):
            raise ContractError(f"glob must be a str, got {type(glob).__name__}")
        if not glob.strip('/ \t'):
            raise InvalidGlob(glob, "empty glob")
        _check_brackets(glob)
        specs.append(_compile_one(glob))
    return specs


@dataclass(frozen=True)
class Pattern:
    """
    Immutable include/exclude pattern.

    Attributes:
        include: Include globs, in declaration order
        exclude: Exclude globs, in declaration order
        explicit: True when built from a plain list of include paths
    """

    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    explicit: bool = False

    def __post_init__(self):
        # Compile eagerly so malformed globs fail at construction
        self._include_specs
        self._exclude_specs

    @classmethod
    def of(cls, paths: Iterable[str]) -> 'Pattern':
        """Explicit form: a list of paths to include."""
        return cls(include=tuple(paths), explicit=True)

    @classmethod
    def from_descriptor(cls, value: Any, source: Optional[str] = None) -> 'Pattern':
        """
        Build a Pattern from descriptor data.

        Accepts ``["a", "b"]`` or ``{"include": [...], "exclude": [...]}``.
        """
        if isinstance(value, (list, tuple)):
            if not all(isinstance(item, str) for item in value):
                raise InvalidProjectDescriptor("pattern list must contain only strings", source)
            return cls.of(value)
        if isinstance(value, dict):
            unknown = set(value) - {'include', 'exclude'}
            if unknown:
                raise InvalidProjectDescriptor(
                    f"unknown pattern keys: {', '.join(sorted(unknown))}", source
                )
            include = value.get('include') or []
            exclude = value.get('exclude') or []
            for key, globs in (('include', include), ('exclude', exclude)):
                if not isinstance(globs, (list, tuple)) or not all(isinstance(g, str) for g in globs):
                    raise InvalidProjectDescriptor(f"pattern {key} must be a list of strings", source)
            return cls(include=tuple(include), exclude=tuple(exclude))
        raise InvalidProjectDescriptor(
            f"pattern must be a list or an include/exclude mapping, got {type(value).__name__}", source
        )

    @cached_property
    def _include_specs(self) -> List[PathSpec]:
        return compile_globs(self.include)

    @cached_property
    def _exclude_specs(self) -> List[PathSpec]:
        return compile_globs(self.exclude)

    @property
    def is_empty(self) -> bool:
        return not self.include and not self.exclude

    def matches(self, path: str) -> bool:
        """Check a single repository-relative path."""
        path = normalize_path(path)
        if not path:
            return False
        if self._include_specs:
            if not any(spec.match_file(path) for spec in self._include_specs):
                return False
        elif not self._exclude_specs:
            return False
        # Exclude-only records select everything else
        return not any(spec.match_file(path) for spec in self._exclude_specs)

    def to_descriptor(self) -> Any:
        """Convert back to descriptor data."""
        if self.explicit:
            return list(self.include)
        return {'include': list(self.include), 'exclude': list(self.exclude)}


def select(pattern: Pattern, candidate_paths: Iterable[str]) -> List[str]:
    """
    Select matching paths, preserving the input order.

    Args:
        pattern: Pattern to apply
        candidate_paths: Repository-relative paths

    Returns:
        The candidate paths the pattern selects
    """
    if not isinstance(pattern, Pattern):
        raise ContractError(f"select() expects a Pattern, got {type(pattern).__name__}")
    return [path for path in candidate_paths if pattern.matches(path)]


def select_any(patterns: Sequence[Pattern], candidate_paths: Iterable[str]) -> List[str]:
    """Select paths matched by at least one of several patterns, in input order."""
    return [path for path in candidate_paths if any(p.matches(path) for p in patterns)]
