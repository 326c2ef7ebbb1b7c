"""Gitignore-style exclusion rules for workspace sync.

Rules come from three layers, applied in order:

1. ``DEFAULT_IGNORE_PATTERNS`` (system files, build output, caches)
2. patterns passed to :class:`IgnoreFilter` by the caller
3. the ``.syncignore`` file found in the workspace after a pull

Within the combined list the last matching rule wins, so a later
``!pattern`` re-includes a path excluded earlier. As in git, a file
cannot be re-included when one of its parent directories is excluded.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".syncignore"

DEFAULT_IGNORE_PATTERNS: list[str] = [
    # System files
    ".DS_Store",
    "Thumbs.db",
    "*.swp",
    "*.swo",
    "*~",
    # Build artifacts
    "node_modules/",
    "__pycache__/",
    "*.pyc",
    ".gradle/",
    "build/",
    "dist/",
    "target/",
    # IDE settings
    ".idea/",
    ".vscode/",
    "*.iml",
    # Log files
    "*.log",
    "logs/",
    # Temporary files
    "*.tmp",
    "*.temp",
    ".cache/",
    # The ignore file itself
    IGNORE_FILE_NAME,
]


def _glob_to_regex(pattern: str) -> str:
    """Translate the body of a gitignore pattern into a regex fragment."""
    out: list[str] = []
    i = 0
    n = len(pattern)

    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                at_start = i == 0 or pattern[i - 1] == "/"
                after = i + 2
                if at_start and after == n:
                    # "**" or "dir/**": everything below
                    out.append(".*")
                    i = after
                    continue
                if at_start and pattern.startswith("/", after):
                    # "**/" or "a/**/b": zero or more directories
                    out.append("(?:.*/)?")
                    i = after + 1
                    continue
                out.append("[^/]*")
                i = after
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        elif c == "\\" and i + 1 < n:
            i += 1
            out.append(re.escape(pattern[i]))
        else:
            out.append(re.escape(c))
        i += 1

    return "".join(out)


@dataclass(frozen=True)
class IgnoreRule:
    """A single compiled gitignore rule."""

    pattern: str
    """Original pattern text"""

    regex: re.Pattern
    """Compiled matcher for a relative path"""

    negated: bool = False
    """True for ``!pattern`` rules that re-include paths"""

    directory_only: bool = False
    """True for ``pattern/`` rules that only match directories"""

    @classmethod
    def from_pattern(cls, line: str) -> Optional["IgnoreRule"]:
        """Parse one line of gitignore syntax.

        Args:
            line: Raw pattern line

        Returns:
            IgnoreRule, or None for blank lines and comments

        Examples:
            >>> IgnoreRule.from_pattern("# comment") is None
            True
            >>> IgnoreRule.from_pattern("!keep.log").negated
            True
        """
        text = line.strip()
        if not text or text.startswith("#"):
            return None

        negated = False
        if text.startswith("!"):
            negated = True
            text = text[1:]
        elif text.startswith("\\#") or text.startswith("\\!"):
            text = text[1:]

        directory_only = text.endswith("/")
        text = text.rstrip("/")
        if not text:
            return None

        # A slash anywhere but the end anchors the pattern to the root
        anchored = "/" in text
        text = text.lstrip("/")

        body = _glob_to_regex(text)
        if anchored:
            expression = f"^{body}$"
        else:
            expression = f"^(?:.*/)?{body}$"

        return cls(
            pattern=line.strip(),
            regex=re.compile(expression),
            negated=negated,
            directory_only=directory_only,
        )

    def matches(self, path: str, is_dir: bool = False) -> bool:
        """Check whether the rule matches a normalized relative path."""
        if self.directory_only and not is_dir:
            return False
        return self.regex.match(path) is not None


def parse_ignore_patterns(lines: Iterable[str]) -> list[IgnoreRule]:
    """Compile pattern lines, dropping blanks and comments."""
    rules = []
    for line in lines:
        rule = IgnoreRule.from_pattern(line)
        if rule is not None:
            rules.append(rule)
    return rules


def load_ignore_file(file_path: Union[str, Path]) -> list[IgnoreRule]:
    """Read and compile a gitignore-style file.

    Args:
        file_path: Path to the file

    Returns:
        Compiled rules in file order

    Raises:
        OSError: If the file cannot be read
    """
    content = Path(file_path).read_text(encoding="utf-8")
    return parse_ignore_patterns(content.splitlines())


def _normalize(relative_path: str) -> str:
    return relative_path.replace("\\", "/").strip("/")


class IgnoreFilter:
    """Decides which relative paths are excluded from sync.

    One instance is shared by remote listing, local cleanup and push-side
    scanning so that all three agree on what is ignored.

    Examples:
        >>> f = IgnoreFilter(["*.pdf", "!keep.pdf"])
        >>> f.is_ignored("docs/report.pdf")
        True
        >>> f.is_ignored("keep.pdf")
        False
        >>> f.is_ignored("node_modules/pkg/index.js")
        True
    """

    def __init__(
        self,
        patterns: Optional[Iterable[str]] = None,
        use_defaults: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the filter.

        Args:
            patterns: Extra gitignore patterns layered over the defaults
            use_defaults: Whether to start from DEFAULT_IGNORE_PATTERNS
            logger: Logger to report rule loading to
        """
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._default_rules = (
            parse_ignore_patterns(DEFAULT_IGNORE_PATTERNS) if use_defaults else []
        )
        self._custom_rules = parse_ignore_patterns(patterns or [])
        self._workspace_rules: list[IgnoreRule] = []
        self._workspace_file_loaded = False

        self.logger.debug(
            "Loaded %d default and %d custom ignore patterns",
            len(self._default_rules),
            len(self._custom_rules),
        )

    @property
    def rules(self) -> list[IgnoreRule]:
        """All rules in precedence order (later rules win)."""
        return self._default_rules + self._custom_rules + self._workspace_rules

    @property
    def patterns(self) -> list[str]:
        """Pattern text of all rules in precedence order."""
        return [rule.pattern for rule in self.rules]

    def load_from_workspace(self, directory: Union[str, Path]) -> bool:
        """(Re)load the workspace ``.syncignore`` file.

        Rules read here replace those from any previous call, so calling
        this repeatedly never duplicates rules.

        Args:
            directory: Workspace root

        Returns:
            True if a file was found and read
        """
        ignore_path = Path(directory) / IGNORE_FILE_NAME

        if not ignore_path.is_file():
            self.logger.debug(
                "No %s file found, using base patterns only", IGNORE_FILE_NAME
            )
            self._workspace_rules = []
            self._workspace_file_loaded = False
            return False

        try:
            rules = load_ignore_file(ignore_path)
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning("Failed to load %s: %s", ignore_path, e)
            return False

        self._workspace_rules = rules
        self._workspace_file_loaded = True
        if rules:
            self.logger.info(
                "Loaded %d custom patterns from %s", len(rules), IGNORE_FILE_NAME
            )
        return True

    def _evaluate(self, path: str, is_dir: bool) -> bool:
        ignored = False
        for rule in self.rules:
            if rule.matches(path, is_dir=is_dir):
                ignored = not rule.negated
        return ignored

    def is_ignored(self, relative_path: str) -> bool:
        """Check whether a file path is excluded.

        Args:
            relative_path: Path relative to the workspace root
                (either separator style)

        Returns:
            True if the file should not be synced
        """
        path = _normalize(relative_path)
        if not path:
            return False

        parts = path.split("/")
        for depth in range(1, len(parts)):
            if self._evaluate("/".join(parts[:depth]), is_dir=True):
                return True
        return self._evaluate(path, is_dir=False)

    def filter(self, paths: Iterable[str]) -> list[str]:
        """Return the paths that are not ignored, preserving order."""
        return [p for p in paths if not self.is_ignored(p)]

    def get_info(self) -> dict:
        """Summary of the loaded rule layers."""
        return {
            "default_patterns_count": len(self._default_rules),
            "custom_patterns_count": len(self._custom_rules),
            "workspace_patterns_count": len(self._workspace_rules),
            "workspace_file_loaded": self._workspace_file_loaded,
        }
