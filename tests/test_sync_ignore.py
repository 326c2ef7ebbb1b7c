"""Tests for gitignore-style ignore rules."""

import logging

import pytest

from s3workspace.sync.ignore import (
    DEFAULT_IGNORE_PATTERNS,
    IGNORE_FILE_NAME,
    IgnoreFilter,
    IgnoreRule,
    load_ignore_file,
    parse_ignore_patterns,
)


class TestIgnoreRule:
    """Tests for parsing single patterns."""

    @pytest.mark.parametrize("line", ["", "   ", "# comment", "/"])
    def test_blank_and_comment_lines(self, line):
        """Test that blank lines and comments produce no rule."""
        assert IgnoreRule.from_pattern(line) is None

    def test_negated_pattern(self):
        """Test parsing a negation."""
        rule = IgnoreRule.from_pattern("!important.log")
        assert rule.negated is True
        assert rule.matches("important.log")

    def test_escaped_hash_and_bang(self):
        """Test that escaped '#' and '!' are literal."""
        hash_rule = IgnoreRule.from_pattern("\\#notes")
        bang_rule = IgnoreRule.from_pattern("\\!draft")
        assert hash_rule.matches("#notes")
        assert bang_rule.negated is False
        assert bang_rule.matches("!draft")

    def test_directory_only_pattern(self):
        """Test that a trailing slash only matches directories."""
        rule = IgnoreRule.from_pattern("build/")
        assert rule.directory_only is True
        assert rule.matches("build", is_dir=True)
        assert not rule.matches("build", is_dir=False)

    def test_unanchored_pattern_matches_at_any_depth(self):
        """Test that a pattern without a slash matches in every directory."""
        rule = IgnoreRule.from_pattern("*.log")
        assert rule.matches("app.log")
        assert rule.matches("path/to/error.log")

    def test_leading_slash_anchors_to_root(self):
        """Test that '/todo.txt' only matches at the root."""
        rule = IgnoreRule.from_pattern("/todo.txt")
        assert rule.matches("todo.txt")
        assert not rule.matches("docs/todo.txt")

    def test_inner_slash_anchors_to_root(self):
        """Test that 'docs/*.md' only matches directly below docs."""
        rule = IgnoreRule.from_pattern("docs/*.md")
        assert rule.matches("docs/a.md")
        assert not rule.matches("src/docs/a.md")
        assert not rule.matches("docs/sub/a.md")

    def test_question_mark_and_character_class(self):
        """Test '?' and '[...]' wildcards."""
        assert IgnoreRule.from_pattern("file?.txt").matches("file1.txt")
        assert not IgnoreRule.from_pattern("file?.txt").matches("file10.txt")
        assert IgnoreRule.from_pattern("img[0-9].png").matches("img7.png")
        assert not IgnoreRule.from_pattern("img[!0-9].png").matches("img7.png")
        assert IgnoreRule.from_pattern("img[!0-9].png").matches("imgx.png")

    def test_double_star_forms(self):
        """Test leading, inner and trailing '**'."""
        leading = IgnoreRule.from_pattern("**/*.test.js")
        assert leading.matches("utils.test.js")
        assert leading.matches("deep/path/to/file.test.js")

        inner = IgnoreRule.from_pattern("a/**/b.txt")
        assert inner.matches("a/b.txt")
        assert inner.matches("a/x/y/b.txt")

        trailing = IgnoreRule.from_pattern("coverage/**")
        assert trailing.matches("coverage/lcov-report/index.html")
        assert not trailing.matches("src/coverage.ts")

    def test_parse_ignore_patterns_drops_blanks(self):
        """Test compiling a list of lines."""
        rules = parse_ignore_patterns(["# header", "", "*.log", "  ", "node_modules/"])
        assert [r.pattern for r in rules] == ["*.log", "node_modules/"]


class TestDefaultPatterns:
    """Tests for the built-in rules."""

    @pytest.fixture
    def ignore_filter(self):
        return IgnoreFilter()

    @pytest.mark.parametrize(
        "path",
        [
            ".DS_Store",
            "Thumbs.db",
            "file.swp",
            "file.swo",
            "backup~",
            "node_modules/package/index.js",
            "path/to/node_modules/index.js",
            "__pycache__/module.pyc",
            "test.pyc",
            ".gradle/caches/x",
            "build/output.jar",
            "dist/bundle.js",
            "target/classes/Main.class",
            ".idea/workspace.xml",
            ".vscode/settings.json",
            "project.iml",
            "error.log",
            "logs/app.txt",
            "temp.tmp",
            "file.temp",
            ".cache/data",
            ".syncignore",
        ],
    )
    def test_ignored_by_default(self, ignore_filter, path):
        """Test paths excluded by the default rules."""
        assert ignore_filter.is_ignored(path) is True

    @pytest.mark.parametrize(
        "path", ["README.md", "src/index.ts", "package.json", "docs/guide.pdf", "src/build.ts"]
    )
    def test_regular_files_not_ignored(self, ignore_filter, path):
        """Test that ordinary files are synced."""
        assert ignore_filter.is_ignored(path) is False

    def test_defaults_can_be_disabled(self):
        """Test use_defaults=False."""
        ignore_filter = IgnoreFilter(use_defaults=False)
        assert ignore_filter.is_ignored("app.log") is False
        assert ignore_filter.rules == []

    def test_ignore_file_name_is_a_default(self):
        assert IGNORE_FILE_NAME in DEFAULT_IGNORE_PATTERNS


class TestIgnoreFilter:
    """Tests for IgnoreFilter."""

    def test_custom_patterns(self):
        """Test patterns passed to the constructor."""
        ignore_filter = IgnoreFilter(["*.pdf", "data/"])
        assert ignore_filter.is_ignored("document.pdf")
        assert ignore_filter.is_ignored("data/file.txt")
        assert not ignore_filter.is_ignored("README.md")

    def test_negation_last_match_wins(self):
        """Test that a later negation re-includes a file."""
        ignore_filter = IgnoreFilter(["*.log", "!important.log"])
        assert ignore_filter.is_ignored("debug.log")
        assert not ignore_filter.is_ignored("important.log")
        assert not ignore_filter.is_ignored("logs2/important.log")

    def test_negation_cannot_reinclude_below_excluded_directory(self):
        """Test that files inside an excluded directory stay excluded."""
        ignore_filter = IgnoreFilter(["secret/", "!secret/keep.txt"])
        assert ignore_filter.is_ignored("secret/keep.txt")

    def test_windows_separators(self):
        """Test that backslash paths are normalized."""
        ignore_filter = IgnoreFilter(["node_modules/"])
        assert ignore_filter.is_ignored("node_modules\\pkg\\index.js")

    def test_empty_path_is_not_ignored(self):
        assert IgnoreFilter().is_ignored("") is False

    def test_filter_preserves_order(self):
        """Test filtering a list of paths."""
        ignore_filter = IgnoreFilter(["*.log", "node_modules/"])
        files = [
            "README.md",
            "app.log",
            "node_modules/pkg/index.js",
            "src/index.ts",
            "debug.log",
        ]
        assert ignore_filter.filter(files) == ["README.md", "src/index.ts"]

    def test_patterns_in_precedence_order(self):
        """Test that patterns lists defaults before custom rules."""
        ignore_filter = IgnoreFilter(["*.pdf", "!important.pdf"])
        patterns = ignore_filter.patterns
        assert patterns[: len(DEFAULT_IGNORE_PATTERNS)] == DEFAULT_IGNORE_PATTERNS
        assert patterns[-2:] == ["*.pdf", "!important.pdf"]


class TestWorkspaceIgnoreFile:
    """Tests for loading .syncignore from the workspace."""

    def test_load_custom_patterns(self, tmp_path):
        """Test loading rules from a .syncignore file."""
        (tmp_path / IGNORE_FILE_NAME).write_text(
            "# Custom syncignore file\n"
            "secrets/\n"
            "*.key\n"
            "*.pem\n"
            "\n"
            "# Test data\n"
            "test-data/\n"
        )
        ignore_filter = IgnoreFilter()

        assert ignore_filter.load_from_workspace(tmp_path) is True

        assert ignore_filter.is_ignored("secrets/api-key.txt")
        assert ignore_filter.is_ignored("private.key")
        assert ignore_filter.is_ignored("cert.pem")
        assert ignore_filter.is_ignored("test-data/sample.json")
        assert not ignore_filter.is_ignored("README.md")

    def test_windows_line_endings(self, tmp_path):
        """Test that CRLF files are parsed."""
        (tmp_path / IGNORE_FILE_NAME).write_bytes(b"*.bak\r\n*.csv\r\n")
        ignore_filter = IgnoreFilter()
        ignore_filter.load_from_workspace(tmp_path)
        assert ignore_filter.is_ignored("file.bak")
        assert ignore_filter.is_ignored("data.csv")

    def test_workspace_rules_override_constructor_rules(self, tmp_path):
        """Test that the workspace file can re-include a path."""
        (tmp_path / IGNORE_FILE_NAME).write_text("!keep.pdf\n")
        ignore_filter = IgnoreFilter(["*.pdf"])
        ignore_filter.load_from_workspace(tmp_path)
        assert ignore_filter.is_ignored("other.pdf")
        assert not ignore_filter.is_ignored("keep.pdf")

    def test_reload_is_idempotent(self, tmp_path):
        """Test that loading twice does not duplicate rules."""
        (tmp_path / IGNORE_FILE_NAME).write_text("*.csv\n")
        ignore_filter = IgnoreFilter()
        ignore_filter.load_from_workspace(tmp_path)
        ignore_filter.load_from_workspace(tmp_path)
        assert ignore_filter.get_info()["workspace_patterns_count"] == 1

    def test_reload_picks_up_changes(self, tmp_path):
        """Test that edits and removal of the file are honored."""
        ignore_file = tmp_path / IGNORE_FILE_NAME
        ignore_file.write_text("*.csv\n")
        ignore_filter = IgnoreFilter()
        ignore_filter.load_from_workspace(tmp_path)
        assert ignore_filter.is_ignored("a.csv")

        ignore_file.write_text("*.json\n")
        ignore_filter.load_from_workspace(tmp_path)
        assert not ignore_filter.is_ignored("a.csv")
        assert ignore_filter.is_ignored("a.json")

        ignore_file.unlink()
        assert ignore_filter.load_from_workspace(tmp_path) is False
        assert not ignore_filter.is_ignored("a.json")

    def test_missing_file(self, tmp_path):
        """Test that the defaults still apply without a file."""
        ignore_filter = IgnoreFilter()
        assert ignore_filter.load_from_workspace(tmp_path) is False
        assert ignore_filter.is_ignored("node_modules/pkg/index.js")
        assert not ignore_filter.is_ignored("README.md")

    def test_unreadable_file_is_logged(self, tmp_path, caplog):
        """Test that a file with invalid encoding logs a warning."""
        (tmp_path / IGNORE_FILE_NAME).write_bytes(b"\xff\xfe\xfa")
        ignore_filter = IgnoreFilter()

        with caplog.at_level(logging.WARNING, logger="s3workspace"):
            assert ignore_filter.load_from_workspace(tmp_path) is False

        assert "Failed to load" in caplog.text

    def test_get_info(self, tmp_path):
        """Test the rule layer summary."""
        ignore_filter = IgnoreFilter(["*.pdf"])
        info = ignore_filter.get_info()
        assert info["default_patterns_count"] == len(DEFAULT_IGNORE_PATTERNS)
        assert info["custom_patterns_count"] == 1
        assert info["workspace_file_loaded"] is False

        (tmp_path / IGNORE_FILE_NAME).write_text("*.csv\n")
        ignore_filter.load_from_workspace(tmp_path)
        assert ignore_filter.get_info()["workspace_file_loaded"] is True

    def test_load_ignore_file(self, tmp_path):
        """Test reading a file into rules."""
        path = tmp_path / "rules"
        path.write_text("*.a\n!b.a\n")
        rules = load_ignore_file(path)
        assert [r.negated for r in rules] == [False, True]
