"""Tests for exclusion rules."""

from pathlib import Path

import pytest

from wpsync.exceptions import ConfigurationError
from wpsync.sync.ignore import (
    DEFAULT_EXCLUDES,
    OS_ARTIFACT_EXCLUDES,
    ExclusionSet,
    IgnoreRule,
    RuleSource,
    build_exclusion_set,
    load_ignore_file,
    normalize_pattern,
    self_exclusion_for,
)


class TestIgnoreRule:
    """Tests for single rule matching."""

    def test_name_pattern_matches_at_any_depth(self):
        rule = IgnoreRule("*.log")
        assert rule.matches("debug.log")
        assert rule.matches("logs/2024/debug.log")
        assert not rule.matches("debug.log.txt")

    def test_dir_only_pattern(self):
        """A trailing slash only matches directories."""
        rule = IgnoreRule("cache/")
        assert rule.dir_only
        assert rule.matches("cache", is_dir=True)
        assert rule.matches("lib/cache", is_dir=True)
        assert not rule.matches("cache", is_dir=False)

    def test_anchored_pattern(self):
        """A pattern containing a slash is relative to the root."""
        rule = IgnoreRule("/wpsync.json")
        assert rule.anchored
        assert rule.matches("wpsync.json")
        assert not rule.matches("sub/wpsync.json")

    def test_anchored_pattern_without_leading_slash(self):
        rule = IgnoreRule("assets/src")
        assert rule.anchored
        assert rule.matches("assets/src", is_dir=True)
        assert not rule.matches("lib/assets/src", is_dir=True)

    def test_double_star_matches_across_segments(self):
        rule = IgnoreRule("assets/**/*.map")
        assert rule.matches("assets/app.map")
        assert rule.matches("assets/js/vendor/app.map")
        assert not rule.matches("other/app.map")

    def test_trailing_double_star(self):
        rule = IgnoreRule("build/**")
        assert rule.matches("build/a/b.txt")

    def test_single_star_does_not_cross_slash(self):
        rule = IgnoreRule("src/*.js")
        assert rule.matches("src/app.js")
        assert not rule.matches("src/lib/app.js")


class TestNormalizePattern:
    """Tests for ignore file line normalization."""

    @pytest.mark.parametrize("line", ["", "   ", "# comment", "  # indented", "/"])
    def test_skipped_lines(self, line):
        assert normalize_pattern(line) is None

    def test_strips_and_normalizes_separators(self):
        assert normalize_pattern("  build\\dist  \n") == "build/dist"
        assert normalize_pattern("a//b") == "a/b"


class TestExclusionSet:
    """Tests for ExclusionSet."""

    def test_parent_directory_excludes_subtree(self):
        """Everything below an excluded directory is excluded."""
        excludes = ExclusionSet.from_patterns(["node_modules/"])
        assert excludes.is_excluded("node_modules", is_dir=True)
        assert excludes.is_excluded("node_modules/pkg/index.js")
        assert excludes.is_excluded("lib/node_modules/pkg/index.js")
        assert not excludes.is_excluded("node_modules.txt")

    def test_duplicate_patterns_are_ignored(self):
        excludes = ExclusionSet()
        assert excludes.add(IgnoreRule("*.zip", RuleSource.BUILTIN))
        assert not excludes.add(IgnoreRule("*.zip", RuleSource.SELF))
        assert len(excludes) == 1
        assert excludes.rules[0].source == RuleSource.BUILTIN

    def test_contains_and_patterns(self):
        excludes = ExclusionSet.from_patterns(["*.log", "cache/"])
        assert "*.log" in excludes
        assert "*.tmp" not in excludes
        assert excludes.patterns == ["*.log", "cache/"]
        assert [rule.pattern for rule in excludes] == ["*.log", "cache/"]

    def test_matching_rule_reports_provenance(self):
        excludes = ExclusionSet.from_patterns([".DS_Store"], RuleSource.OS)
        rule = excludes.matching_rule(".DS_Store")
        assert rule is not None
        assert rule.source == RuleSource.OS
        assert excludes.matching_rule("index.php") is None

    def test_by_source(self):
        excludes = ExclusionSet.from_patterns(["a"], RuleSource.BUILTIN)
        excludes.extend(["b", "c"], RuleSource.IGNORE_FILE)
        assert [r.pattern for r in excludes.by_source(RuleSource.IGNORE_FILE)] == [
            "b",
            "c",
        ]


class TestLoadIgnoreFile:
    """Tests for reading ignore files."""

    def test_missing_file(self, temp_dir):
        assert load_ignore_file(temp_dir / ".wpsyncignore") == []

    def test_reads_patterns(self, temp_dir):
        path = temp_dir / ".wpsyncignore"
        path.write_text("# local files\n\nsecret.php\nbuild/\n  *.bak  \n")

        assert load_ignore_file(path) == ["secret.php", "build/", "*.bak"]

    def test_unreadable_file(self, temp_dir):
        path = temp_dir / ".wpsyncignore"
        path.write_bytes(b"\xff\xfe\xfa invalid")

        with pytest.raises(ConfigurationError, match="Cannot read ignore file"):
            load_ignore_file(path)


class TestBuildExclusionSet:
    """Tests for the deployment exclusion set."""

    def test_union_of_all_sources(self, temp_dir):
        ignore_file = temp_dir / ".wpsyncignore"
        ignore_file.write_text("secret.php\n*.log\n")

        excludes = build_exclusion_set(ignore_file=ignore_file, extra_self=["/bk/"])

        for pattern in DEFAULT_EXCLUDES + OS_ARTIFACT_EXCLUDES:
            assert pattern in excludes
        assert [r.pattern for r in excludes.by_source(RuleSource.IGNORE_FILE)] == [
            "secret.php"
        ]
        self_patterns = [r.pattern for r in excludes.by_source(RuleSource.SELF)]
        assert "/wpsync.json" in self_patterns
        assert "/.wpsyncignore" in self_patterns
        assert "/bk/" in self_patterns

    def test_builtin_exclusions(self):
        excludes = build_exclusion_set()
        assert excludes.is_excluded(".git", is_dir=True)
        assert excludes.is_excluded("docs/index.html")
        assert excludes.is_excluded("release.zip")
        assert excludes.is_excluded("CHANGELOG.md")
        assert excludes.is_excluded("vendor/autoload.php")
        assert excludes.is_excluded("tests/test_plugin.php")
        assert excludes.is_excluded("assets/._logo.png")
        assert excludes.is_excluded("Thumbs.db")
        assert excludes.is_excluded("wpsync.json")
        assert excludes.is_excluded("sync-project.sh.bak")
        assert not excludes.is_excluded("my-plugin.php")
        assert not excludes.is_excluded("assets/css/style.css")

    def test_ignore_file_cannot_remove_builtin_rules(self, temp_dir):
        """Rules only add exclusions."""
        ignore_file = temp_dir / ".wpsyncignore"
        ignore_file.write_text("!*.md\n")

        excludes = build_exclusion_set(ignore_file=ignore_file)

        assert excludes.is_excluded("README.md")


class TestSelfExclusionFor:
    """Tests for self_exclusion_for."""

    def test_nested_directory(self, temp_dir):
        assert self_exclusion_for(temp_dir / "backups", temp_dir) == "/backups/"

    def test_deeply_nested_directory(self, temp_dir):
        path = temp_dir / "var" / "backups"
        assert self_exclusion_for(path, temp_dir) == "/var/backups/"

    def test_outside_directory(self, temp_dir):
        assert self_exclusion_for(Path("/somewhere/else"), temp_dir) is None

    def test_root_itself(self, temp_dir):
        assert self_exclusion_for(temp_dir, temp_dir) is None

    def test_file_rule(self, temp_dir):
        path = temp_dir / "deploy.json"
        assert self_exclusion_for(path, temp_dir, directory=False) == "/deploy.json"
