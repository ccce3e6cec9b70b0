"""Tests for unified diff parsing.

- Client-perspective behavior verification
- Given-When-Then structure
"""

from pr_triage.tools import parse_changed_lines, parse_pr_diff, changed_lines_by_file


class TestParseChangedLines:
    """Tests for changed-line extraction from one file's patch."""

    def test_added_line_between_context_lines(self):
        """Given one added line between two context lines, only it is changed."""
        # Given
        patch = "@@ -1,2 +1,3 @@\n first\n+second\n third"

        # When
        changed = parse_changed_lines(patch)

        # Then
        assert changed == {2}

    def test_removed_line_never_advances_or_appears(self):
        """Given a removal, the following lines keep their new-file numbers."""
        # Given
        patch = "@@ -1,4 +1,4 @@\n a\n-b\n+B\n c\n+d"

        # When
        changed = parse_changed_lines(patch)

        # Then - B replaces b at line 2, c is line 3, d is line 4
        assert changed == {2, 4}

    def test_pure_removal_yields_nothing(self):
        """Given a hunk that only removes, the set is empty."""
        # Given
        patch = "@@ -1,3 +1,2 @@\n a\n-b\n c"

        # When/Then
        assert parse_changed_lines(patch) == set()

    def test_second_hunk_counter_reset_by_its_header(self):
        """Given two hunks, the second counts from its own header."""
        # Given
        patch = (
            "@@ -1,2 +1,3 @@\n a\n+b\n c\n"
            "@@ -20,2 +21,3 @@\n x\n+y\n z"
        )

        # When
        changed = parse_changed_lines(patch)

        # Then
        assert changed == {2, 22}

    def test_file_headers_are_not_added_lines(self):
        """Given a patch with ---/+++ headers, they are not counted."""
        # Given
        patch = (
            "diff --git a/app.js b/app.js\n"
            "new file mode 100644\n"
            "--- /dev/null\n"
            "+++ b/app.js\n"
            "@@ -0,0 +1,2 @@\n"
            "+const a = 1;\n"
            "+const b = 2;"
        )

        # When/Then
        assert parse_changed_lines(patch) == {1, 2}

    def test_added_line_starting_with_increment(self):
        """Given an added line whose content starts with ++, it is still counted."""
        # Given
        patch = "@@ -1,1 +1,2 @@\n let i = 0;\n+++i;"

        # When/Then
        assert parse_changed_lines(patch) == {2}

    def test_empty_and_unparsable_patches(self):
        """Given empty or header-less text, the set is empty."""
        assert parse_changed_lines("") == set()
        assert parse_changed_lines(None) == set()
        assert parse_changed_lines("not a patch\n+looks added") == set()


class TestMultiFileDiff:
    """Tests for multi-file diffs."""

    DIFF = (
        "diff --git a/src/a.js b/src/a.js\n"
        "--- a/src/a.js\n"
        "+++ b/src/a.js\n"
        "@@ -1,2 +1,3 @@\n"
        " const a = 1;\n"
        "+const b = 2;\n"
        " export default a;\n"
        "diff --git a/src/old.js b/src/old.js\n"
        "deleted file mode 100644\n"
        "--- a/src/old.js\n"
        "+++ /dev/null\n"
        "@@ -1,1 +0,0 @@\n"
        "-gone();\n"
        "diff --git a/src/c.js b/src/c.js\n"
        "--- a/src/c.js\n"
        "+++ b/src/c.js\n"
        "@@ -10,1 +10,2 @@\n"
        " keep();\n"
        "+added();"
    )

    def test_parse_pr_diff_files_and_hunks(self):
        """Given three file sections, each becomes a FileDiff."""
        # When
        diffs = parse_pr_diff(self.DIFF)

        # Then
        assert [d.new_path for d in diffs] == ["src/a.js", "src/old.js", "src/c.js"]
        assert diffs[1].is_deleted is True
        assert diffs[2].hunks[0].new_start == 10

    def test_changed_lines_by_file_skips_deleted(self):
        """Given a deleted file, it has no entry."""
        # When
        by_file = changed_lines_by_file(self.DIFF)

        # Then
        assert by_file == {"src/a.js": {2}, "src/c.js": {11}}
