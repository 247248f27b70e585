"""
Unit tests for suggestion and correction generation.
"""

from persuader.models.errors import SchemaIssue
from persuader.validation.suggestions import (
    GENERAL_SUGGESTIONS,
    correction_for_issue,
    find_closest_matches,
    generate_field_corrections,
    generate_validation_suggestions,
    levenshtein_distance,
    suggestion_for_issue,
)


class TestSuggestionForIssue:
    """Test one suggestion per issue kind."""

    def test_invalid_type(self):
        """Test type mismatch wording."""
        issue = SchemaIssue("invalid_type", ("age",), "bad", expected="integer", received="string")

        assert suggestion_for_issue(issue) == (
            'Field "age": Expected integer, but got string. '
            "Please ensure this field contains the correct data type."
        )

    def test_missing(self):
        """Test missing field wording."""
        issue = SchemaIssue("missing", ("user", "email"), "Field required")

        assert suggestion_for_issue(issue) == (
            'Field "user.email" is required but missing. Please include it with a valid value.'
        )

    def test_size_bounds(self):
        """Test string and array size bounds."""
        short = SchemaIssue("too_small", ("name",), "x", kind="string", minimum=3)
        many = SchemaIssue("too_big", ("tags",), "x", kind="array", maximum=5)

        assert suggestion_for_issue(short) == 'Field "name": String is too short. Minimum length is 3.'
        assert suggestion_for_issue(many) == 'Field "tags": Array has too many items. Maximum length is 5.'

    def test_enum_with_close_match(self):
        """Test that a near-miss enum value gets a did-you-mean hint."""
        issue = SchemaIssue(
            "invalid_enum", ("color",), "x", options=("red", "green", "blue"), received_value="gren"
        )

        suggestion = suggestion_for_issue(issue)

        assert 'Invalid value "gren". Did you mean: "green"' in suggestion
        assert 'Valid options: "red", "green", "blue".' in suggestion

    def test_enum_without_close_match(self):
        """Test enum wording when nothing is similar."""
        issue = SchemaIssue("invalid_enum", ("color",), "x", options=("red",), received_value="zzzzzz")

        assert suggestion_for_issue(issue) == 'Field "color": Must be one of: "red".'

    def test_unrecognized_keys(self):
        """Test extra keys wording."""
        issue = SchemaIssue("unrecognized_keys", (), "x", keys=("nickname", "alias"))

        assert suggestion_for_issue(issue).startswith("Unexpected fields found: nickname, alias.")

    def test_string_format(self):
        """Test string format hints."""
        issue = SchemaIssue("invalid_string", ("email",), "x", validation="email")

        assert suggestion_for_issue(issue) == 'Field "email": Must be a valid email address.'

    def test_unknown_code_falls_back_to_message(self):
        """Test the fallback for codes without special wording."""
        issue = SchemaIssue("multipleOf", ("count",), "3 is not a multiple of 2")

        assert suggestion_for_issue(issue) == 'Field "count": 3 is not a multiple of 2'


class TestGenerateValidationSuggestions:
    """Test the suggestion list."""

    def test_no_issues_no_suggestions(self):
        """Test that an empty issue list produces nothing."""
        assert generate_validation_suggestions([]) == []

    def test_general_suggestions_are_appended(self):
        """Test that the three general suggestions close the list."""
        issue = SchemaIssue("missing", ("age",), "Field required")

        suggestions = generate_validation_suggestions([issue, issue])

        assert len(suggestions) == 1 + len(GENERAL_SUGGESTIONS)
        assert suggestions[-3:] == list(GENERAL_SUGGESTIONS)


class TestFieldCorrections:
    """Test the path -> correction map."""

    def test_corrections_by_kind(self):
        """Test imperative corrections."""
        assert correction_for_issue(
            SchemaIssue("invalid_type", ("age",), "x", expected="integer", received="string")
        ) == "Change from string to integer"
        assert correction_for_issue(SchemaIssue("missing", ("age",), "x")) == 'Add the required field "age"'
        assert correction_for_issue(
            SchemaIssue("too_small", ("n",), "x", kind="number", minimum=1.0)
        ) == "Increase value to at least 1"
        assert correction_for_issue(
            SchemaIssue("invalid_enum", ("c",), "x", options=("red", "green"), received_value="gren")
        ) == 'Replace "gren" with "green"'

    def test_same_path_is_joined(self):
        """Test that corrections on one path are joined with a semicolon."""
        issues = [
            SchemaIssue("too_small", ("name",), "x", kind="string", minimum=3),
            SchemaIssue("invalid_string", ("name",), "must match pattern", validation="regex"),
        ]

        corrections = generate_field_corrections(issues)

        assert corrections == {
            "name": "Increase text length to at least 3 characters; must match pattern"
        }


class TestSimilarity:
    """Test edit distance and fuzzy matching."""

    def test_levenshtein_distance(self):
        """Test known distances."""
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_closest_matches_are_ranked(self):
        """Test that matches are case-insensitive, ranked and limited."""
        matches = find_closest_matches("GREN", ["green", "grey", "blue", "red"], limit=2)

        assert matches[0] == "green"
        assert len(matches) <= 2
        assert "blue" not in matches
