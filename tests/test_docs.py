"""
Function documentation extraction from markdown passages.
"""

import pytest

from aoi_docs_server.retrieval.docs import (
    FunctionParameter,
    extract_function_metadata,
    normalize_function_name,
    relative_doc_path,
)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/home/bot/website/src/content/docs/functions/ban.md", "src/content/docs/functions/ban.md"),
        ("/repo/website/guides/intro.mdx", "guides/intro.mdx"),
        ("C:\\repo\\website\\guides\\intro.md", "guides/intro.md"),
        ("/tmp/src/content/docs/functions/kick.md", "/src/content/docs/functions/kick.md"),
        ("/somewhere/else/notes.md", "notes.md"),
        ("", ""),
        (None, ""),
    ],
)
def test_relative_doc_path(path, expected):
    """Verify paths are reduced to their documentation-relative form."""
    assert relative_doc_path(path) == expected


@pytest.mark.parametrize(
    "name, expected",
    [("$SendMessage", "sendmessage"), ("  ban ", "ban"), ("$", ""), (None, "")],
)
def test_normalize_function_name(name, expected):
    """Verify function names lose the sigil, whitespace and case."""
    assert normalize_function_name(name) == expected


class TestExtractFunctionMetadata:
    """Tests for markdown function metadata extraction."""

    def test_frontmatter_description(self, make_passage):
        """Verify the description is read from frontmatter."""
        content = '---\ntitle: $ping\ndescription: "Returns the bot latency."\n---\nUse $ping to check.'
        doc = extract_function_metadata("ping", [make_passage(content, [1.0])])

        assert doc.function == "$ping"
        assert doc.description == "Returns the bot latency."
        assert doc.syntax is None
        assert doc.confidence == 0.0

    def test_parameters_from_syntax_brackets(self, make_passage):
        """Verify parameters are derived from the syntax line."""
        content = "$ban[userId;reason]\nBans a member from the guild.\n\nMore text."
        doc = extract_function_metadata("ban", [make_passage(content, [1.0])])

        assert doc.syntax == "$ban[userId;reason]"
        assert doc.description == "Bans a member from the guild."
        assert doc.parameters == [FunctionParameter(name="userId"), FunctionParameter(name="reason")]
        assert doc.needs_parameter_details

    def test_syntax_heading_line(self, make_passage):
        """Verify syntax is read from under a Syntax heading."""
        content = "## Syntax\n\n```\n$random\n```"
        doc = extract_function_metadata("random", [make_passage(content, [1.0])])

        assert doc.syntax == "$random"

    def test_bullet_parameters(self, make_passage):
        """Verify bulleted parameter lists are parsed."""
        content = (
            "$kick[userId;reason]\n\n"
            "## Parameters\n"
            "- userId: Member to kick\n"
            "* reason - Audit log reason\n"
            "## Returns\nnothing"
        )
        doc = extract_function_metadata("kick", [make_passage(content, [1.0])])

        assert [(p.name, p.description) for p in doc.parameters] == [
            ("userId", "Member to kick"),
            ("reason", "Audit log reason"),
        ]
        assert not doc.needs_parameter_details

    def test_table_without_header_uses_default_columns(self, make_passage):
        """Verify a headerless parameter table uses the default columns."""
        content = "## Parameters\n| `amount` | number | How many<br>items | yes |"
        doc = extract_function_metadata("clear", [make_passage(content, [1.0])])

        [param] = doc.parameters
        assert param.name == "amount"
        assert param.type == "number"
        assert param.description == "How many items"
        assert param.required is True

    def test_examples_capped_at_three(self, make_passage):
        """Verify at most three examples are kept."""
        blocks = "\n".join(f"```js\n$log[{i}]\n```" for i in range(5))
        passage = make_passage(f"## Examples\n{blocks}", [1.0], section_title="Examples")

        doc = extract_function_metadata("log", [passage])

        assert doc.examples == ["$log[0]", "$log[1]", "$log[2]"]

    def test_examples_found_in_combined_text(self, make_passage):
        """Verify examples are found across passages."""
        usage = make_passage("$sum[1;2]\nAdds numbers.", [1.0], section_title="Usage")
        example = make_passage("### Example\n```\n$sum[4;5]\n```", [1.0], section_title="Notes")

        doc = extract_function_metadata("sum", [usage, example])

        assert doc.examples == ["$sum[4;5]"]

    def test_sources_deduplicated_in_order(self, make_passage):
        """Verify sources are deduplicated in first-seen order."""
        passages = [
            make_passage("$a[x] one", [1.0], source_path="/r/website/functions/a.md"),
            make_passage("two", [1.0], source_path="/r/website/functions/b.md"),
            make_passage("three", [1.0], source_path="/r/website/functions/a.md"),
        ]

        doc = extract_function_metadata("a", passages)

        assert doc.sources == ["functions/a.md", "functions/b.md"]

    def test_no_matching_content(self, make_passage):
        """Verify unrelated content yields empty metadata."""
        doc = extract_function_metadata("nothing", [make_passage("unrelated text", [1.0])])

        assert doc.syntax is None
        assert doc.description is None
        assert doc.parameters is None
        assert doc.examples == []
