"""Tests for helpspec.client.prompts."""

from __future__ import annotations

from helpspec.client.prompts import (
    build_context,
    metadata_question,
    option_question,
    positional_names_question,
    positional_question,
)
from helpspec.parser.docs import Documentation, command_key


class TestBuildContext:
    def test_includes_identity_help_and_manpage(self) -> None:
        context = build_context(command_key("git", ["commit"]), Documentation("HELP BODY", "MAN BODY"))
        assert context.startswith("COMMAND: git commit\n\n")
        assert "HELP TEXT:\nHELP BODY" in context
        assert context.endswith("MANPAGE:\nMAN BODY")

    def test_manpage_section_omitted_when_empty(self) -> None:
        context = build_context("ls", Documentation("HELP BODY"))
        assert "MANPAGE" not in context

    def test_same_inputs_same_blob(self) -> None:
        doc = Documentation("h", "m")
        assert build_context("ls", doc) == build_context("ls", doc)


class TestQuestions:
    def test_colon_in_subcommand_kept_verbatim(self) -> None:
        question = metadata_question(command_key("npm", ["run", "build:prod"]))
        assert question.startswith("Summarize the command npm run build:prod described above.")

    def test_option_question_names_every_spelling(self) -> None:
        question = option_question("tar", ["-x", "--extract", "--get"])
        assert "OPTION: -x, --extract, --get" in question
        assert "COMMAND: tar" in question

    def test_positional_question_names_argument(self) -> None:
        assert "ARGUMENT: FILE" in positional_question("cat", "FILE")

    def test_metadata_and_names_questions_ask_for_json(self) -> None:
        for question in (metadata_question("rm"), positional_names_question("rm")):
            assert "rm" in question
            assert question.rstrip().endswith("Respond with only JSON, no other text.")
