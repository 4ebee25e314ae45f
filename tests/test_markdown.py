from tcg_cardgen.render.markdown import Line, LineKind, Run, parse_inline, parse_markdown


class TestParseInline:
    def test_three_styles_interleaved_with_plain_text(self) -> None:
        runs = parse_inline("***x*** and **y** and *z*")

        assert runs == [
            Run("x", bold=True, italic=True),
            Run(" and "),
            Run("y", bold=True),
            Run(" and "),
            Run("z", italic=True),
        ]

    def test_unterminated_marker_is_literal(self) -> None:
        assert parse_inline("**open") == [Run("**open")]

    def test_unterminated_marker_after_styled_run(self) -> None:
        assert parse_inline("*a* then **open") == [Run("a", italic=True), Run(" then **open")]

    def test_plain_text(self) -> None:
        assert parse_inline("nothing special") == [Run("nothing special")]

    def test_empty_text(self) -> None:
        assert parse_inline("") == []

    def test_start_offset(self) -> None:
        assert parse_inline("skip **me**", start=5) == [Run("me", bold=True)]

    def test_nested_markers_are_not_composed(self) -> None:
        runs = parse_inline("**bold *inner* text**")

        assert runs[0] == Run("bold *inner* text", bold=True)

    def test_falls_back_to_shorter_marker_that_closes(self) -> None:
        assert parse_inline("***x** y") == [Run("*x", bold=True), Run(" y")]


class TestParseMarkdown:
    def test_line_kinds(self) -> None:
        lines = parse_markdown("# Title\nplain **bold**\n\n---\n### Small")

        assert [line.kind for line in lines] == [
            LineKind.HEADER,
            LineKind.NORMAL,
            LineKind.NORMAL,
            LineKind.HR,
            LineKind.HEADER,
        ]
        assert lines[0].level == 1
        assert lines[0].runs == (Run("Title"),)
        assert lines[1].runs == (Run("plain "), Run("bold", bold=True))
        assert lines[2] == Line()
        assert lines[4].level == 3

    def test_lines_are_trimmed(self) -> None:
        lines = parse_markdown("   indented   ")

        assert lines[0].text == "indented"

    def test_header_needs_space_and_at_most_six_hashes(self) -> None:
        lines = parse_markdown("#tag\n####### seven\n###### six")

        assert lines[0].kind == LineKind.NORMAL
        assert lines[0].text == "#tag"
        assert lines[1].kind == LineKind.NORMAL
        assert lines[2].kind == LineKind.HEADER
        assert lines[2].level == 6

    def test_rule_variants(self) -> None:
        lines = parse_markdown("***\n-----")

        assert all(line.kind == LineKind.HR for line in lines)
        assert all(line.runs == () for line in lines)

    def test_header_keeps_inline_formatting(self) -> None:
        line = parse_markdown("## A *quiet* title")[0]

        assert line.runs == (Run("A "), Run("quiet", italic=True), Run(" title"))
