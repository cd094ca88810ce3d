import pytest

from labmark.errors import InvalidName
from labmark.tagparser import (
    Blank,
    Bullet,
    CopyBlock,
    ExecBlock,
    Heading,
    Image,
    generate_markdown,
    insert_template,
    link_urls,
    parse_lines,
)


class TestParseLines:

    def test_scenario_heading_exec_bullet(self):
        lines = ["{{h1}} Title", "", "{{exec}}", "ls -la", "", "next bullet"]
        assert list(parse_lines(lines)) == [
            Heading(1, "Title"),
            Blank(),
            ExecBlock(("ls -la",)),
            Blank(),
            Bullet("next bullet"),
        ]

    def test_tag_name_is_case_insensitive(self):
        assert list(parse_lines(["{{H2}}   Setup  "])) == [Heading(2, "Setup")]

    def test_block_stops_at_next_tag(self):
        blocks = list(parse_lines(["{{copy}} a=1", "b=2", "{{exec interrupt}}", "top"]))
        assert blocks == [CopyBlock(("a=1", "b=2")), ExecBlock(("top",), interrupt=True)]

    def test_block_lines_kept_verbatim(self):
        blocks = list(parse_lines(["{{exec}}", "  indented  ", "\ttabbed http://x.io"]))
        assert blocks == [ExecBlock(("  indented  ", "\ttabbed http://x.io"))]

    def test_empty_block_emits_nothing(self):
        assert list(parse_lines(["{{exec}}", "", "after"])) == [Blank(), Bullet("after")]
        assert list(parse_lines(["{{copy}}"])) == []

    def test_whitespace_only_line_ends_block(self):
        blocks = list(parse_lines(["{{exec}}", "one", "   ", "two"]))
        assert blocks == [ExecBlock(("one",)), Blank(), Bullet("two")]

    def test_unknown_tag_is_a_bullet(self):
        assert list(parse_lines(["{{h3}} nope"])) == [Bullet("{{h3}} nope")]

    def test_image_segments(self):
        assert list(parse_lines(["{{img}} Logo | Company | /assets/img/logo.png"])) == [
            Image("Logo", "Company", "/assets/img/logo.png")
        ]
        assert list(parse_lines(["{{img}} pics/cat.png"])) == [Image("pics/cat.png", "", "pics/cat.png")]
        assert list(parse_lines(["{{img}} | | x.png"])) == [Image("image", "", "x.png")]


class TestGenerateMarkdown:

    def test_scenario_output(self):
        text = "{{h1}} Title\n\n{{exec}}\nls -la\n\nnext bullet"
        assert generate_markdown(text) == (
            "# Title\n\n"
            "\n"
            "````bash\nls -la\n````{{exec}}\n\n"
            "\n"
            "* next bullet"
        )

    def test_copy_and_interrupt_blocks(self):
        assert generate_markdown("{{copy}}\nuser = admin") == "````text\nuser = admin\n````{{copy}}"
        assert generate_markdown("{{exec interrupt}} sleep 100") == (
            "````bash interrupt\nsleep 100\n````{{exec}}"
        )

    def test_image_with_and_without_title(self):
        assert generate_markdown("{{img}} Logo | Company Logo | /a/b/logo.png") == (
            '![Logo](/assets/logo.png "Company Logo")'
        )
        assert generate_markdown("{{img}} diagram.svg") == "![diagram.svg](/assets/diagram.svg)"

    def test_urls_linked_in_headings_and_bullets_only(self):
        text = "{{h2}} See https://killercoda.com\nread http://a.b/c?d=1 now\n{{exec}}\ncurl https://x.io"
        out = generate_markdown(text)
        assert "## See [https://killercoda.com](https://killercoda.com)" in out
        assert "* read [http://a.b/c?d=1](http://a.b/c?d=1) now" in out
        assert "curl https://x.io\n" in out
        assert "[https://x.io]" not in out

    def test_crlf_input(self):
        assert generate_markdown("{{exec}}\r\necho hi\r\n") == "````bash\necho hi\n````{{exec}}"

    def test_empty_input(self):
        assert generate_markdown("") == ""


def test_link_urls_trailing_punctuation_not_included():
    assert link_urls("go to ftp://host/file.txt.") == "go to [ftp://host/file.txt](ftp://host/file.txt)."


def test_insert_template_prepends():
    out = insert_template("existing", "codeExample")
    assert out.startswith("{{h2}} Code Example")
    assert out.endswith("\n\nexisting")
    with pytest.raises(InvalidName):
        insert_template("", "nope")


class TestLinkUrls:

    def test_code_spans_keep_urls(self):
        text = "Run `wget https://example.com/a.tar`{{exec}} or ``curl `x` http://b.io``"
        assert link_urls(text) == text

    def test_url_outside_code_still_linked(self):
        assert link_urls("`ls` then see https://x.io") == "`ls` then see [https://x.io](https://x.io)"

    def test_existing_links_untouched(self):
        text = "read [the docs](https://docs.example.com/start) first"
        assert link_urls(text) == text
        linked = link_urls("see https://x.io")
        assert link_urls(linked) == linked

    def test_bullet_with_inline_exec(self):
        assert generate_markdown("Run `wget https://example.com/a.tar`{{exec}}") == (
            "* Run `wget https://example.com/a.tar`{{exec}}"
        )
