from labmark.autodetect import auto_detect, detect, is_markdown


class TestIsMarkdown:

    def test_extension_decides(self):
        assert is_markdown("plain words", "intro.md")
        assert not is_markdown("# looks like markdown", "setup.sh")
        assert not is_markdown("[1, 2]", "index.json")

    def test_sniffing_without_decisive_extension(self):
        assert is_markdown("# Heading")
        assert is_markdown("```\ncode\n```", "notes.txt")
        assert is_markdown("- item")
        assert is_markdown("1. first")
        assert is_markdown("a | b")
        assert not is_markdown("Just words here\nand more words")


class TestDetect:

    def test_heuristics(self):
        text = "Install Docker\n\n$ docker ps\n> kubectl get pods\n    cat /etc/hosts\n\tuname -a"
        assert detect(text) == (
            "{{h1}} Install Docker\n\n"
            "`docker ps`{{exec}}\n"
            "`kubectl get pods`{{exec}}\n"
            "`cat /etc/hosts`{{copy}}\n"
            "`uname -a`{{copy}}"
        )

    def test_long_or_punctuated_lines_are_not_headings(self):
        text = "This sentence ends with a period.\nlowercase start\nOne two three four five six seven eight nine"
        assert detect(text) == text

    def test_code_spans_are_protected(self):
        text = "```\nSome Title\n$ echo hi\n    indented\n```\nRun `$ not a prompt` here"
        assert detect(text) == text

    def test_tag_block_bodies_are_left_alone(self):
        text = "{{exec}}\n$ echo hi\n    indented\n\n$ after"
        assert detect(text) == "{{exec}}\n$ echo hi\n    indented\n\n`after`{{exec}}"

    def test_lines_with_inline_code_are_left_alone(self):
        assert detect("$ echo `date`") == "$ echo `date`"

    def test_stray_backtick_in_command(self):
        assert detect("$ echo it`s") == "`` echo it`s ``{{exec}}"

    def test_idempotent(self):
        text = "Getting Started\n\n$ ls -la\n    key: value\n$ echo it`s\n\n{{h2}} Next"
        once = detect(text)
        assert detect(once) == once
        assert once.count("{{exec}}") == 2
        assert once.count("{{h1}}") == 1


def test_auto_detect_skips_plain_text():
    text = "Install Docker\n$ docker ps"
    assert auto_detect(text) == text
    assert auto_detect(text, "step1/text.md") == "{{h1}} Install Docker\n`docker ps`{{exec}}"
    assert auto_detect(text, "setup.sh") == text
