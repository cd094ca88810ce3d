from labmark.convert import convert_file, preview_file, treated_as_markdown


def test_markdown_files_are_converted():
    assert convert_file("step1/text.md", "{{h2}} Go\nrun it") == "## Go\n\n* run it"


def test_scripts_and_data_pass_through():
    script = "#!/bin/bash\n\n{{h1}} not a heading\n"
    assert convert_file("setup.sh", script, auto_detect_enabled=True) == script
    assert convert_file("index.json", '{"title": "x"}') == '{"title": "x"}'


def test_only_scripts_and_data_are_plain():
    assert treated_as_markdown("notes.txt")
    assert treated_as_markdown("README")
    assert not treated_as_markdown("step1/verify.sh")


def test_tagged_text_file_is_converted():
    assert convert_file("notes.txt", "{{h1}} Title\n{{exec}}\nls -la") == (
        "# Title\n\n````bash\nls -la\n````{{exec}}"
    )
    assert convert_file("README", "{{copy}} a=1") == "````text\na=1\n````{{copy}}"


def test_sniff_only_gates_auto_detect():
    text = "Install Docker\n$ docker ps"
    assert convert_file("notes.txt", text, auto_detect_enabled=True) == (
        "* Install Docker\n* $ docker ps"
    )


def test_auto_detect_runs_before_tag_parsing():
    text = "Install Docker\n\n$ docker ps"
    assert convert_file("intro.md", text) == "* Install Docker\n\n* $ docker ps"
    assert convert_file("intro.md", text, auto_detect_enabled=True) == (
        "# Install Docker\n\n\n* `docker ps`{{exec}}"
    )


def test_detected_command_keeps_its_url():
    out = convert_file("step1/text.md", "$ curl https://example.com/install.sh", auto_detect_enabled=True)
    assert out == "* `curl https://example.com/install.sh`{{exec}}"
    html = preview_file("step1/text.md", "$ curl https://example.com/install.sh", auto_detect_enabled=True)
    assert '<code class="exec-block">curl https://example.com/install.sh</code>' in html


def test_preview_of_script_is_a_code_block():
    html = preview_file("verify.sh", "test -f /tmp/done")
    assert "<pre><code>test -f /tmp/done" in html
