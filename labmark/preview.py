import html as _html
import re

import markdown

EXTENSIONS = ["fenced_code", "tables", "toc", "sane_lists", "nl2br"]

BLOCK_OPEN = "\ue010"
BLOCK_CLOSE = "\ue011"

# ````bash interrupt\n...\n````{{exec}}
PLATFORM_FENCE_RE = re.compile(
    r"^(?P<fence>`{3,}|~{3,})(?P<info>[^\n`]*)\n(?P<body>(?:(?!\n(?P=fence)).)*?)\n(?P=fence)"
    r"\{\{(?P<kind>exec|copy)\}\}[ \t]*$",
    re.MULTILINE | re.DOTALL,
)
STASHED_RE = re.compile(
    r"(?:<p>)?" + BLOCK_OPEN + r"(\d+)" + BLOCK_CLOSE + r"(?:</p>)?"
)
FENCED_MARKER_RE = re.compile(
    r'<pre><code(?: class="language-[^"]*")?>(?P<code>.*?)</code></pre>\s*'
    r"<p>\{\{(?P<kind>exec|copy)(?P<interrupt> interrupt)?\}\}</p>",
    re.DOTALL,
)
INLINE_MARKER_RE = re.compile(
    r"<code>(?P<code>[^<]*)</code>\s*\{\{(?P<kind>exec|copy)(?P<interrupt> interrupt)?\}\}"
)
BLOCK_RE = re.compile(
    r'<div class="(?P<kind>exec|copy)-block"[^>]*><pre><code>(?P<code>.*?)</code></pre></div>'
    r'|<code class="(?P<ikind>exec|copy)-block"[^>]*>(?P<icode>[^<]*)</code>',
    re.DOTALL,
)


def styled_block(kind: str, code_html: str, interrupt: bool = False) -> str:
    flag = ' data-interrupt="true"' if interrupt else ""
    return f'<div class="{kind}-block"{flag}><pre><code>{code_html}</code></pre></div>'


def styled_inline(kind: str, code_html: str, interrupt: bool = False) -> str:
    flag = ' data-interrupt="true"' if interrupt else ""
    return f'<code class="{kind}-block"{flag}>{code_html}</code>'


def render_preview(text: str) -> str:
    """Render platform Markdown to HTML with exec/copy blocks styled.

    Platform fences are set aside before rendering so the code comes back
    byte for byte, tabs included. Whatever the renderer still leaves as a
    code span or block followed by an ``{{exec}}``/``{{copy}}`` marker is
    rewritten afterwards.
    """
    stashed = []

    def stash(m):
        info = m.group("info").split()
        interrupt = "interrupt" in info[1:]
        stashed.append(styled_block(m.group("kind"), _html.escape(m.group("body")), interrupt))
        return f"\n\n{BLOCK_OPEN}{len(stashed) - 1}{BLOCK_CLOSE}\n\n"

    text = PLATFORM_FENCE_RE.sub(stash, text)
    html = markdown.markdown(text, extensions=EXTENSIONS)
    html = STASHED_RE.sub(lambda m: stashed[int(m.group(1))], html)
    html = FENCED_MARKER_RE.sub(
        lambda m: styled_block(m.group("kind"), m.group("code").rstrip("\n"), bool(m.group("interrupt"))),
        html,
    )
    html = INLINE_MARKER_RE.sub(
        lambda m: styled_inline(m.group("kind"), m.group("code"), bool(m.group("interrupt"))),
        html,
    )
    html = re.sub(
        r'<a href="((?:https?|ftp)://[^"]+)"',
        r'<a href="\1" target="_blank" rel="noopener noreferrer"',
        html,
    )
    return html


def code_blocks(html: str) -> list[tuple[str, str]]:
    blocks = []
    for m in BLOCK_RE.finditer(html):
        if m.group("kind"):
            blocks.append((m.group("kind"), _html.unescape(m.group("code"))))
        else:
            blocks.append((m.group("ikind"), _html.unescape(m.group("icode"))))
    return blocks
