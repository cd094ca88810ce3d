import re
from typing import Optional

from . import pathkey
from .tagparser import TAG_RE, split_lines

MARKDOWN_EXTENSIONS = {".md", ".markdown"}
PLAIN_EXTENSIONS = {".sh", ".json"}

FENCED_RE = re.compile(r"^(`{3,}|~{3,})[^\n]*\n.*?^\1[^\n]*$", re.MULTILINE | re.DOTALL)
INLINE_CODE_RE = re.compile(r"(?<!`)(`+)(?!`)(.+?)(?<!`)\1(?!`)")
PH_OPEN = "\ue000"
PH_CLOSE = "\ue001"
PLACEHOLDER_RE = re.compile(PH_OPEN + r"(\d+)" + PH_CLOSE)
LIST_MARKER_RE = re.compile(r"^\s*(?:[-+*]|\d+[.)])\s", re.MULTILINE)

HEADING_RE = re.compile(r"^[A-Z][A-Za-z0-9 ,'()/&-]*[A-Za-z0-9)]$")
HEADING_MAX_CHARS = 60
HEADING_MAX_WORDS = 8
EXEC_RE = re.compile(r"^[$>]\s*(\S.*)$")
COPY_RE = re.compile(r"^(?: {4}|\t)\s*(\S.*)$")


def is_markdown(text: str, filename: Optional[str] = None) -> bool:
    ext = pathkey.extension(filename) if filename else ""
    if ext in MARKDOWN_EXTENSIONS:
        return True
    if ext in PLAIN_EXTENSIONS:
        return False
    return (
        "#" in text
        or "```" in text
        or "*" in text
        or "[" in text
        or "|" in text
        or LIST_MARKER_RE.search(text) is not None
    )


def _inline_code(text: str) -> str:
    if "`" in text:
        return f"`` {text} ``"
    return f"`{text}`"


class _Vault:
    """Swap code spans out for opaque tokens and put them back later."""

    def __init__(self):
        self.spans: list[str] = []

    def _stash(self, match) -> str:
        self.spans.append(match.group(0))
        return f"{PH_OPEN}{len(self.spans) - 1}{PH_CLOSE}"

    def protect(self, text: str) -> str:
        text = FENCED_RE.sub(self._stash, text)
        return INLINE_CODE_RE.sub(self._stash, text)

    def restore(self, text: str) -> str:
        return PLACEHOLDER_RE.sub(lambda m: self.spans[int(m.group(1))], text)


def as_heading(line: str) -> Optional[str]:
    stripped = line.strip()
    if line[:1].isspace() or len(stripped) > HEADING_MAX_CHARS:
        return None
    if len(stripped.split()) > HEADING_MAX_WORDS or not HEADING_RE.match(stripped):
        return None
    return f"{{{{h1}}}} {stripped}"


def as_exec(line: str) -> Optional[str]:
    match = EXEC_RE.match(line)
    if match is None:
        return None
    return _inline_code(match.group(1).rstrip()) + "{{exec}}"


def as_copy(line: str) -> Optional[str]:
    match = COPY_RE.match(line)
    if match is None:
        return None
    return _inline_code(match.group(1).rstrip()) + "{{copy}}"


def _apply(lines: list[str], rule) -> list[str]:
    out = []
    in_block = False
    for line in lines:
        tag = TAG_RE.match(line)
        if tag is not None:
            in_block = tag.group(1).lower() not in ("h1", "h2", "img")
            out.append(line)
            continue
        if not line.strip():
            in_block = False
            out.append(line)
            continue
        if in_block or PLACEHOLDER_RE.search(line):
            out.append(line)
            continue
        replaced = rule(line)
        out.append(line if replaced is None else replaced)
    return out


def detect(text: str) -> str:
    """Guess tags for unmarked lines.

    Fenced blocks and inline code are set aside first and restored at the
    end. The rules run in order, each over the previous one's output:
    short capitalized lines become ``{{h1}}`` headings, ``$``/``>`` prompts
    become inline exec snippets, indented lines become inline copy snippets.
    Lines already tagged, lines holding code, and the bodies of code tags are
    left as they are.
    """
    vault = _Vault()
    lines = split_lines(vault.protect(text))
    for rule in (as_heading, as_exec, as_copy):
        lines = _apply(lines, rule)
    return vault.restore("\n".join(lines))


def auto_detect(text: str, filename: Optional[str] = None) -> str:
    if not is_markdown(text, filename):
        return text
    return detect(text)
