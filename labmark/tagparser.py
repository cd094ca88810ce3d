import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Union

from .errors import InvalidName

TAG_RE = re.compile(r"^\{\{(h1|h2|copy|exec|exec interrupt|img)\}\}\s*(.*)", re.IGNORECASE)
URL_PATTERN = r"\b(?:https?|ftp|file)://[-A-Z0-9+&@#/%?=~_|!:,.;]*[-A-Z0-9+&@#/%=~_|]"
# code spans and existing links are matched first and left as they are
LINKABLE_RE = re.compile(
    r"(?P<keep>(?P<ticks>`+).+?(?P=ticks)|\[[^\]]*\]\([^)]*\))|(?P<url>" + URL_PATTERN + ")",
    re.IGNORECASE,
)

FENCE = "````"
ASSET_PREFIX = "/assets/"

TEMPLATES = {
    "standardHeader": (
        "{{h1}} Page Title\n\n"
        "{{img}} Logo | Company Logo | /assets/logo.png\n\n"
        "* Introduction line 1.\n"
        "* Introduction line 2.\n\n"
        "{{h2}} Section 1\n\n"
        "* Point 1\n"
        "* Point 2"
    ),
    "codeExample": (
        "{{h2}} Code Example\n\n"
        "* Here is a command to run:\n"
        "{{exec}}\n"
        'echo "Hello KillerCoda!"\n\n'
        "* Here is some configuration to copy:\n"
        "{{copy}}\n"
        "[settings]\n"
        "user = admin\n"
        "mode = test"
    ),
}


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class ExecBlock:
    lines: tuple
    interrupt: bool = False


@dataclass(frozen=True)
class CopyBlock:
    lines: tuple


@dataclass(frozen=True)
class Image:
    alt: str
    title: str
    path: str


@dataclass(frozen=True)
class Bullet:
    text: str


@dataclass(frozen=True)
class Blank:
    pass


ParsedBlock = Union[Heading, ExecBlock, CopyBlock, Image, Bullet, Blank]


def link_urls(text: str) -> str:

    def link(m):
        if m.group("keep"):
            return m.group("keep")
        return f"[{m.group('url')}]({m.group('url')})"

    return LINKABLE_RE.sub(link, text)


def split_lines(text: str) -> list[str]:
    return text.replace("\r\n", "\n").split("\n")


def parse_image(content: str) -> Image:
    parts = [p.strip() for p in content.split("|")]
    alt = parts[0] or "image"
    title = parts[1] if len(parts) > 1 else ""
    path = parts[2] if len(parts) > 2 and parts[2] else content
    return Image(alt=alt, title=title, path=path)


def parse_lines(lines: list[str]) -> Iterator[ParsedBlock]:
    """Walk the raw lines once and yield one block per construct.

    Code blocks swallow every following line verbatim until a blank line,
    another tag line or the end of input. A code tag with nothing to hold
    yields nothing.
    """
    i = 0
    while i < len(lines):
        line = lines[i]
        match = TAG_RE.match(line)
        if match is None:
            yield Bullet(line.strip()) if line.strip() else Blank()
            i += 1
            continue

        tag = match.group(1).lower()
        content = match.group(2).strip()
        if tag in ("h1", "h2"):
            yield Heading(level=int(tag[1]), text=content)
            i += 1
        elif tag == "img":
            yield parse_image(content)
            i += 1
        else:
            block = [content] if content else []
            j = i + 1
            while j < len(lines) and lines[j].strip() and not TAG_RE.match(lines[j]):
                block.append(lines[j])
                j += 1
            if block:
                if tag == "copy":
                    yield CopyBlock(tuple(block))
                else:
                    yield ExecBlock(tuple(block), interrupt=tag == "exec interrupt")
            i = j


def render_block(block: ParsedBlock) -> str:
    if isinstance(block, Heading):
        return f"{'#' * block.level} {link_urls(block.text)}\n\n"
    if isinstance(block, ExecBlock):
        info = "bash interrupt" if block.interrupt else "bash"
        body = "\n".join(block.lines)
        return f"{FENCE}{info}\n{body}\n{FENCE}{{{{exec}}}}\n\n"
    if isinstance(block, CopyBlock):
        body = "\n".join(block.lines)
        return f"{FENCE}text\n{body}\n{FENCE}{{{{copy}}}}\n\n"
    if isinstance(block, Image):
        filename = block.path[block.path.rfind("/") + 1:]
        title = f' "{block.title}"' if block.title else ""
        return f"![{block.alt}]({ASSET_PREFIX}{filename}{title})\n\n"
    if isinstance(block, Bullet):
        return f"* {link_urls(block.text)}\n"
    if isinstance(block, Blank):
        return "\n"
    raise TypeError(f"Unknown block: {block!r}")


def render_blocks(blocks: Iterable[ParsedBlock]) -> str:
    return "".join(render_block(b) for b in blocks).strip()


def generate_markdown(text: str) -> str:
    return render_blocks(parse_lines(split_lines(text)))


def insert_template(text: str, name: str) -> str:
    template = TEMPLATES.get(name)
    if template is None:
        raise InvalidName(f"Unknown template: {name}")
    return template + "\n\n" + text
