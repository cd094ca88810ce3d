from . import pathkey
from .autodetect import PLAIN_EXTENSIONS, auto_detect
from .preview import render_preview
from .tagparser import generate_markdown


def treated_as_markdown(path: str) -> bool:
    return pathkey.extension(path) not in PLAIN_EXTENSIONS


def convert_file(path: str, content: str, auto_detect_enabled: bool = False) -> str:
    """Platform Markdown for a lab file; scripts and data pass through."""
    if not treated_as_markdown(path):
        return content
    if auto_detect_enabled:
        # auto_detect sniffs the content itself and skips plain text
        content = auto_detect(content, path)
    return generate_markdown(content)


def convert_text(text: str, auto_detect_enabled: bool = False) -> str:
    if auto_detect_enabled:
        text = auto_detect(text)
    return generate_markdown(text)


def preview_file(path: str, content: str, auto_detect_enabled: bool = False) -> str:
    if not treated_as_markdown(path):
        return render_preview(f"````\n{content}\n````")
    return render_preview(convert_file(path, content, auto_detect_enabled))
