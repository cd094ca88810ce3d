SEP = "/"


def split(path: str) -> list[str]:
    return [p for p in path.split(SEP) if p]


def join(*parts: str) -> str:
    segments = []
    for part in parts:
        segments.extend(split(part))
    return SEP.join(segments)


def normalize(path: str) -> str:
    """Clean a user-typed path into a store key.

    Backslashes count as separators, empty segments are dropped. Returns an
    empty string for anything that would climb out of the root.
    """
    parts = split(path.replace("\\", SEP).strip())
    if any(p in (".", "..") for p in parts):
        return ""
    return SEP.join(parts)


def parent(path: str) -> str:
    return SEP.join(split(path)[:-1])


def basename(path: str) -> str:
    parts = split(path)
    return parts[-1] if parts else ""


def extension(name: str) -> str:
    name = basename(name)
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot:].lower()


def is_ancestor(ancestor: str, path: str) -> bool:
    # "step1" must not claim "step10/text.md"
    return bool(ancestor) and path.startswith(ancestor + SEP)


def is_same_or_descendant(path: str, root: str) -> bool:
    return path == root or is_ancestor(root, path)


def rebase(path: str, old_root: str, new_root: str) -> str:
    """Move ``path`` from under ``old_root`` to under ``new_root``.

    Works on segment lists, so rebasing ``a`` onto ``ab`` leaves ``abc``
    untouched. Paths outside ``old_root`` come back unchanged.
    """
    parts = split(path)
    old = split(old_root)
    if parts[:len(old)] != old:
        return path
    return SEP.join(split(new_root) + parts[len(old):])
