"""
命名工具 — 圖層名稱 → 元件名稱 / 檔名 / 識別字

Code identifiers are always PascalCase; the naming convention only decides
the reported component name and the artifact file names.
"""

import re
from typing import List

from .models import NamingConvention, SceneNode

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")


def split_words(s: str) -> List[str]:
    s = re.sub(r"[^a-zA-Z0-9]", " ", s or "")
    words = []
    for chunk in s.split():
        words.extend(_WORD_RE.findall(chunk))
    return words


def to_pascal_case(s: str) -> str:
    return "".join(w[:1].upper() + w[1:].lower() for w in split_words(s))


def to_camel_case(s: str) -> str:
    pascal = to_pascal_case(s)
    return pascal[:1].lower() + pascal[1:]


def to_kebab_case(s: str) -> str:
    return "-".join(w.lower() for w in split_words(s))


def identifier(name: str, fallback: str = "Component") -> str:
    """PascalCase identifier that is safe to use as a class / function name."""
    ident = to_pascal_case(name)
    if not ident:
        return fallback
    if ident[0].isdigit():
        return fallback + ident
    return ident


def apply_convention(name: str, convention: NamingConvention) -> str:
    if convention == NamingConvention.CAMEL:
        return to_camel_case(identifier(name))
    if convention == NamingConvention.KEBAB:
        return to_kebab_case(identifier(name))
    return identifier(name)


def preview_naming_tree(node: SceneNode, indent: int = 0) -> str:
    """除錯用：印出正規化後的命名樹."""
    lines = []
    stack = [(node, indent)]
    while stack:
        current, level = stack.pop()
        label = f"{'  ' * level}├─ {current.name}  [{current.kind.value}]"
        if current.custom_name:
            label += f"  alias={current.custom_name!r}"
        if current.component_id:
            label += f"  <{current.component_id}>"
        if not current.visible:
            label += "  (hidden)"
        lines.append(label)
        for child in reversed(current.children):
            stack.append((child, level + 1))
    return "\n".join(lines)
