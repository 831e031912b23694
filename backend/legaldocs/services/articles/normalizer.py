"""Text normalization before article segmentation.

Review note:
- 输入是外部抽取好的纯文本（OCR/PDF 之后），这里只做空白清理和结构关键字归一。
- 关键字按行处理：只有出现在行首时才会被改写成固定大写形式，正文中间的词不动。
- 对已归一的文本再次归一是无操作（幂等）。
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple
import re


_ACCENTS = {
    "A": "AÁ",
    "E": "EÉ",
    "I": "IÍ",
    "O": "OÓ",
    "U": "UÚ",
}


def _spaced(word: str) -> str:
    """Pattern matching `word` case/accent-insensitively, tolerating spaces between letters."""
    parts = []
    for ch in word.upper():
        variants = _ACCENTS.get(ch, ch)
        parts.append(f"[{variants}]" if len(variants) > 1 else re.escape(ch))
    return r"\s*".join(parts)


# 编号、罗马数字或单个字母后缀：ANEXO 1、ANEXO 2B、TRANSITORIO III、APÉNDICE A
_ROMAN = r"(?=[IVXLCDM])M{0,3}(?:CM|CD|D?C{0,3})(?:XC|XL|L?X{0,3})(?:IX|IV|V?I{0,3})"
_SUFFIX = r"(?:\s*\b(?P<suffix>\d+[A-Z]*|" + _ROMAN + r"|[A-Z])\b)?"
_REST = r"(?P<rest>.*)$"
_UPPER_ROMAN = re.compile(_ROMAN)

_TRANSITORY = _spaced("TRANSITORI") + r"\s*[OA](?:\s*S)?\b"
_ANNEX = _spaced("ANEXO") + r"\b"
_APPENDIX = _spaced("APENDICE") + r"\b"

_HEADED_KEYWORDS: List[Tuple[str, re.Pattern]] = [
    ("TRANSITORIO", re.compile(r"^" + _TRANSITORY + _SUFFIX + _REST, re.IGNORECASE)),
    ("ANEXO", re.compile(r"^" + _ANNEX + _SUFFIX + _REST, re.IGNORECASE)),
    ("APÉNDICE", re.compile(r"^" + _APPENDIX + _SUFFIX + _REST, re.IGNORECASE)),
]

# "ARTÍCULOS TRANSITORIOS" / "DISPOSICIONES TRANSITORIAS" 整行才算
_QUALIFIED_TRANSITORY = re.compile(
    r"^(?:[^\W\d_]+\s+){1,3}" + _TRANSITORY + _SUFFIX + r"\s*[.:]?\s*$",
    re.IGNORECASE,
)

_STANDALONE_KEYWORDS: List[Tuple[str, re.Pattern]] = [
    (token, re.compile(r"^" + _spaced(plain) + r"\s*[.:]?\s*$", re.IGNORECASE))
    for token, plain in [
        ("PREFACIO", "PREFACIO"),
        ("CONSIDERANDO", "CONSIDERANDO"),
        ("CONTENIDO", "CONTENIDO"),
        ("ÍNDICE", "INDICE"),
    ]
]

_HEADING_REST_PUNCT = (".", ":", "-", "–", "—", ",", ";")


def _with_suffix(token: str, suffix: Optional[str]) -> str:
    return f"{token} {suffix.upper()}" if suffix else token


def _free_suffix(suffix: str) -> bool:
    # 数字和大写罗马数字后面可以跟任意标题文字；小写罗马数字和单个字母必须单独成立
    return suffix[0].isdigit() or bool(_UPPER_ROMAN.fullmatch(suffix))


def _rest_is_heading_like(rest: str) -> bool:
    # 没有后缀时余下部分只能是标点开头或全大写描述（ANEXO NORMATIVO）
    if not rest or rest.startswith(_HEADING_REST_PUNCT):
        return True
    letters = [ch for ch in rest if ch.isalpha()]
    return bool(letters) and all(ch.isupper() for ch in letters)


def _split_heading(line: str) -> Optional[Tuple[str, str]]:
    """Return (canonical head, title text) for a heading line, None for prose."""
    for token, pattern in _STANDALONE_KEYWORDS:
        if pattern.match(line):
            return token, ""

    match = _QUALIFIED_TRANSITORY.match(line)
    if match:
        return _with_suffix("TRANSITORIO", match.group("suffix")), ""

    for token, pattern in _HEADED_KEYWORDS:
        match = pattern.match(line)
        if not match:
            continue
        suffix = match.group("suffix")
        rest = (match.group("rest") or "").strip()
        if suffix:
            if _free_suffix(suffix) or not rest or rest.startswith(_HEADING_REST_PUNCT):
                return _with_suffix(token, suffix), rest
            # "anexo a la norma"：字母不算后缀，并回余下部分重新判断
            rest = line[match.start("suffix"):].strip()
        if _rest_is_heading_like(rest):
            return token, rest
        return None

    return None


def _join_heading(head: str, rest: str) -> str:
    if not rest:
        return head
    if rest[0] in ".:,;":
        return f"{head}{rest}"
    return f"{head} {rest}"


def canonicalize_keyword_line(line: str) -> str:
    """Rewrite one stripped line whose leading keyword is a structural heading."""
    if not line:
        return line
    parts = _split_heading(line)
    return _join_heading(*parts) if parts else line


def structural_heading(line: str) -> Optional[str]:
    """Canonical head (token plus suffix) of a line already in normalized heading form."""
    parts = _split_heading(line) if line else None
    if parts and _join_heading(*parts) == line:
        return parts[0]
    return None


_WHITESPACE_STEPS: List[Tuple[str, Callable[[str], str]]] = [
    ("line_terminators", lambda s: s.replace("\r\n", "\n").replace("\r", "\n")),
    ("tabs", lambda s: re.sub(r"\t+", " ", s)),
    ("spaces", lambda s: re.sub(r" {2,}", " ", s)),
    # NBSP、\f 等只含空白的行也算空行
    ("trailing", lambda s: re.sub(r"[^\S\n]+\n", "\n", s)),
    ("blank_lines", lambda s: re.sub(r"\n(?:[^\S\n]*\n){2,}", "\n\n", s)),
]


def normalize_lines(raw: str) -> List[str]:
    """Return the normalized text as a list of lines."""
    text = raw or ""
    for _, step in _WHITESPACE_STEPS:
        text = step(text)
    lines = [canonicalize_keyword_line(line.strip()) for line in text.strip().split("\n")]
    return lines if any(lines) else []


def normalize_text(raw: str) -> str:
    """
    Canonicalize whitespace and structural keywords:
    - unify line terminators, drop tabs, collapse spaces and blank-line runs
    - rewrite TRANSITORIO / ANEXO / APÉNDICE / PREFACIO / CONSIDERANDO /
      CONTENIDO / ÍNDICE headings to fixed uppercase tokens
    """
    return "\n".join(normalize_lines(raw))
