"""Split normalized legal text into ordered article records.

Review note:
- 纯函数：每次调用自带状态，不读写任何外部资源，也不会抛异常。
- 编号标题（6.1、6.2 …）按根编号（"6"）合并成一条；结构标题（ANEXO、TRANSITORIO …）总是单独成条。
- 第一个标题之前的正文（封面、序言文字）会被丢弃。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional
import re

from legaldocs.services.articles.normalizer import normalize_lines, structural_heading


_NUMERAL_HEADING = re.compile(r"^(\d+(?:\.\d+)*)\.?\s+(\S.*)$")


@dataclass(frozen=True)
class ArticleRecord:
    title: str
    body: str
    plain_body: str
    order: int

    def to_payload(self) -> Dict[str, object]:
        return {
            "title": self.title,
            "article": self.body,
            "plainArticle": self.plain_body,
            "order": self.order,
        }


class LineKind(str, Enum):
    NUMERAL = "numeral"
    SECTION = "section"
    BODY = "body"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    text: str
    key: Optional[str] = None


def classify_line(line: str) -> ClassifiedLine:
    """Decide whether a normalized line is a numeral heading, a section heading or body text."""
    numeral = _NUMERAL_HEADING.match(line)
    if numeral:
        return ClassifiedLine(LineKind.NUMERAL, line, numeral.group(1).split(".")[0])
    # 只认归一后的标题形式；归一时留作正文的行（ANEXO de la presente norma）仍是正文
    heading = structural_heading(line)
    if heading:
        return ClassifiedLine(LineKind.SECTION, line, heading)
    return ClassifiedLine(LineKind.BODY, line)


@dataclass
class SegmentationState:
    current_root_key: Optional[str] = None
    current_title: Optional[str] = None
    line_buffer: List[str] = field(default_factory=list)
    order: int = 1
    records: List[ArticleRecord] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.current_title is not None

    def open(self, title: str, root_key: Optional[str]) -> None:
        self.current_title = title
        self.current_root_key = root_key
        self.line_buffer = []

    def append(self, line: str) -> None:
        self.line_buffer.append(line)

    def finalize(self) -> None:
        if not self.is_open:
            return
        body = "\n".join(self.line_buffer).strip()
        self.records.append(
            ArticleRecord(
                title=self.current_title,
                body=body,
                plain_body=body,
                order=self.order,
            )
        )
        self.order += 1
        self.current_title = None
        self.current_root_key = None
        self.line_buffer = []


def segment_normalized(lines: Iterable[str]) -> List[ArticleRecord]:
    """Run the segmentation state machine over already-normalized lines."""
    state = SegmentationState()
    for raw in lines:
        line = raw.strip()
        if not line:
            # 空行只作为正文的一部分保留
            if state.is_open:
                state.append(line)
            continue

        classified = classify_line(line)
        if classified.kind is LineKind.NUMERAL:
            if not state.is_open:
                state.open(line, classified.key)
            elif classified.key != state.current_root_key:
                state.finalize()
                state.open(line, classified.key)
            state.append(line)
        elif classified.kind is LineKind.SECTION:
            state.finalize()
            state.open(classified.key, classified.key)
            state.append(line)
        elif state.is_open:
            state.append(line)

    state.finalize()
    return state.records


def segment(text: str) -> List[ArticleRecord]:
    """Normalize `text` and split it into article records ordered 1..N."""
    return segment_normalized(normalize_lines(text))
