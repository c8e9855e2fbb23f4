"""Atlassian Document Format (ADF) node model and its JSON serialization.

ADF is the JSON tree Jira Cloud uses for rich text fields such as an issue's
`description`. Every node here is an immutable value; a tree is built once
by the converter and handed to `serialize`.

https://developer.atlassian.com/cloud/jira/platform/apis/document/structure/
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

ADF_VERSION = 1
DOC_TYPE = "doc"


class TableLayout(Enum):
    DEFAULT = "default"
    FULL_WIDTH = "full-width"
    WIDE = "wide"


class SubsupType(Enum):
    SUP = "sup"
    SUB = "sub"


def _drop_absent(attrs):
    return {key: value for key, value in attrs.items() if value is not None}


class _Typed:
    """Shared behaviour of node kinds and marks.

    `type_name` is the ADF `type` value. `attrs()` returns None for variants
    that carry no fields, so the serializer can leave the key out entirely.
    """
    type_name = None

    def attrs(self) -> Optional[Dict[str, Any]]:
        return None


# Block node kinds

@dataclass(frozen=True)
class BlockQuote(_Typed):
    type_name = "blockquote"


@dataclass(frozen=True)
class BulletList(_Typed):
    type_name = "bulletList"


@dataclass(frozen=True)
class OrderedList(_Typed):
    type_name = "orderedList"


@dataclass(frozen=True)
class ListItem(_Typed):
    type_name = "listItem"


@dataclass(frozen=True)
class CodeBlock(_Typed):
    language: Optional[str] = None
    type_name = "codeBlock"

    def attrs(self):
        return _drop_absent({"language": self.language})


@dataclass(frozen=True)
class Heading(_Typed):
    level: int = 1
    type_name = "heading"

    def __post_init__(self):
        if not 1 <= self.level <= 6:
            raise ValueError("Heading level must be between 1 and 6, got {}".format(self.level))

    def attrs(self):
        return {"level": self.level}


@dataclass(frozen=True)
class Paragraph(_Typed):
    type_name = "paragraph"


@dataclass(frozen=True)
class Rule(_Typed):
    type_name = "rule"


@dataclass(frozen=True)
class Table(_Typed):
    is_number_column_enabled: bool = False
    layout: TableLayout = TableLayout.DEFAULT
    type_name = "table"

    def attrs(self):
        return {"isNumberColumnEnabled": self.is_number_column_enabled,
                "layout": self.layout.value}


@dataclass(frozen=True)
class TableRow(_Typed):
    type_name = "tableRow"


@dataclass(frozen=True)
class TableCell(_Typed):
    background: str = "#ffffff"
    type_name = "tableCell"

    def attrs(self):
        return {"background": self.background}


@dataclass(frozen=True)
class TableHeader(_Typed):
    type_name = "tableHeader"


@dataclass(frozen=True)
class Media(_Typed):
    type_name = "media"


@dataclass(frozen=True)
class MediaGroup(_Typed):
    type_name = "mediaGroup"


@dataclass(frozen=True)
class MediaSingle(_Typed):
    type_name = "mediaSingle"


@dataclass(frozen=True)
class Panel(_Typed):
    type_name = "panel"


BLOCK_NODE_KINDS = (BlockQuote, BulletList, OrderedList, ListItem, CodeBlock,
                    Heading, Paragraph, Rule, Table, TableRow, TableCell,
                    TableHeader, Media, MediaGroup, MediaSingle, Panel)


# Inline node kinds

@dataclass(frozen=True)
class Text(_Typed):
    type_name = "text"


@dataclass(frozen=True)
class HardBreak(_Typed):
    type_name = "hardBreak"


@dataclass(frozen=True)
class InlineCard(_Typed):
    url: str = ""
    type_name = "inlineCard"

    def attrs(self):
        return {"url": self.url}


@dataclass(frozen=True)
class Mention(_Typed):
    id: str = ""
    text: Optional[str] = None
    user_type: Optional[str] = None
    type_name = "mention"

    def attrs(self):
        return _drop_absent({"id": self.id, "text": self.text, "userType": self.user_type})


@dataclass(frozen=True)
class Emoji(_Typed):
    short_name: str = ""
    id: Optional[str] = None
    text: Optional[str] = None
    type_name = "emoji"

    def attrs(self):
        return _drop_absent({"id": self.id, "shortName": self.short_name, "text": self.text})


INLINE_NODE_KINDS = (Text, HardBreak, InlineCard, Mention, Emoji)


# Marks

@dataclass(frozen=True)
class Code(_Typed):
    type_name = "code"


@dataclass(frozen=True)
class Em(_Typed):
    type_name = "em"


@dataclass(frozen=True)
class Strong(_Typed):
    type_name = "strong"


@dataclass(frozen=True)
class Strike(_Typed):
    type_name = "strike"


@dataclass(frozen=True)
class Underline(_Typed):
    type_name = "underline"


@dataclass(frozen=True)
class Link(_Typed):
    href: str = ""
    title: Optional[str] = None
    type_name = "link"

    def attrs(self):
        return _drop_absent({"href": self.href, "title": self.title})


@dataclass(frozen=True)
class TextColor(_Typed):
    color: str = ""
    type_name = "textColor"

    def attrs(self):
        return {"color": self.color}


@dataclass(frozen=True)
class Subsup(_Typed):
    kind: SubsupType = SubsupType.SUP
    type_name = "subsup"

    def attrs(self):
        return {"type": self.kind.value}


MARKS = (Code, Em, Strong, Strike, Underline, Link, TextColor, Subsup)


# Nodes

@dataclass(frozen=True)
class Root:
    content: Tuple["Node", ...] = ()
    version: int = ADF_VERSION
    doctype: str = DOC_TYPE


@dataclass(frozen=True)
class BlockNode:
    kind: _Typed
    content: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class InlineNode:
    kind: _Typed
    text: Optional[str] = None
    marks: Optional[Tuple[_Typed, ...]] = None


Node = Union[Root, BlockNode, InlineNode]


def serialize_mark(mark):
    result = {"type": mark.type_name}
    attrs = mark.attrs()
    if attrs is not None:
        result["attrs"] = attrs
    return result


def serialize(node: Node) -> Dict[str, Any]:
    """Map a node tree onto the ADF JSON shape.

    Optional fields that are absent are left out of the output, never
    written as null.
    """
    if isinstance(node, Root):
        return {"version": node.version,
                "type": node.doctype,
                "content": [serialize(child) for child in node.content]}

    if isinstance(node, BlockNode):
        result = {"type": node.kind.type_name}
        attrs = node.kind.attrs()
        if attrs is not None:
            result["attrs"] = attrs
        result["content"] = [serialize(child) for child in node.content]
        return result

    if isinstance(node, InlineNode):
        result = {"type": node.kind.type_name}
        attrs = node.kind.attrs()
        if attrs is not None:
            result["attrs"] = attrs
        if node.text is not None:
            result["text"] = node.text
        if node.marks:
            result["marks"] = [serialize_mark(mark) for mark in node.marks]
        return result

    raise TypeError("Cannot serialize {!r} as an ADF node".format(node))


def dumps(node, **kwargs):
    return json.dumps(serialize(node), **kwargs)
