"""Convert CommonMark markdown into an Atlassian Document Format tree.

The markdown is parsed by mistune into its AST form and rewritten in a single
depth-first pass. Inline formatting (emphasis, strong, links, ...) does not
become nodes of its own in ADF: it is carried down as an ordered tuple of
marks and attached to every text leaf underneath it.

Constructs ADF cannot represent are rejected rather than dropped, and any
failure aborts the whole conversion.
"""
import mistune
from mistune.util import unescape
import singer

from . import adf

LOGGER = singer.get_logger()

DEFAULT_MAX_DEPTH = 64

MISTUNE_PLUGINS = ["strikethrough", "table", "footnotes", "def_list",
                   "task_lists", "superscript"]

TABLE_CELL_BACKGROUND = "#ffffff"

# token type -> name of the feature reported to the user
UNSUPPORTED_TOKENS = {
    "image": "image",
    "block_html": "html block",
    "inline_html": "inline html",
    "footnote_ref": "footnote reference",
    "footnotes": "footnote definition",
    "footnote_item": "footnote definition",
    "def_list": "description list",
    "def_list_head": "description list",
    "def_list_content": "description list",
    "task_list_item": "task list item",
}

FRONT_MATTER_FENCES = ("---", "+++")


class ConversionError(Exception):
    pass


class UnsupportedFeature(ConversionError):
    def __init__(self, feature):
        super().__init__("Markdown feature not supported in Jira descriptions: {}".format(feature))
        self.feature = feature


class StructuralError(ConversionError):
    pass


class NestingDepthError(StructuralError):
    def __init__(self, max_depth):
        super().__init__("Markdown is nested deeper than {} levels".format(max_depth))
        self.max_depth = max_depth


class InvalidText(ConversionError):
    pass


def append_mark(marks, mark):
    """Return a new accumulator with `mark` innermost; `marks` is untouched."""
    return marks + (mark,)


def checked_text(value, what="text"):
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as ex:
            raise InvalidText("{} is not valid UTF-8: {}".format(what, ex)) from ex
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as ex:
        raise InvalidText("{} is not valid UTF-8: {}".format(what, ex)) from ex
    return value


def has_front_matter(text):
    lines = text.splitlines()
    if not lines or lines[0].rstrip() not in FRONT_MATTER_FENCES:
        return False
    # a thematic break followed by a blank line is not front matter
    if len(lines) < 2 or not lines[1].strip():
        return False
    fence = lines[0].rstrip()
    return any(line.rstrip() == fence for line in lines[1:])


class MarkdownConverter():
    def __init__(self, max_depth=DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth
        self.markdown = mistune.create_markdown(renderer=None, plugins=MISTUNE_PLUGINS)
        self.block_handlers = {
            "paragraph": self._paragraph,
            "block_text": self._paragraph,
            "block_quote": self._block_quote,
            "list": self._list,
            "list_item": self._list_item,
            "heading": self._heading,
            "thematic_break": self._thematic_break,
            "block_code": self._code_block,
            "table": self._table,
            "table_head": self._table_head,
            "table_body": self._table_body,
            "table_row": self._table_row,
            "table_cell": self._table_cell,
            "blank_line": self._blank_line,
        }
        self.inline_handlers = {
            "text": self._text,
            "softbreak": self._softbreak,
            "linebreak": self._linebreak,
            "codespan": self._codespan,
            "emphasis": self._marked(lambda token: adf.Em()),
            "strong": self._marked(lambda token: adf.Strong()),
            "strikethrough": self._marked(lambda token: adf.Strike()),
            "superscript": self._marked(lambda token: adf.Subsup(adf.SubsupType.SUP)),
            "link": self._marked(self._link_mark),
        }

    def convert(self, markdown):
        """Convert markdown text (str or UTF-8 bytes) into an `adf.Root`."""
        text = checked_text(markdown, "markdown")
        if has_front_matter(text):
            raise UnsupportedFeature("front matter")

        try:
            tokens, state = self.markdown.parse(text)
        except RecursionError as ex:
            raise NestingDepthError(self.max_depth) from ex

        content = self._convert_all(tokens, (), 1)

        # mistune swallows footnote definitions nobody references
        if state.env.get("ref_footnotes"):
            raise UnsupportedFeature("footnote definition")

        LOGGER.debug("Converted markdown into %s top-level ADF nodes", len(content))
        return adf.Root(content=tuple(content))

    def _convert_all(self, tokens, marks, depth):
        nodes = []
        for token in tokens:
            nodes.extend(self._convert(token, marks, depth))
        return nodes

    def _convert(self, token, marks, depth):
        if depth > self.max_depth:
            raise NestingDepthError(self.max_depth)

        token_type = token.get("type")
        if token_type in UNSUPPORTED_TOKENS:
            raise UnsupportedFeature(UNSUPPORTED_TOKENS[token_type])

        handler = self.block_handlers.get(token_type) or self.inline_handlers.get(token_type)
        if handler is None:
            raise UnsupportedFeature(token_type)
        return handler(token, marks, depth)

    def _block(self, kind, token, depth):
        # every block starts its children with no marks in effect
        content = self._convert_all(token.get("children", []), (), depth + 1)
        return [adf.BlockNode(kind, tuple(content))]

    def _paragraph(self, token, marks, depth):
        return self._block(adf.Paragraph(), token, depth)

    def _block_quote(self, token, marks, depth):
        return self._block(adf.BlockQuote(), token, depth)

    def _list(self, token, marks, depth):
        # start number and delimiter are not carried over
        if token.get("attrs", {}).get("ordered"):
            return self._block(adf.OrderedList(), token, depth)
        return self._block(adf.BulletList(), token, depth)

    def _list_item(self, token, marks, depth):
        return self._block(adf.ListItem(), token, depth)

    def _heading(self, token, marks, depth):
        return self._block(adf.Heading(token["attrs"]["level"]), token, depth)

    def _thematic_break(self, token, marks, depth):
        return [adf.BlockNode(adf.Rule())]

    def _code_block(self, token, marks, depth):
        info = token.get("attrs", {}).get("info")
        language = checked_text(info, "code block info string") if info else None

        code = checked_text(token.get("raw", ""), "code block")
        if code.endswith("\n"):
            code = code[:-1]
        content = (adf.InlineNode(adf.Text(), text=code),) if code else ()
        return [adf.BlockNode(adf.CodeBlock(language=language), content)]

    def _table(self, token, marks, depth):
        kind = adf.Table(is_number_column_enabled=False, layout=adf.TableLayout.DEFAULT)
        return self._block(kind, token, depth)

    def _table_head(self, token, marks, depth):
        # mistune puts the header cells straight under table_head
        return self._block(adf.TableRow(), token, depth)

    def _table_body(self, token, marks, depth):
        return self._convert_all(token.get("children", []), (), depth + 1)

    def _table_row(self, token, marks, depth):
        return self._block(adf.TableRow(), token, depth)

    def _table_cell(self, token, marks, depth):
        return self._block(adf.TableCell(background=TABLE_CELL_BACKGROUND), token, depth)

    def _blank_line(self, token, marks, depth):
        return []

    def _text(self, token, marks, depth):
        # the AST keeps entity and numeric character references as written
        text = unescape(checked_text(token["raw"]))
        if not text:
            return []
        return [adf.InlineNode(adf.Text(), text=text, marks=marks or None)]

    def _softbreak(self, token, marks, depth):
        return [adf.InlineNode(adf.Text(), text=" ")]

    def _linebreak(self, token, marks, depth):
        return [adf.InlineNode(adf.HardBreak())]

    def _codespan(self, token, marks, depth):
        text = checked_text(token["raw"], "code span")
        return [adf.InlineNode(adf.Text(), text=text, marks=(adf.Code(),))]

    def _link_mark(self, token):
        attrs = token.get("attrs", {})
        href = checked_text(attrs.get("url", ""), "link target")
        # a missing title and an empty title both come out as ""
        title = unescape(checked_text(attrs.get("title") or "", "link title"))
        return adf.Link(href=href, title=title)

    def _marked(self, make_mark):
        def handler(token, marks, depth):
            children = token.get("children") or []
            if not children:
                raise StructuralError("Nothing to format inside {}".format(token.get("type")))
            return self._convert_all(children, append_mark(marks, make_mark(token)), depth + 1)
        return handler


def convert(markdown, max_depth=DEFAULT_MAX_DEPTH):
    return MarkdownConverter(max_depth=max_depth).convert(markdown)


def markdown_to_adf(markdown):
    """Convert markdown straight to the JSON-ready ADF dict."""
    return adf.serialize(convert(markdown))


def description_to_adf(description):
    """ADF for an issue description, or None when there is nothing to send."""
    if not description or not description.strip():
        return None
    return markdown_to_adf(description)
