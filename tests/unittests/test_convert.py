import unittest
from jira_md import adf
from jira_md import convert
from jira_md.convert import (MarkdownConverter, UnsupportedFeature, StructuralError,
                             NestingDepthError, InvalidText, ConversionError)


def text(value, *marks):
    return adf.InlineNode(adf.Text(), text=value, marks=tuple(marks) or None)


def paragraph(*content):
    return adf.BlockNode(adf.Paragraph(), tuple(content))


def only_block(markdown):
    root = convert.convert(markdown)
    assert len(root.content) == 1, root.content
    return root.content[0]


def leaves(markdown):
    return list(only_block(markdown).content)


class TestBlocks(unittest.TestCase):

    def test_plain_paragraph(self):
        root = convert.convert("hello world")
        self.assertEqual(root, adf.Root(content=(paragraph(text("hello world")),)))
        self.assertEqual(root.version, 1)
        self.assertEqual(root.doctype, "doc")

    def test_heading_levels(self):
        for level in range(1, 7):
            block = only_block("#" * level + " Title")
            self.assertEqual(block.kind, adf.Heading(level))
            self.assertEqual(block.content, (text("Title"),))

    def test_block_quote(self):
        self.assertEqual(only_block("> quoted"),
                         adf.BlockNode(adf.BlockQuote(), (paragraph(text("quoted")),)))

    def test_bullet_list(self):
        block = only_block("- a\n- b")
        self.assertEqual(block.kind, adf.BulletList())
        self.assertEqual(block.content, (
            adf.BlockNode(adf.ListItem(), (paragraph(text("a")),)),
            adf.BlockNode(adf.ListItem(), (paragraph(text("b")),)),
        ))

    def test_ordered_list_drops_start_number(self):
        block = only_block("3. a\n4. b")
        self.assertEqual(block.kind, adf.OrderedList())
        self.assertEqual(len(block.content), 2)
        self.assertNotIn("attrs", adf.serialize(block))

    def test_thematic_break(self):
        root = convert.convert("para\n\n***")
        self.assertEqual(root.content[1], adf.BlockNode(adf.Rule(), ()))

    def test_fenced_code_block_keeps_whole_info_string(self):
        block = only_block("```python extra\nprint(1)\n```")
        self.assertEqual(block.kind, adf.CodeBlock(language="python extra"))
        self.assertEqual(block.content, (text("print(1)"),))

    def test_indented_code_block_has_no_language(self):
        block = only_block("    x = 1")
        self.assertEqual(block.kind, adf.CodeBlock(language=None))
        self.assertEqual(adf.serialize(block)["attrs"], {})

    def test_table_uses_fixed_attributes(self):
        block = only_block("| a | b |\n|---|---|\n| 1 | 2 |")
        serialized = adf.serialize(block)

        self.assertEqual(serialized["type"], "table")
        self.assertEqual(serialized["attrs"], {"isNumberColumnEnabled": False, "layout": "default"})
        self.assertEqual(len(serialized["content"]), 2)
        for row in serialized["content"]:
            self.assertEqual(row["type"], "tableRow")
            self.assertEqual(len(row["content"]), 2)
            for cell in row["content"]:
                self.assertEqual(cell["type"], "tableCell")
                self.assertEqual(cell["attrs"], {"background": "#ffffff"})
        self.assertEqual(serialized["content"][0]["content"][0]["content"],
                         [{"type": "text", "text": "a"}])
        self.assertEqual(serialized["content"][1]["content"][1]["content"],
                         [{"type": "text", "text": "2"}])

    def test_empty_document(self):
        self.assertEqual(convert.convert(""), adf.Root(content=()))


class TestInlines(unittest.TestCase):

    def test_strong(self):
        self.assertEqual(leaves("**bold**"), [text("bold", adf.Strong())])

    def test_emphasis(self):
        self.assertEqual(leaves("*soft*"), [text("soft", adf.Em())])

    def test_inline_code(self):
        self.assertEqual(leaves("`code`"), [text("code", adf.Code())])

    def test_strikethrough(self):
        self.assertEqual(leaves("~~gone~~"), [text("gone", adf.Strike())])

    def test_superscript(self):
        self.assertEqual(leaves("x^2^"),
                         [text("x"), text("2", adf.Subsup(adf.SubsupType.SUP))])

    def test_marks_are_ordered_outermost_first(self):
        self.assertEqual(leaves("**_x_**"), [text("x", adf.Strong(), adf.Em())])

    def test_triple_emphasis_nests_strong_inside_em(self):
        # CommonMark reads ***x*** as <em><strong>x</strong></em>
        self.assertEqual(leaves("***x***"), [text("x", adf.Em(), adf.Strong())])

    def test_marks_reach_every_child(self):
        link = adf.Link(href="https://example.com", title="")
        self.assertEqual(leaves("*see [docs](https://example.com) now*"), [
            text("see ", adf.Em()),
            text("docs", adf.Em(), link),
            text(" now", adf.Em()),
        ])

    def test_code_span_ignores_surrounding_marks(self):
        self.assertEqual(leaves("**a `b`**"),
                         [text("a ", adf.Strong()), text("b", adf.Code())])

    def test_link_title(self):
        [leaf] = leaves('[t](https://example.com "Example")')
        self.assertEqual(leaf.marks, (adf.Link(href="https://example.com", title="Example"),))

    def test_missing_and_empty_link_titles_look_the_same(self):
        [untitled] = leaves("[t](https://example.com)")
        [empty_title] = leaves('[t](https://example.com "")')
        self.assertEqual(untitled.marks, (adf.Link(href="https://example.com", title=""),))
        self.assertEqual(untitled, empty_title)
        self.assertEqual(adf.serialize(untitled)["marks"][0]["attrs"],
                         {"href": "https://example.com", "title": ""})

    def test_soft_break_is_a_plain_space(self):
        content = leaves("*a*\nb")
        self.assertEqual(len(content), 3)
        self.assertEqual(content[1], adf.InlineNode(adf.Text(), text=" "))

    def test_hard_break(self):
        content = leaves("a  \nb")
        self.assertEqual(len(content), 3)
        self.assertEqual(content[1], adf.InlineNode(adf.HardBreak()))
        self.assertEqual(adf.serialize(content[1]), {"type": "hardBreak"})


class TestCharacterReferences(unittest.TestCase):

    def test_text(self):
        self.assertEqual(leaves("a &amp; b &copy; &#35;1 &#x41;"), [text("a & b © #1 A")])

    def test_heading(self):
        block = only_block("# Q&amp;A")
        self.assertEqual(block.content, (text("Q&A"),))

    def test_table_cell(self):
        table = only_block("| a &lt; b |\n|---|\n| &#35;1 |")
        header, row = table.content
        self.assertEqual(header.content[0].content, (text("a < b"),))
        self.assertEqual(row.content[0].content, (text("#1"),))

    def test_link_title(self):
        [leaf] = leaves('[a](https://example.com "T &amp; U")')
        self.assertEqual(leaf.marks, (adf.Link(href="https://example.com", title="T & U"),))

    def test_marked_text(self):
        self.assertEqual(leaves("**&quot;x&quot;**"), [text('"x"', adf.Strong())])

    def test_code_is_left_alone(self):
        self.assertEqual(leaves("`&amp;`"), [text("&amp;", adf.Code())])
        block = only_block("```\n&amp;\n```")
        self.assertEqual(block.content, (text("&amp;"),))

    def test_unknown_entity_stays_literal(self):
        self.assertEqual(leaves("&bogus; &amp"), [text("&bogus; &amp")])


class TestEmptyText(unittest.TestCase):

    def assertNoEmptyText(self, markdown):
        def walk(value):
            if isinstance(value, dict):
                if value.get("type") == "text":
                    self.assertTrue(value.get("text"), (markdown, value))
                for item in value.values():
                    walk(item)
            elif isinstance(value, list):
                for item in value:
                    walk(item)

        walk(convert.markdown_to_adf(markdown))

    def test_no_empty_text_nodes(self):
        for markdown in ("*foo **bar***", "**foo *bar***", "#", "# ", "a\n\n#\n\nb",
                         "| a |  |\n|---|---|\n|  | b |", "*a*\nb"):
            self.assertNoEmptyText(markdown)

    def test_empty_heading_has_no_content(self):
        self.assertEqual(only_block("#"), adf.BlockNode(adf.Heading(1), ()))
        self.assertEqual(adf.serialize(only_block("#")),
                         {"type": "heading", "attrs": {"level": 1}, "content": []})


class TestRejections(unittest.TestCase):

    def assertUnsupported(self, markdown, feature):
        with self.assertRaises(UnsupportedFeature) as context:
            convert.convert(markdown)
        self.assertEqual(context.exception.feature, feature)

    def test_image(self):
        self.assertUnsupported("![alt](url.png)", "image")

    def test_image_inside_emphasis(self):
        self.assertUnsupported("text *with ![alt](url.png)*", "image")

    def test_html_block(self):
        self.assertUnsupported("<div>\nhi\n</div>", "html block")

    def test_inline_html(self):
        self.assertUnsupported("a <span>b</span>", "inline html")

    def test_footnote_reference(self):
        self.assertUnsupported("Note[^1]\n\n[^1]: the note", "footnote reference")

    def test_task_list_item(self):
        self.assertUnsupported("- [ ] todo", "task list item")

    def test_description_list(self):
        self.assertUnsupported("Term\n: Definition\n", "description list")

    def test_yaml_front_matter(self):
        self.assertUnsupported("---\ntitle: x\n---\n\nbody", "front matter")

    def test_toml_front_matter(self):
        self.assertUnsupported("+++\ntitle = 'x'\n+++\n\nbody", "front matter")

    def test_leading_rule_is_not_front_matter(self):
        root = convert.convert("---\n\nfoo\n\n---")
        self.assertEqual(root.content, (
            adf.BlockNode(adf.Rule(), ()),
            paragraph(text("foo")),
            adf.BlockNode(adf.Rule(), ()),
        ))

    def test_unknown_token_type(self):
        with self.assertRaises(UnsupportedFeature) as context:
            MarkdownConverter()._convert({"type": "mystery"}, (), 1)
        self.assertEqual(context.exception.feature, "mystery")

    def test_link_without_text(self):
        with self.assertRaises(StructuralError):
            convert.convert("[](https://example.com)")

    def test_invalid_utf8_bytes(self):
        with self.assertRaises(InvalidText):
            convert.convert(b"caf\xff")

    def test_lone_surrogate(self):
        with self.assertRaises(InvalidText):
            convert.convert("bad \ud800 text")

    def test_utf8_bytes_are_accepted(self):
        self.assertEqual(convert.convert("café".encode("utf-8")), convert.convert("café"))

    def test_nesting_depth_limit(self):
        with self.assertRaises(NestingDepthError) as context:
            MarkdownConverter(max_depth=3).convert("> > > > deep")
        self.assertIsInstance(context.exception, StructuralError)
        self.assertIsInstance(context.exception, ConversionError)


class TestConverterProperties(unittest.TestCase):
    document = "\n".join([
        "# Release notes",
        "",
        "Some *emphasis*, **strong** and `code`.",
        "",
        "> a quote",
        "",
        "1. first",
        "2. second",
        "",
        "```sh",
        "make all",
        "```",
        "",
        "| k | v |",
        "|---|---|",
        "| a | b |",
    ])

    def test_conversion_is_repeatable(self):
        self.assertEqual(convert.convert(self.document), convert.convert(self.document))

    def test_serialized_tree_never_contains_null(self):
        def walk(value):
            if isinstance(value, dict):
                for item in value.values():
                    self.assertIsNotNone(item)
                    walk(item)
            elif isinstance(value, list):
                for item in value:
                    walk(item)

        walk(convert.markdown_to_adf(self.document))

    def test_markdown_to_adf(self):
        self.assertEqual(convert.markdown_to_adf("hello world"), {
            "version": 1,
            "type": "doc",
            "content": [{"type": "paragraph",
                         "content": [{"type": "text", "text": "hello world"}]}],
        })

    def test_append_mark_copies(self):
        marks = (adf.Strong(),)
        extended = convert.append_mark(marks, adf.Em())
        self.assertEqual(marks, (adf.Strong(),))
        self.assertEqual(extended, (adf.Strong(), adf.Em()))

    def test_handled_and_rejected_tokens_do_not_overlap(self):
        converter = MarkdownConverter()
        handled = set(converter.block_handlers) | set(converter.inline_handlers)
        self.assertFalse(handled & set(convert.UNSUPPORTED_TOKENS))

    def test_description_to_adf_skips_blank_text(self):
        self.assertIsNone(convert.description_to_adf(None))
        self.assertIsNone(convert.description_to_adf("  \n"))
        self.assertEqual(convert.description_to_adf("hi")["type"], "doc")
