def flatten_description(description):
    """Flatten an Atlassian Document Format (ADF) description to markdown-ish plain text."""
    if not description or not description.get('content'):
        return ''

    return process_content_array(description['content']).strip()


def process_content_array(content):
    """Process an array of content nodes."""
    if not content:
        return ''
    return ''.join(process_node(node) for node in content)


def process_node(node):
    """Process a single content node based on its type."""
    if not node or not isinstance(node, dict):
        return ''

    node_type = node.get('type', '')

    if node_type == 'paragraph':
        return process_content_array(node.get('content')) + '\n\n'

    elif node_type == 'heading':
        return process_heading(node) + '\n\n'

    elif node_type == 'bulletList':
        return process_list(node, ordered=False) + '\n'

    elif node_type == 'orderedList':
        return process_list(node, ordered=True) + '\n'

    elif node_type == 'blockquote':
        return process_blockquote(node) + '\n\n'

    elif node_type == 'codeBlock':
        return process_code_block(node) + '\n\n'

    elif node_type == 'table':
        return process_table(node) + '\n'

    elif node_type == 'text':
        return process_text(node)

    elif node_type == 'inlineCard':
        return node.get('attrs', {}).get('url', '')

    elif node_type in ('media', 'mediaSingle', 'mediaGroup'):
        return process_media(node)

    elif node_type == 'rule':
        return '---\n\n'

    elif node_type == 'hardBreak':
        return '\n'

    elif node_type == 'mention':
        return node.get('attrs', {}).get('text', '')

    elif node_type == 'emoji':
        attrs = node.get('attrs', {})
        return attrs.get('text') or attrs.get('shortName', '')

    else:
        # Handle other node types by processing their content if available
        return process_content_array(node.get('content'))


def process_heading(node):
    """Process a heading node."""
    level = node.get('attrs', {}).get('level', 1)
    heading_prefix = '#' * level
    return '{} {}'.format(heading_prefix, process_content_array(node.get('content'))).rstrip()


def process_list(node, ordered):
    lines = []
    for number, item in enumerate(node.get('content') or [], start=1):
        marker = '{}.'.format(number) if ordered else '*'
        item_content = process_content_array(item.get('content')).strip('\n')
        # indent continuation lines (nested lists, extra paragraphs) under the marker
        indent = ' ' * (len(marker) + 1)
        body = '\n'.join(line if not line or index == 0 else indent + line
                         for index, line in enumerate(item_content.split('\n')))
        lines.append('{} {}'.format(marker, body))
    return '\n'.join(lines) + '\n'


def process_blockquote(node):
    quoted = process_content_array(node.get('content')).strip('\n')
    return '\n'.join('> ' + line if line else '>' for line in quoted.split('\n'))


def process_code_block(node):
    """Process a code block node."""
    language = node.get('attrs', {}).get('language') or ''
    code_content = process_content_array(node.get('content'))
    return '```{}\n{}\n```'.format(language, code_content)


def process_table(node):
    rows = []
    for row in node.get('content') or []:
        cells = [process_content_array(cell.get('content')).strip()
                 for cell in row.get('content') or []]
        rows.append('| {} |'.format(' | '.join(cells)))
    return '\n'.join(rows) + '\n'


def process_text(node):
    """Process a text node with optional formatting marks."""
    text = node.get('text', '')
    if not text:
        return ''

    for mark in reversed(node.get('marks') or []):
        mark_type = mark.get('type', '')
        if mark_type == 'code':
            text = '`{}`'.format(text)
        elif mark_type == 'strong':
            text = '**{}**'.format(text)
        elif mark_type == 'em':
            text = '*{}*'.format(text)
        elif mark_type == 'strike':
            text = '~~{}~~'.format(text)
        elif mark_type == 'link':
            text = '[{}]({})'.format(text, mark.get('attrs', {}).get('href', ''))

    return text


def process_media(node):
    """Process a media node."""
    if node.get('content'):
        return process_content_array(node['content']) + '\n\n'
    alt = node.get('attrs', {}).get('alt')
    if alt:
        return '[Image: {}]'.format(alt)
    return '[Image]'
