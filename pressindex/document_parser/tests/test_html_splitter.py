import pytest
from unittest.mock import patch

from ..html_splitter import HtmlSplitter, Fragment, split_content


def paragraphs(*texts):
    return ''.join(f'<p>{text}</p>' for text in texts)


class TestHeadings:

    def test_headings_open_fragments(self):
        html = '<h2>Intro</h2><p>short text</p><h2>Details</h2><p>' + 'x' * 3000 + '</p>'

        fragments = HtmlSplitter(content_limit=1000).split(html)

        assert fragments == [
            Fragment(content='short text', subtitle='Intro'),
            Fragment(content='x' * 3000, subtitle='Details'),
        ]

    def test_leading_content_has_no_subtitle(self):
        html = '<p>Lead</p><h2>A</h2><p>a text</p><h2>B</h2><p>b text</p>'

        fragments = HtmlSplitter().split(html)

        assert [f.subtitle for f in fragments] == [None, 'A', 'B']
        assert [f.content for f in fragments] == ['Lead', 'a text', 'b text']

    def test_empty_heading_keeps_its_text(self):
        fragments = HtmlSplitter().split('<h2>A</h2><h2>B</h2><p>text</p>')

        assert fragments == [Fragment(content='A', subtitle='A'), Fragment(content='text', subtitle='B')]

    def test_other_heading_levels_are_content(self):
        html = '<h3>X</h3><p>y</p><h2>Not a break</h2><p>z</p>'

        fragments = HtmlSplitter(heading_level='h3').split(html)

        assert fragments == [Fragment(content='y\n\nNot a break\n\nz', subtitle='X')]

    def test_headings_inside_containers(self):
        html = '<div class="entry"><section><h2>A</h2><p>t</p></section><section><h2>B</h2><p>u</p></section></div>'

        fragments = HtmlSplitter().split(html)

        assert [(f.subtitle, f.content) for f in fragments] == [('A', 't'), ('B', 'u')]


class TestSizeLimit:

    def test_fragments_stay_within_limit(self):
        html = paragraphs(*['a' * 300] * 10)

        fragments = HtmlSplitter(content_limit=1000).split(html)

        assert all(len(f.content) <= 1000 for f in fragments)
        assert [f.content.count('a' * 300) for f in fragments] == [3, 3, 3, 1]

    def test_oversized_unit_is_kept_whole(self):
        html = paragraphs('aa', 'b' * 1500, 'cc')

        fragments = HtmlSplitter(content_limit=1000).split(html)

        assert [f.content for f in fragments] == ['aa', 'b' * 1500, 'cc']

    def test_subtitle_is_not_carried_past_a_size_break(self):
        html = '<h2>A</h2>' + paragraphs(*['a' * 600] * 3)

        fragments = HtmlSplitter(content_limit=1000).split(html)

        assert [f.subtitle for f in fragments] == ['A', None, None]

    def test_nothing_is_lost(self):
        texts = [(f'paragraph {i} ' + 'w' * (i * 37 % 400)).strip() for i in range(40)]

        fragments = HtmlSplitter(content_limit=500).split(paragraphs(*texts))

        assert '\n\n'.join(f.content for f in fragments) == '\n\n'.join(texts)


class TestContent:

    def test_empty_input(self):
        splitter = HtmlSplitter()
        assert splitter.split('') == []
        assert splitter.split(None) == []
        assert splitter.split('<p> </p><script>x()</script>') == []

    def test_list_items_are_flattened(self):
        fragments = HtmlSplitter().split('<ul><li>one</li><li>two <em>2</em></li></ul>')

        assert fragments == [Fragment(content=' - one\n - two 2')]

    def test_nested_lists_and_blocks_in_items_keep_words_apart(self):
        html = ('<ul><li>Parent<ul><li>Child</li></ul></li>'
                '<li><p>one</p><p>two</p></li>'
                '<li>wor<strong>ld</strong> <!-- note --></li></ul>')

        fragments = HtmlSplitter().split(html)

        assert fragments == [Fragment(content=' - Parent\n - Child\n - one two\n - world')]

    def test_inline_markup_does_not_split_words(self):
        fragments = HtmlSplitter().split('<p>Hello <strong>wor</strong>ld and <a href="#">links</a></p>')

        assert fragments[0].content == 'Hello world and links'

    def test_line_breaks_are_normalized(self):
        fragments = HtmlSplitter().split('<p>line one<br>line two\r\n  three</p>')

        assert fragments[0].content == 'line one line two three'

    def test_scripts_and_styles_are_dropped(self):
        html = '<style>p {color: red}</style><p>keep</p><script>var x = 1;</script><!-- note -->'

        assert HtmlSplitter().split(html) == [Fragment(content='keep')]

    def test_plain_text_paragraphs(self):
        fragments = HtmlSplitter().split('Just text\n\nSecond paragraph')

        assert fragments == [Fragment(content='Just text\n\nSecond paragraph')]

    def test_table_cells_stay_apart(self):
        fragments = HtmlSplitter().split('<table><tr><td>a</td><td>b</td></tr></table>')

        assert fragments[0].content == 'a b'

    def test_transliteration(self):
        fragments = HtmlSplitter(transliterate=True).split('<p>Café déjà vu</p>')

        assert fragments[0].content == 'Cafe deja vu'

    def test_unicode_is_kept_by_default(self):
        fragments = HtmlSplitter().split('<p>שלום עולם</p>')

        assert fragments[0].content == 'שלום עולם'


class TestMalformedInput:

    def test_unclosed_tags_do_not_raise(self):
        fragments = HtmlSplitter().split('<p>unclosed <b>bold <h2>Head</h2> tail')

        assert 'Head' in ' '.join(f'{f.subtitle} {f.content}' for f in fragments)
        assert 'tail' in fragments[-1].content

    def test_parser_failure_falls_back_to_plain_text(self):
        with patch('pressindex.document_parser.html_splitter.BeautifulSoup', side_effect=Exception('boom')):
            fragments = HtmlSplitter().split('<p>a</p><script>x()</script><p>b</p>')

        assert fragments == [Fragment(content='a b')]


class TestArguments:

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            HtmlSplitter(content_limit=0)

    def test_invalid_heading(self):
        with pytest.raises(ValueError):
            HtmlSplitter(heading_level='p')

    def test_split_content_helper(self):
        assert split_content('<h3>T</h3><p>x</p>', heading_level='H3') == [Fragment(content='x', subtitle='T')]
