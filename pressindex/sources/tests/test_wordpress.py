from unittest.mock import Mock

import pytest
import requests

from ...sync.error_tracker import DocumentFetchError
from ..wordpress import WordPressSource


def response(status_code=200, payload=None, headers=None):
    resp = Mock()
    resp.status_code = status_code
    resp.headers = headers or {}
    resp.url = 'https://example.com/wp-json/wp/v2/x'
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f'{status_code} error')
    return resp


def item(item_id, type_tag='post', **kwargs):
    data = {
        'id': item_id,
        'type': type_tag,
        'status': 'publish',
        'link': f'https://example.com/?p={item_id}',
        'date': '2024-01-01T10:00:00',
        'title': {'rendered': f'Item {item_id}'},
        'content': {'rendered': f'<p>Body {item_id}</p>'},
    }
    data.update(kwargs)
    return data


def make_source(get, **kwargs):
    session = Mock()
    session.headers = {}
    session.get.side_effect = get
    return WordPressSource('https://example.com/', types=['post', 'page'], session=session, **kwargs), session


class TestGetDocument:

    def test_probes_types_until_found(self):
        payload = item(7, title={'rendered': 'Tom &amp; Jerry'}, _embedded={'wp:term': [
            [{'taxonomy': 'category', 'name': 'Cartoons'}],
            [{'taxonomy': 'post_tag', 'name': 'cats'}, {'taxonomy': 'post_tag', 'name': 'mice'}],
        ]})

        def get(url, params=None, timeout=None):
            return response(404) if '/pages/' in url else response(payload=payload)

        source, session = make_source(get, site_id='main')
        document = source.get_document(7)

        assert document.id == 7
        assert document.type == 'post'
        assert document.title == 'Tom & Jerry'
        assert document.content == '<p>Body 7</p>'
        assert document.permalink == 'https://example.com/?p=7'
        assert document.site_id == 'main'
        assert document.terms == {'category': ['Cartoons'], 'post_tag': ['cats', 'mice']}
        urls = [call[0][0] for call in session.get.call_args_list]
        assert urls == ['https://example.com/wp-json/wp/v2/pages/7', 'https://example.com/wp-json/wp/v2/posts/7']

    def test_not_found_anywhere(self):
        source, _ = make_source(lambda url, params=None, timeout=None: response(404))

        assert source.get_document(99) is None

    def test_http_error(self):
        source, _ = make_source(lambda url, params=None, timeout=None: response(500))

        with pytest.raises(DocumentFetchError):
            source.get_document(1)

    @pytest.mark.parametrize('status_code', [401, 403])
    def test_forbidden_document_is_not_public(self, status_code):
        def get(url, params=None, timeout=None):
            return response(404) if '/pages/' in url else response(status_code)

        source, _ = make_source(get, site_id='main')
        document = source.get_document(7)

        assert document.id == 7
        assert document.type == 'post'
        assert document.status == 'private'
        assert document.site_id == 'main'

    def test_network_error(self):
        def get(url, params=None, timeout=None):
            raise requests.ConnectionError('refused')

        source, _ = make_source(get)

        with pytest.raises(DocumentFetchError) as exc_info:
            source.get_document(1)
        assert 'refused' in exc_info.value.message

    def test_credentials_switch_to_edit_context(self):
        source, session = make_source(lambda url, params=None, timeout=None: response(payload=item(1)),
                                      auth=('editor', 'app-pass'))

        source.get_document(1)

        assert session.auth == ('editor', 'app-pass')
        assert session.get.call_args[1]['params']['context'] == 'edit'


class TestQueryDocuments:

    @pytest.fixture
    def corpus(self):
        return {
            'pages': [item(i, 'page') for i in (2, 4, 6)],
            'posts': [item(i) for i in (1, 3)],
        }

    @pytest.fixture
    def source(self, corpus):
        def get(url, params=None, timeout=None):
            collection = url.rsplit('/', 1)[-1]
            items = corpus[collection]
            if '_fields' in params:
                return response(payload=items[:1], headers={'X-WP-Total': str(len(items))})
            offset = params['offset']
            return response(payload=items[offset:offset + params['per_page']])

        source, _ = make_source(get)
        return source

    def test_first_page_spans_types(self, source):
        documents, total = source.query_documents(['post', 'page'], 'publish', page=1, page_size=4)

        assert total == 5
        assert [(d.type, d.id) for d in documents] == [('page', 2), ('page', 4), ('page', 6), ('post', 1)]

    def test_second_page_continues_where_first_ended(self, source):
        documents, _ = source.query_documents(['post', 'page'], 'publish', page=2, page_size=4)

        assert [(d.type, d.id) for d in documents] == [('post', 3)]

    def test_past_the_end(self, source):
        documents, total = source.query_documents(['post', 'page'], 'publish', page=3, page_size=4)

        assert documents == []
        assert total == 5

    def test_page_is_one_based(self, source):
        with pytest.raises(ValueError):
            source.query_documents(['post'], 'publish', page=0, page_size=10)
