import pytest

from ...sources.document_source import Document
from ..config import SyncConfig, SiteConfig, SplitterConfig
from .fakes import FakeIndex, FakeSource


def make_document(document_id, content='<p>Body</p>', **kwargs):
    kwargs.setdefault('type', 'post')
    kwargs.setdefault('title', f'Document {document_id}')
    kwargs.setdefault('permalink', f'https://example.com/?p={document_id}')
    return Document(id=document_id, content=content, **kwargs)


def sections(count):
    return ''.join(f'<h2>Section {i}</h2><p>Text of section {i}</p>' for i in range(count))


@pytest.fixture
def sync_config():
    return SyncConfig(
        name='test',
        index_name='test_index',
        indexable_types=['post', 'page'],
        splitter=SplitterConfig(content_limit=1000),
        sites=[SiteConfig(base_url='https://example.com')],
    )


@pytest.fixture
def fake_index():
    return FakeIndex()


@pytest.fixture
def fake_source():
    return FakeSource()
