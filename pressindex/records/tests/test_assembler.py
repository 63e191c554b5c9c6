import pytest

from ...document_parser.html_splitter import HtmlSplitter
from ...sources.document_source import Document
from ...sync.error_tracker import AssemblyError
from ..assembler import Record, RecordAssembler
from ..transforms import TransformRegistry


CONTENT = (
    '<p>Lead paragraph</p>'
    '<h2>First</h2><p>first section</p>'
    '<h2>Second</h2><p>second section</p>'
    '<h2>Third</h2><p>third section</p>'
)


@pytest.fixture
def document():
    return Document(
        id=12,
        type='post',
        title='Hello',
        content=CONTENT,
        permalink='https://example.com/hello',
        date='2024-01-01T10:00:00',
        terms={'post_tag': ['news', 'tech'], 'category': ['General']},
    )


@pytest.fixture
def assembler():
    return RecordAssembler(splitter=HtmlSplitter(content_limit=1000))


def registry_with(transform, type_tag='post'):
    registry = TransformRegistry()
    registry.register(type_tag, transform)
    return registry


class TestRecords:

    def test_one_record_per_fragment(self, assembler, document):
        records = assembler.assemble(document)

        assert [r.object_id for r in records] == ['post-12-0', 'post-12-1', 'post-12-2', 'post-12-3']
        assert {r.distinct_key for r in records} == {'post#12'}
        assert [r.subtitle for r in records] == [None, 'First', 'Second', 'Third']
        assert records[1].content == 'first section'

    def test_metadata_is_shared(self, assembler, document):
        records = assembler.assemble(document)

        for record in records:
            assert record.attributes['title'] == 'Hello'
            assert record.attributes['url'] == 'https://example.com/hello'
            assert record.attributes['type'] == 'post'
            assert record.attributes['id'] == 12
            assert record.attributes['tags'] == ['news', 'tech']

    def test_assembly_is_idempotent(self, assembler, document):
        first = [r.to_document() for r in assembler.assemble(document)]
        second = [r.to_document() for r in assembler.assemble(document)]

        assert first == second

    def test_site_prefix(self, assembler, document):
        records = assembler.assemble(Document(id=3, type='page', content='<p>x</p>', site_id='blog2'))

        assert records[0].object_id == 'blog2-page-3-0'
        assert records[0].distinct_key == 'blog2#page#3'

    def test_empty_content_gives_one_metadata_record(self, assembler):
        records = assembler.assemble(Document(id=5, type='page', title='Empty'))

        assert len(records) == 1
        assert records[0].object_id == 'page-5-0'
        assert records[0].content == ''
        assert records[0].attributes['title'] == 'Empty'


class TestIndexability:

    def test_unregistered_type(self, assembler):
        assert assembler.assemble(Document(id=1, type='attachment', content='<p>x</p>')) is None

    @pytest.mark.parametrize('result', [None, {}])
    def test_empty_transform_result(self, document, result):
        assembler = RecordAssembler(registry=registry_with(lambda d: result))

        assert assembler.assemble(document) is None

    def test_transform_exception(self, document):
        def broken(d):
            raise KeyError('tags')

        with pytest.raises(AssemblyError) as exc_info:
            RecordAssembler(registry=registry_with(broken)).assemble(document)
        assert exc_info.value.source_id == '12'

    def test_transform_returning_non_mapping(self, document):
        with pytest.raises(AssemblyError):
            RecordAssembler(registry=registry_with(lambda d: ['tags'])).assemble(document)


class TestPrecedence:

    def test_transform_overrides_defaults(self, document):
        assembler = RecordAssembler(registry=registry_with(lambda d: {'title': 'Custom', 'author': 'Ann'}))

        record = assembler.assemble(document)[0]

        assert record.attributes['title'] == 'Custom'
        assert record.attributes['author'] == 'Ann'
        assert record.attributes['url'] == 'https://example.com/hello'

    def test_transform_content_replaces_document_content(self, document):
        assembler = RecordAssembler(registry=registry_with(lambda d: {'content': '<p>Override</p>'}))

        records = assembler.assemble(document)

        assert [r.content for r in records] == ['Override']

    def test_fragment_and_identity_fields_win(self, document):
        transform = lambda d: {'subtitle': 'forced', 'object_id': 'evil', 'distinct_key': 'evil', 'type': 'post'}
        assembler = RecordAssembler(registry=registry_with(transform))

        body = assembler.assemble(document)[1].to_document()

        assert body['subtitle'] == 'First'
        assert body['object_id'] == 'post-12-1'
        assert body['distinct_key'] == 'post#12'

    def test_fragment_without_subtitle_has_no_subtitle_field(self, assembler, document):
        body = assembler.assemble(document)[0].to_document()

        assert 'subtitle' not in body
        assert body['content'] == 'Lead paragraph'


class TestRecordDocument:

    def test_to_document(self):
        record = Record(object_id='post-1-0', distinct_key='post#1', content='text', subtitle='Intro',
                        attributes={'title': 'T', 'content': 'stale'})

        assert record.to_document() == {
            'title': 'T',
            'subtitle': 'Intro',
            'content': 'text',
            'object_id': 'post-1-0',
            'distinct_key': 'post#1',
        }
