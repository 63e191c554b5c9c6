import inspect

import pytest
from fastapi.testclient import TestClient

from ..api.server import create_app
from ..sync.config import SyncConfig, SiteConfig
from ..sync.error_tracker import ConfigurationError
from ..sync.orchestrator import DocumentSyncOrchestrator
from ..sync.tests.conftest import make_document, sections
from ..sync.tests.fakes import FakeIndex, FakeSource


@pytest.fixture
def fake_index():
    return FakeIndex()


@pytest.fixture
def fake_source():
    return FakeSource(site_id='main')


@pytest.fixture
def orchestrator(fake_index, fake_source):
    config = SyncConfig(name='webhook', index_name='test_index', indexable_types=['post'],
                        sites=[SiteConfig(id='main', base_url='https://example.com')])
    return DocumentSyncOrchestrator(config, fake_index, fake_source)


@pytest.fixture
def client(orchestrator):
    return TestClient(create_app(provider=lambda site: orchestrator))


def test_sync_replaces_records(client, fake_index, fake_source):
    fake_source.put(make_document(3, sections(2), site_id='main'))

    response = client.post('/documents/3/sync')

    assert response.status_code == 200
    body = response.json()
    assert body['outcome'] == 'replaced'
    assert body['records_written'] == 2
    assert fake_index.object_ids('main#post#3') == ['main-post-3-0', 'main-post-3-1']


def test_ineligible_document_is_skipped(client, fake_index, fake_source):
    fake_source.put(make_document(3, type='page'))

    response = client.post('/documents/3/sync')

    assert response.status_code == 200
    assert response.json()['outcome'] == 'skipped'
    assert fake_index.calls == []


def test_index_failure_is_a_bad_gateway(client, fake_index, fake_source):
    fake_index.fail_upsert_calls = {1}
    fake_source.put(make_document(3))

    response = client.post('/documents/3/sync')

    assert response.status_code == 502
    assert response.json()['outcome'] == 'failed'


def test_delete_uses_the_site_key(client, fake_index):
    fake_index.objects()['main-post-3-0'] = {'distinct_key': 'main#post#3'}

    response = client.delete('/documents/post/3')

    assert response.status_code == 200
    assert response.json()['distinct_key'] == 'main#post#3'
    assert fake_index.objects() == {}


def test_configuration_error_is_unavailable():
    def provider(site):
        raise ConfigurationError("Configuration file not found: sync_config.yaml")

    client = TestClient(create_app(provider=provider))

    response = client.post('/documents/1/sync')

    assert response.status_code == 503
    assert client.get('/health').json()['status'] == 'unconfigured'


def test_health(client):
    assert client.get('/health').json() == {'status': 'ok', 'index_reachable': True}


def test_handlers_run_in_the_threadpool(client):
    endpoints = [route.endpoint for route in client.app.routes if route.path.startswith(('/documents', '/health'))]

    assert len(endpoints) == 3
    assert not any(inspect.iscoroutinefunction(endpoint) for endpoint in endpoints)
