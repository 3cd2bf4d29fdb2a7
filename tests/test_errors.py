import importlib
import sys
import pytest

from app.version import API_PREFIX


def load_app(monkeypatch):
    monkeypatch.setenv('APP_ENV', 'testing')
    for module in ['main', 'app.config']:
        if module in sys.modules:
            del sys.modules[module]
    main = importlib.import_module('main')
    return main.app


@pytest.fixture()
def test_client(monkeypatch):
    app = load_app(monkeypatch)
    app.config.update(TESTING=True)
    return app.test_client()


def test_404_json_envelope(test_client):
    resp = test_client.get('/no/such/route')
    assert resp.status_code == 404
    data = resp.get_json()
    assert data['status'] == 'error'
    assert data['code'] == 404
    assert isinstance(data.get('message'), str)


def test_unexpected_500_json_envelope(client, make_user, auth_header, monkeypatch):
    from app.services import reports

    def boom():
        raise RuntimeError("boom")

    monkeypatch.setattr(reports, 'inventory_summary', boom)
    admin = make_user()
    resp = client.get(f'{API_PREFIX}/reports/inventory-summary', headers=auth_header(admin))
    assert resp.status_code == 500
    data = resp.get_json()
    assert data['status'] == 'error'
    assert data['code'] == 500
    assert 'RuntimeError' not in data['message']
    assert 'boom' not in data['message']


def test_missing_item_is_404_envelope(client, make_user, auth_header):
    admin = make_user()
    resp = client.get(f'{API_PREFIX}/items/999', headers=auth_header(admin))
    assert resp.status_code == 404
    assert resp.get_json() == {'status': 'error', 'message': 'Item not found', 'code': 404}


def test_schema_errors_name_the_field(client, make_user, auth_header):
    admin = make_user()
    resp = client.post(f'{API_PREFIX}/items', json={'name': 'Bolt'}, headers=auth_header(admin))
    assert resp.status_code == 400
    data = resp.get_json()
    assert data['status'] == 'error'
    fields = {e['field'] for e in data['errors']}
    assert {'category', 'quantity', 'reorder_level', 'price'} <= fields
