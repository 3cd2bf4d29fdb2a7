from datetime import datetime, timedelta

from models import db
from models.item import Item
from models.sale import Sale
from app.version import API_PREFIX
from app.services.stock import record_sale


def _sell(client, headers, item_id, quantity, **extra):
    return client.post(f"{API_PREFIX}/sales", json={'item_id': item_id, 'quantity_sold': quantity, **extra},
                       headers=headers)


def test_sell_until_low_stock_then_refuse(client, make_user, make_item, auth_header):
    staff = make_user(username='clerk', role='staff')
    headers = auth_header(staff)
    item = make_item(quantity=10, reorder_level=5, price=2.00)

    first = _sell(client, headers, item.id, 5)
    assert first.status_code == 201
    assert first.get_json()['data']['total_amount'] == 10.00
    assert first.get_json()['data']['sold_by']['username'] == 'clerk'
    assert db.session.get(Item, item.id).low_stock is False

    assert _sell(client, headers, item.id, 1).status_code == 201
    assert db.session.get(Item, item.id).low_stock is True

    refused = _sell(client, headers, item.id, 5)
    assert refused.status_code == 400
    assert refused.get_json()['message'] == 'Insufficient stock for this sale'
    assert db.session.get(Item, item.id).quantity == 4
    assert Sale.query.count() == 2


def test_sale_validation(client, make_user, make_item, auth_header):
    staff = make_user(username='clerk', role='staff')
    headers = auth_header(staff)
    item = make_item()
    assert _sell(client, headers, 'abc', 1).status_code == 400
    assert _sell(client, headers, item.id, 0).status_code == 400
    assert _sell(client, headers, 999, 1).status_code == 404
    assert _sell(client, headers, item.id, 1, date='not-a-date').status_code == 400


def test_sale_with_explicit_date(client, make_user, make_item, auth_header):
    staff = make_user(username='clerk', role='staff')
    item = make_item()
    response = _sell(client, auth_header(staff), item.id, 2.7, date='2026-03-01T10:00:00')
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['quantity_sold'] == 2
    assert data['date'] == '2026-03-01T10:00:00'


def test_list_sales_requires_manager(client, make_user, make_item, auth_header):
    staff = make_user(username='clerk', role='staff')
    manager = make_user(username='mgr', role='manager')
    item = make_item()
    record_sale(item.id, 1, user=staff)
    assert client.get(f"{API_PREFIX}/sales", headers=auth_header(staff)).status_code == 403
    listed = client.get(f"{API_PREFIX}/sales?item_id={item.id}", headers=auth_header(manager))
    assert listed.status_code == 200
    assert len(listed.get_json()['data']) == 1
    assert client.get(f"{API_PREFIX}/sales?item_id=x", headers=auth_header(manager)).status_code == 400


def test_list_sales_rejects_inverted_range(client, make_user, auth_header):
    manager = make_user(username='mgr', role='manager')
    response = client.get(f"{API_PREFIX}/sales?from=2026-02-01&to=2026-01-01", headers=auth_header(manager))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'From date must be before to date'


def test_my_summary(client, make_user, make_item, auth_header):
    staff = make_user(username='clerk', role='staff')
    other = make_user(username='other', role='staff')
    item = make_item(quantity=100, price=1.5)
    record_sale(item.id, 2, user=staff)
    record_sale(item.id, 4, user=other)
    record_sale(item.id, 1, sale_date=datetime.utcnow() - timedelta(days=40), user=staff)

    data = client.get(f"{API_PREFIX}/sales/summary/me", headers=auth_header(staff)).get_json()['data']
    assert data['today']['total_quantity'] == 2
    assert data['today']['total_amount'] == 3.0
    assert len(data['recent_sales']) == 2


def test_get_sale_and_date_range_report(client, make_user, make_item, auth_header):
    manager = make_user(username='mgr', role='manager')
    item = make_item(quantity=100, price=1.0)
    sale = record_sale(item.id, 3, sale_date='2026-05-02T09:00:00')
    record_sale(item.id, 2, sale_date='2026-05-02T15:00:00')
    record_sale(item.id, 1, sale_date='2026-05-04T15:00:00')
    headers = auth_header(manager)

    assert client.get(f"{API_PREFIX}/sales/{sale.id}", headers=headers).get_json()['data']['quantity_sold'] == 3
    assert client.get(f"{API_PREFIX}/sales/9999", headers=headers).status_code == 404

    report = client.get(f"{API_PREFIX}/sales/report/date-range?from=2026-05-01&to=2026-05-31",
                        headers=headers).get_json()['data']
    assert report['data'] == [
        {'date': '2026-05-02', 'total_quantity': 5, 'total_amount': 5.0},
        {'date': '2026-05-04', 'total_quantity': 1, 'total_amount': 1.0},
    ]
