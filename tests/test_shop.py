from models import db
from models.item import Item
from models.sale import Sale
from app.version import API_PREFIX


def _order(client, lines, **extra):
    payload = {'items': lines, 'customer_info': {'name': 'Jane', 'email': 'jane@example.com',
                                                 'address': '1 Main St'}}
    payload.update(extra)
    return client.post(f"{API_PREFIX}/shop/orders", json=payload)


def test_public_catalog_hides_internal_and_out_of_stock(client, make_item):
    make_item(name='Visible', quantity=5)
    make_item(name='Hidden', quantity=5, ecommerce_visibility='internal')
    make_item(name='Disabled', quantity=5, is_ecommerce_enabled=False)
    make_item(name='Sold out', quantity=0)
    names = [p['name'] for p in client.get(f"{API_PREFIX}/shop/products").get_json()['data']]
    assert names == ['Visible']
    with_empty = client.get(f"{API_PREFIX}/shop/products?in_stock=false").get_json()['data']
    assert sorted(p['name'] for p in with_empty) == ['Sold out', 'Visible']
    assert 'reorder_level' not in with_empty[0]


def test_product_detail_404_unless_public(client, make_item):
    public = make_item(name='Visible')
    limited = make_item(name='Limited', ecommerce_visibility='limited')
    assert client.get(f"{API_PREFIX}/shop/products/{public.id}").status_code == 200
    assert client.get(f"{API_PREFIX}/shop/products/{limited.id}").status_code == 404


def test_price_filters_and_categories(client, make_item):
    make_item(name='Cheap', category='Food', price=1.0)
    make_item(name='Pricey', category='Tools', price=50.0)
    cheap = client.get(f"{API_PREFIX}/shop/products?max_price=10").get_json()['data']
    assert [p['name'] for p in cheap] == ['Cheap']
    assert client.get(f"{API_PREFIX}/shop/products?min_price=abc").status_code == 400
    assert client.get(f"{API_PREFIX}/shop/categories").get_json()['data'] == ['Food', 'Tools']


def test_place_order_decrements_stock(client, make_item):
    a = make_item(name='A', quantity=5, price=2.0)
    b = make_item(name='B', quantity=3, price=1.25)
    response = _order(client, [{'product_id': a.id, 'quantity': 2}, {'product_id': b.id, 'quantity': 1},
                               {'product_id': a.id, 'quantity': 1}])
    assert response.status_code == 201
    data = response.get_json()['data']
    assert len(data['order_ids']) == 2
    assert data['total_amount'] == 7.25
    assert data['sales'][0]['order_status'] == 'pending'
    assert data['sales'][0]['payment_method'] == 'online'
    assert db.session.get(Item, a.id).quantity == 2
    assert db.session.get(Item, b.id).quantity == 2


def test_order_is_all_or_nothing(client, make_item):
    a = make_item(name='A', quantity=5)
    b = make_item(name='B', quantity=1)
    response = _order(client, [{'product_id': a.id, 'quantity': 2}, {'product_id': b.id, 'quantity': 3}])
    assert response.status_code == 400
    assert 'Insufficient stock for B' in response.get_json()['message']
    assert db.session.get(Item, a.id).quantity == 5
    assert Sale.query.count() == 0


def test_order_for_hidden_product_refused(client, make_item):
    hidden = make_item(name='Hidden', ecommerce_visibility='internal')
    response = _order(client, [{'product_id': hidden.id, 'quantity': 1}])
    assert response.status_code == 404
    assert db.session.get(Item, hidden.id).quantity == 10


def test_order_validation(client, make_item):
    item = make_item()
    assert _order(client, []).status_code == 400
    assert _order(client, [{'product_id': item.id, 'quantity': 0}]).status_code == 400
    assert _order(client, [{'product_id': item.id, 'quantity': 1}], payment_method='barter').status_code == 400


def test_order_lookup(client, make_item):
    item = make_item(name='A')
    order_id = _order(client, [{'product_id': item.id, 'quantity': 2}]).get_json()['data']['order_id']
    data = client.get(f"{API_PREFIX}/shop/orders/{order_id}").get_json()['data']
    assert data['status'] == 'pending'
    assert data['items'][0]['quantity'] == 2
    assert data['customer_name'] == 'Jane'
    assert client.get(f"{API_PREFIX}/shop/orders/999").status_code == 404


def test_merchant_order_management(client, make_item, make_user, auth_header):
    manager = make_user(username='mgr', role='manager')
    staff = make_user(username='clerk', role='staff')
    item = make_item(name='A', price=4.0)
    order_id = _order(client, [{'product_id': item.id, 'quantity': 1}]).get_json()['data']['order_id']

    assert client.get(f"{API_PREFIX}/shop/merchant/orders", headers=auth_header(staff)).status_code == 403
    listed = client.get(f"{API_PREFIX}/shop/merchant/orders?status=pending", headers=auth_header(manager))
    assert len(listed.get_json()['data']) == 1

    bad = client.put(f"{API_PREFIX}/shop/merchant/orders/{order_id}", json={'order_status': 'lost'},
                     headers=auth_header(manager))
    assert bad.status_code == 400
    shipped = client.put(f"{API_PREFIX}/shop/merchant/orders/{order_id}",
                         json={'order_status': 'shipped', 'tracking_number': 'TRK1'},
                         headers=auth_header(manager))
    assert shipped.get_json()['data']['order_status'] == 'shipped'
    assert shipped.get_json()['data']['tracking_number'] == 'TRK1'

    analytics = client.get(f"{API_PREFIX}/shop/merchant/analytics", headers=auth_header(manager)).get_json()['data']
    assert analytics['total_orders'] == 1
    assert analytics['total_revenue'] == 4.0
    assert analytics['status_breakdown']['shipped'] == 1


def test_catalog_management(client, make_item, make_user, auth_header):
    seller = make_user(username='seller', role='ecommerce')
    staff = make_user(username='clerk', role='staff')
    item = make_item(name='A', ecommerce_visibility='limited')
    make_item(name='B')

    assert client.get(f"{API_PREFIX}/ecommerce/catalog", headers=auth_header(staff)).status_code == 403
    limited = client.get(f"{API_PREFIX}/ecommerce/catalog", headers=auth_header(seller)).get_json()['data']
    assert [p['name'] for p in limited] == ['A']
    everything = client.get(f"{API_PREFIX}/ecommerce/catalog?visibility=all", headers=auth_header(seller))
    assert len(everything.get_json()['data']) == 2

    updated = client.put(f"{API_PREFIX}/ecommerce/catalog/{item.id}",
                         json={'images': [' a.png ', '', 'b.png'], 'description': '  Nice  '},
                         headers=auth_header(seller))
    assert updated.get_json()['data']['images'] == ['a.png', 'b.png']
    assert updated.get_json()['data']['description'] == 'Nice'

    shown = client.patch(f"{API_PREFIX}/ecommerce/catalog/{item.id}/visibility",
                         json={'ecommerce_visibility': 'public'}, headers=auth_header(seller))
    assert shown.get_json()['data']['ecommerce_visibility'] == 'public'
    assert client.get(f"{API_PREFIX}/shop/products/{item.id}").status_code == 200

    bad = client.patch(f"{API_PREFIX}/ecommerce/catalog/{item.id}/visibility",
                       json={'ecommerce_visibility': 'secret'}, headers=auth_header(seller))
    assert bad.status_code == 400


def test_catalog_update_rejects_null_for_required_fields(client, make_user, make_item, auth_header):
    seller = make_user(username='seller', role='ecommerce')
    item = make_item(name='A', price=4.0)
    for field in ('name', 'price', 'is_ecommerce_enabled', 'ecommerce_visibility'):
        response = client.put(f"{API_PREFIX}/ecommerce/catalog/{item.id}",
                              json={field: None}, headers=auth_header(seller))
        assert response.status_code == 400
    db.session.expire_all()
    assert db.session.get(Item, item.id).price == 4.0


def test_order_quantity_beyond_column_range_rejected(client, make_item):
    item = make_item(quantity=5)
    response = _order(client, [{'product_id': item.id, 'quantity': 2**40}])
    assert response.status_code == 400
    assert Sale.query.count() == 0
