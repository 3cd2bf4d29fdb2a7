from datetime import datetime, timedelta

from models import db
from models.activity_log import ActivityLog
from models.item import Item
from models.user import User
from app.version import API_PREFIX
from app.services.activity import log_activity
from app.services.stock import record_sale


def test_user_management_is_admin_only(client, make_user, auth_header):
    manager = make_user(username='mgr', role='manager')
    admin = make_user()
    assert client.get(f"{API_PREFIX}/users", headers=auth_header(manager)).status_code == 403
    listed = client.get(f"{API_PREFIX}/users", headers=auth_header(admin)).get_json()['data']
    assert {u['username'] for u in listed} == {'mgr', 'admin'}
    assert all('password_hash' not in u for u in listed)


def test_update_user_role_and_password(client, make_user, auth_header):
    admin = make_user()
    clerk = make_user(username='clerk', role='staff', password='oldpass')
    response = client.put(f"{API_PREFIX}/users/{clerk.id}", json={'role': 'manager', 'password': 'newpass1'},
                          headers=auth_header(admin))
    assert response.status_code == 200
    assert response.get_json()['data']['role'] == 'manager'
    assert db.session.get(User, clerk.id).check_password('newpass1')
    entry = ActivityLog.query.filter_by(action='user_updated').one()
    assert entry.details == {'fields': ['role', 'password']}


def test_admin_cannot_demote_or_delete_self(client, make_user, auth_header):
    admin = make_user()
    headers = auth_header(admin)
    assert client.put(f"{API_PREFIX}/users/{admin.id}", json={'role': 'staff'}, headers=headers).status_code == 400
    assert client.delete(f"{API_PREFIX}/users/{admin.id}", headers=headers).status_code == 400
    assert client.patch(f"{API_PREFIX}/users/{admin.id}/toggle-active", headers=headers).status_code == 400


def test_delete_user_blocked_by_sales(client, make_user, make_item, auth_header):
    admin = make_user()
    clerk = make_user(username='clerk', role='staff')
    item = make_item()
    record_sale(item.id, 1, user=clerk)
    response = client.delete(f"{API_PREFIX}/users/{clerk.id}", headers=auth_header(admin))
    assert response.status_code == 409
    assert db.session.get(User, clerk.id) is not None


def test_delete_user_clears_references(client, make_user, make_item, auth_header):
    admin = make_user()
    temp = make_user(username='temp', role='manager')
    item = make_item(last_modified_by_id=temp.id)
    response = client.delete(f"{API_PREFIX}/users/{temp.id}", headers=auth_header(admin))
    assert response.status_code == 200
    assert db.session.get(Item, item.id).last_modified_by_id is None


def test_toggle_active_and_stats(client, make_user, auth_header):
    admin = make_user()
    clerk = make_user(username='clerk', role='staff')
    headers = auth_header(admin)
    toggled = client.patch(f"{API_PREFIX}/users/{clerk.id}/toggle-active", headers=headers)
    assert toggled.get_json()['data']['is_active'] is False
    stats = client.get(f"{API_PREFIX}/users/stats/overview", headers=headers).get_json()['data']
    assert stats['total_users'] == 2
    assert stats['inactive_users'] == 1
    assert stats['role_distribution'] == {'admin': 1, 'staff': 1}


def _old_entry(user, days):
    entry = log_activity(user, 'login', 'user', 'old login')
    entry.created_at = datetime.utcnow() - timedelta(days=days)
    db.session.commit()


def test_logs_listing_and_pagination(client, make_user, auth_header):
    admin = make_user()
    for n in range(5):
        log_activity(admin, 'item_created', 'item', f'Created item {n}')
    db.session.commit()
    page = client.get(f"{API_PREFIX}/logs?limit=2&page=2&action=item_created",
                      headers=auth_header(admin)).get_json()['data']
    assert page['total'] == 5
    assert page['total_pages'] == 3
    assert len(page['logs']) == 2
    assert client.get(f"{API_PREFIX}/logs?limit=x", headers=auth_header(admin)).status_code == 400


def test_my_activity_and_recent(client, make_user, auth_header):
    admin = make_user()
    clerk = make_user(username='clerk', role='staff')
    log_activity(admin, 'item_created', 'item', 'Created item')
    log_activity(clerk, 'sale_recorded', 'sale', 'Sold item')
    db.session.commit()
    mine = client.get(f"{API_PREFIX}/logs/my-activity", headers=auth_header(clerk)).get_json()['data']
    assert [e['action'] for e in mine['logs']] == ['sale_recorded']
    assert client.get(f"{API_PREFIX}/logs/recent", headers=auth_header(clerk)).status_code == 403
    recent = client.get(f"{API_PREFIX}/logs/recent?limit=1", headers=auth_header(admin)).get_json()['data']
    assert len(recent) == 1


def test_log_stats_admin_only(client, make_user, auth_header):
    admin = make_user()
    manager = make_user(username='mgr', role='manager')
    log_activity(admin, 'login', 'user', 'in')
    log_activity(manager, 'login', 'user', 'in')
    db.session.commit()
    assert client.get(f"{API_PREFIX}/logs/stats", headers=auth_header(manager)).status_code == 403
    stats = client.get(f"{API_PREFIX}/logs/stats", headers=auth_header(admin)).get_json()['data']
    assert stats['total'] == 2
    assert stats['unique_users'] == 2
    assert stats['by_action'] == [{'key': 'login', 'count': 2}]


def test_cleanup_removes_only_old_entries(client, make_user, auth_header):
    admin = make_user()
    _old_entry(admin, 120)
    _old_entry(admin, 10)
    headers = auth_header(admin)
    assert client.delete(f"{API_PREFIX}/logs/cleanup", json={'older_than_days': 0}, headers=headers).status_code == 400
    response = client.delete(f"{API_PREFIX}/logs/cleanup", headers=headers)
    assert response.status_code == 200
    assert response.get_json()['data']['deleted_count'] == 1
    response = client.delete(f"{API_PREFIX}/logs/cleanup", json={'older_than_days': 5}, headers=headers)
    assert response.get_json()['data']['deleted_count'] == 1
    assert ActivityLog.query.count() == 0


def test_recipients_crud(client, make_user, auth_header):
    admin = make_user()
    manager = make_user(username='mgr', role='manager')
    headers = auth_header(admin)
    created = client.post(f"{API_PREFIX}/recipients", json={'name': 'Ops', 'email': 'Ops@Example.com'},
                          headers=headers)
    assert created.status_code == 201
    data = created.get_json()['data']
    assert data['email'] == 'ops@example.com'
    assert data['types'] == ['daily_report', 'low_stock']

    dup = client.post(f"{API_PREFIX}/recipients", json={'name': 'Ops 2', 'email': 'ops@example.com'},
                      headers=headers)
    assert dup.status_code == 409
    bad = client.post(f"{API_PREFIX}/recipients", json={'name': 'X', 'email': 'not-an-email'}, headers=headers)
    assert bad.status_code == 400

    assert client.get(f"{API_PREFIX}/recipients", headers=auth_header(manager)).status_code == 200
    assert client.post(f"{API_PREFIX}/recipients", json={'name': 'Y', 'email': 'y@example.com'},
                       headers=auth_header(manager)).status_code == 403

    updated = client.put(f"{API_PREFIX}/recipients/{data['id']}", json={'types': ['low_stock']}, headers=headers)
    assert updated.get_json()['data']['types'] == ['low_stock']
    assert client.delete(f"{API_PREFIX}/recipients/{data['id']}", headers=headers).status_code == 200
