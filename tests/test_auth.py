import pytest
from models import db
from models.activity_log import ActivityLog
from models.item import Item
from models.user import User
from app.version import API_PREFIX


def login(client, username, password):
    return client.post(f"{API_PREFIX}/auth/login", json={'username': username, 'password': password})


def test_login_success_returns_token(client, make_user):
    make_user(username='alice', role='manager', password='pw12345')
    response = login(client, 'alice', 'pw12345')
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['role'] == 'manager'
    assert data['username'] == 'alice'
    assert data['token']
    assert ActivityLog.query.filter_by(action='login').count() == 1


def test_login_wrong_password(client, make_user):
    make_user(username='alice', password='pw12345')
    response = login(client, 'alice', 'nope')
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Invalid credentials'


def test_login_unknown_user_same_message(client):
    response = login(client, 'ghost', 'whatever')
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Invalid credentials'


def test_login_inactive_account(client, make_user):
    make_user(username='bob', password='pw12345', is_active=False)
    response = login(client, 'bob', 'pw12345')
    assert response.status_code == 403


def test_token_from_login_authorizes_requests(client, make_user):
    make_user(username='alice', role='manager', password='pw12345')
    token = login(client, 'alice', 'pw12345').get_json()['data']['token']
    response = client.get(f"{API_PREFIX}/items", headers={'Authorization': f'Bearer {token}'})
    assert response.status_code == 200


def test_missing_and_bad_tokens(client):
    assert client.get(f"{API_PREFIX}/items").status_code == 401
    response = client.get(f"{API_PREFIX}/items", headers={'Authorization': 'Bearer garbage'})
    assert response.status_code == 401
    assert response.get_json()['status'] == 'error'


def test_deactivated_user_token_rejected(client, make_user, auth_header):
    user = make_user(username='carol', role='staff')
    headers = auth_header(user)
    user.is_active = False
    db.session.commit()
    assert client.get(f"{API_PREFIX}/items", headers=headers).status_code == 401


def test_register_requires_admin(client, make_user, auth_header):
    manager = make_user(username='mgr', role='manager')
    response = client.post(
        f"{API_PREFIX}/auth/register",
        json={'username': 'newbie', 'password': 'secret1', 'role': 'staff'},
        headers=auth_header(manager),
    )
    assert response.status_code == 403


def test_register_unknown_role_falls_back_to_staff(client, make_user, auth_header):
    admin = make_user()
    response = client.post(
        f"{API_PREFIX}/auth/register",
        json={'username': 'newbie', 'password': 'secret1', 'role': 'overlord'},
        headers=auth_header(admin),
    )
    assert response.status_code == 201
    assert response.get_json()['data']['role'] == 'staff'
    assert response.get_json()['data']['created_by'] == 'admin'


def test_register_duplicate_username(client, make_user, auth_header):
    admin = make_user()
    response = client.post(
        f"{API_PREFIX}/auth/register",
        json={'username': 'admin', 'password': 'secret1'},
        headers=auth_header(admin),
    )
    assert response.status_code == 409


def test_change_password(client, make_user, auth_header):
    user = make_user(username='dave', role='staff', password='oldpass')
    headers = auth_header(user)
    bad = client.post(f"{API_PREFIX}/auth/change-password",
                      json={'current_password': 'wrong', 'new_password': 'newpass1'}, headers=headers)
    assert bad.status_code == 400
    short = client.post(f"{API_PREFIX}/auth/change-password",
                        json={'current_password': 'oldpass', 'new_password': 'abc'}, headers=headers)
    assert short.status_code == 400
    good = client.post(f"{API_PREFIX}/auth/change-password",
                       json={'current_password': 'oldpass', 'new_password': 'newpass1'}, headers=headers)
    assert good.status_code == 200
    assert login(client, 'dave', 'newpass1').status_code == 200


@pytest.mark.parametrize('role,expected', [
    ('staff', 403),
    ('ecommerce', 403),
    ('manager', 200),
    ('admin', 200),
])
def test_adjust_stock_by_role(client, make_user, make_item, auth_header, role, expected):
    user = make_user(username=f'u_{role}', role=role)
    item = make_item(quantity=3)
    response = client.patch(
        f"{API_PREFIX}/items/{item.id}/adjust-stock",
        json={'amount': 2, 'operation': 'increase'},
        headers=auth_header(user),
    )
    assert response.status_code == expected
    assert db.session.get(Item, item.id).quantity == (5 if expected == 200 else 3)


def test_staff_can_record_sales_but_not_read_reports(client, make_user, make_item, auth_header):
    staff = make_user(username='clerk', role='staff')
    item = make_item()
    headers = auth_header(staff)
    sale = client.post(f"{API_PREFIX}/sales", json={'item_id': item.id, 'quantity_sold': 1}, headers=headers)
    assert sale.status_code == 201
    assert client.get(f"{API_PREFIX}/reports/low-stock", headers=headers).status_code == 403
    assert client.get(f"{API_PREFIX}/sales/summary/me", headers=headers).status_code == 200


def test_role_scope_table():
    from app.auth.permissions import role_has_scope
    assert role_has_scope('admin', 'users:manage')
    assert role_has_scope('manager', 'stock:adjust')
    assert not role_has_scope('manager', 'items:delete')
    assert not role_has_scope('staff', 'stock:adjust')
    assert role_has_scope('ecommerce', 'catalog:manage')
    assert not role_has_scope('nobody', 'sales:record')


def test_admin_only_scopes_denied_to_other_roles():
    from app.auth.permissions import ADMIN_ONLY_SCOPES, ROLE_SCOPES, role_has_scope
    for role in ROLE_SCOPES:
        for scope in ADMIN_ONLY_SCOPES:
            assert role_has_scope(role, scope) is (role == 'admin')


def test_every_route_scope_is_known(app):
    from app.auth.permissions import KNOWN_SCOPES
    guards = [f for funcs in app.before_request_funcs.values() for f in funcs]
    used = {
        getattr(view, 'required_scope', None)
        for view in list(app.view_functions.values()) + guards
    } - {None}
    assert {'items:delete', 'sales:record', 'alerts:trigger', 'catalog:manage'} <= used
    assert used <= KNOWN_SCOPES


def test_users_count_visible_to_admin_only(client, make_user, auth_header):
    admin = make_user()
    staff = make_user(username='clerk', role='staff')
    as_admin = client.get(f"{API_PREFIX}/analytics/dashboard-stats", headers=auth_header(admin))
    as_staff = client.get(f"{API_PREFIX}/analytics/dashboard-stats", headers=auth_header(staff))
    assert as_admin.get_json()['data']['user_count'] == User.query.count()
    assert as_staff.get_json()['data']['user_count'] is None
