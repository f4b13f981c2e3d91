from storefront.domain.events import UserLoggedIn
from storefront.services.login_events import handle_user_logged_in
from storefront.services.merge_service import MERGED, NOOP, PROMOTED


def _set_cookie_headers(response):
    return [v for k, v in response.headers.multi_items() if k.lower() == "set-cookie"]


def test_login_event_without_session_is_a_noop(merge_service):
    result = handle_user_logged_in(UserLoggedIn(user_id=1), merge_service)

    assert result.outcome == NOOP


def test_login_event_merges_guest_cart(merge_service, make_user, make_cart, fetch):
    make_user(1)
    user_cart = make_cart(user_id=1, items={1: 1})
    make_cart(session_id="sess", items={1: 2, 2: 1})

    result = handle_user_logged_in(UserLoggedIn(user_id=1, session_id="sess"), merge_service)

    assert result.outcome == MERGED
    assert [(i.product_id, i.quantity) for i in fetch.items(user_cart)] == [(1, 3), (2, 1)]


def test_create_and_get_user(client):
    assert client.post("/users/", json={"id": 11, "name": "Ola"}).status_code == 200

    response = client.get("/users/11")
    assert response.json() == {"id": 11, "name": "Ola"}
    assert client.get("/users/12").status_code == 404


def test_login_endpoint_promotes_guest_cart_and_clears_cookie(client, fetch):
    client.post("/users/", json={"id": 11, "name": "Ola"})
    client.post("/cart/items", json={"product_id": 2, "quantity": 2})
    guest_cart = fetch.carts()[0]

    response = client.post("/users/11/login", headers={"X-User-Id": "11"})

    assert response.status_code == 200
    assert response.json() == {"user_id": 11, "merge": PROMOTED, "cart_id": guest_cart.id}
    cookies = _set_cookie_headers(response)
    assert len(cookies) == 1
    assert "Max-Age=0" in cookies[0]
    assert fetch.cart(guest_cart.id).user_id == 11


def test_login_without_guest_cookie_sets_no_cookie(client, make_user):
    make_user(11)

    response = client.post("/users/11/login", headers={"X-User-Id": "11"})

    assert response.status_code == 200
    assert response.json()["merge"] == NOOP
    assert _set_cookie_headers(response) == []


def test_login_is_idempotent(client, fetch):
    client.post("/users/", json={"id": 11, "name": "Ola"})
    client.post("/cart/items", json={"product_id": 2, "quantity": 2})
    session_id = client.cookies["cart_session"]

    client.post("/users/11/login", headers={"X-User-Id": "11"})
    client.cookies.set("cart_session", session_id)
    response = client.post("/users/11/login", headers={"X-User-Id": "11"})

    assert response.json()["merge"] == NOOP
    assert len(fetch.carts()) == 1


def test_login_for_unknown_user_is_404(client):
    assert client.post("/users/99/login", headers={"X-User-Id": "99"}).status_code == 404


def test_anonymous_login_is_refused(client, make_user, make_cart, fetch):
    make_user(5)
    user_cart = make_cart(user_id=5, items={2: 1})
    client.post("/cart/items", json={"product_id": 1, "quantity": 7})
    guest_cart = [c.id for c in fetch.carts() if c.user_id is None][0]

    response = client.post("/users/5/login")

    assert response.status_code == 403
    assert [(i.product_id, i.quantity) for i in fetch.items(user_cart)] == [(2, 1)]
    assert fetch.cart(guest_cart).session_id == client.cookies["cart_session"]


def test_login_as_another_user_is_refused(client, make_user, make_cart, fetch):
    make_user(5)
    make_user(6)
    user_cart = make_cart(user_id=5, items={2: 1})

    response = client.post("/users/5/login", headers={"X-User-Id": "6"})

    assert response.status_code == 403
    assert [(i.product_id, i.quantity) for i in fetch.items(user_cart)] == [(2, 1)]
    assert [c.user_id for c in fetch.carts()] == [5]
