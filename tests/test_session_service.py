from datetime import datetime, timedelta, timezone

from storefront.services.session_service import INDEX_KEY, SESSION_ID_LENGTH, SessionService


def test_generated_session_ids_are_opaque_and_unique():
    ids = {SessionService.generate_session_id() for _ in range(200)}

    assert len(ids) == 200
    for session_id in ids:
        assert len(session_id) == SESSION_ID_LENGTH
        assert session_id.isalnum()


def test_start_session_writes_record_with_guest_ttl(session_service, redis_client):
    now = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)
    session_service.start_session("abc", now=now)

    key = "cart:session:abc"
    assert redis_client.get(key) == now.isoformat()
    assert 0 < redis_client.ttl(key) <= session_service.guest_ttl
    assert redis_client.zscore(INDEX_KEY, key) == now.timestamp()
    assert session_service.last_seen(session_id="abc") == now


def test_extend_without_user_or_session_is_a_noop(session_service, redis_client):
    assert session_service.extend_session(None, None) is False
    assert redis_client.keys("*") == []


def test_extend_guest_refreshes_record_and_touches_guest_cart(session_service, make_cart, fetch):
    old = datetime(2026, 1, 1, tzinfo=timezone.utc)
    now = datetime(2026, 1, 3, tzinfo=timezone.utc)
    cart_id = make_cart(session_id="abc", items={1: 1}, updated_at=old)
    session_service.start_session("abc", now=old)

    assert session_service.extend_session(None, "abc", now=now) is True

    assert session_service.last_seen(session_id="abc") == now
    assert fetch.cart(cart_id).updated_at.replace(tzinfo=None) == now.replace(tzinfo=None)


def test_extend_for_user_uses_user_record(session_service, redis_client):
    assert session_service.extend_session(7, None) is True

    assert redis_client.exists("cart:user:7") == 1
    assert 0 < redis_client.ttl("cart:user:7") <= session_service.user_ttl


def test_extend_for_user_prefers_user_record_over_session(session_service, redis_client):
    session_service.extend_session(7, "abc")

    assert redis_client.exists("cart:user:7") == 1
    assert redis_client.exists("cart:session:abc") == 0


def test_cleanup_drops_only_stale_records(session_service, redis_client):
    start = datetime.now(timezone.utc)
    session_service.start_session("stale", now=start - timedelta(hours=30))
    session_service.start_session("fresh", now=start)
    session_service.extend_session(7, None, now=start - timedelta(hours=30))

    removed = session_service.cleanup_expired_sessions(now=start)

    assert removed == 1
    assert redis_client.exists("cart:session:stale") == 0
    assert redis_client.exists("cart:session:fresh") == 1
    # users get a week
    assert redis_client.exists("cart:user:7") == 1
    assert redis_client.zscore(INDEX_KEY, "cart:session:stale") is None


def test_cleanup_drops_index_entries_for_vanished_keys(session_service, redis_client):
    session_service.start_session("gone")
    redis_client.delete("cart:session:gone")

    assert session_service.cleanup_expired_sessions() == 1
    assert redis_client.zcard(INDEX_KEY) == 0


def test_cleanup_with_nothing_to_do(session_service):
    assert session_service.cleanup_expired_sessions() == 0


def test_forget_session(session_service, redis_client):
    session_service.start_session("abc")
    session_service.forget_session(session_id="abc")

    assert redis_client.exists("cart:session:abc") == 0
    assert redis_client.zcard(INDEX_KEY) == 0
