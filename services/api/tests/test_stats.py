from datetime import date, datetime, timedelta, timezone

import pytest

from app.models import Order
from app.services import orders as order_service
from app.services import reviews as review_service
from app.services import stats as stats_service
from app.services.orders import CartLine
from conftest import auth


def _completed(db, cache, user, lines):
    order = order_service.create_order(db, cache, user.id, lines=lines)
    for target in ("cooking", "ready", "completed"):
        order_service.transition(db, cache, order.id, target)
    return order


def test_served_counts_and_top_dish(db_session, diner, dishes, cache):
    a, b, _ = dishes
    _completed(db_session, cache, diner, [CartLine(dish_id=a.id, quantity=2), CartLine(dish_id=b.id)])
    _completed(db_session, cache, diner, [CartLine(dish_id=a.id)])

    stats = stats_service.compute_stats(db_session)

    assert stats.total_orders == 2
    assert stats.completed_orders == 2
    assert stats.total_dishes_served == 4
    assert stats.top_dishes[0].dish_id == a.id
    assert stats.top_dishes[0].total_ordered == 3


def test_served_ignores_orders_not_completed(db_session, diner, dishes, cache):
    _completed(db_session, cache, diner, [CartLine(dish_id=dishes[0].id)])
    order_service.create_order(db_session, cache, diner.id, lines=[CartLine(dish_id=dishes[1].id, quantity=4)])

    stats = stats_service.compute_stats(db_session)
    assert stats.total_orders == 2
    assert stats.completed_orders == 1
    assert stats.total_dishes_served == 1


def test_top_dishes_tie_breaks_on_lowest_dish_id(db_session, diner, dishes, cache):
    a, b, _ = dishes
    order_service.create_order(db_session, cache, diner.id,
                               lines=[CartLine(dish_id=b.id, quantity=2), CartLine(dish_id=a.id, quantity=2)])

    top = stats_service.compute_stats(db_session).top_dishes
    assert [t.dish_id for t in top] == [a.id, b.id]


def test_best_and_worst_rated(db_session, chef, diner, dishes, cache):
    a, b, c = dishes
    review_service.submit_review(db_session, cache, diner.id, a.id, rating=5)
    review_service.submit_review(db_session, cache, chef.id, a.id, rating=4)
    review_service.submit_review(db_session, cache, diner.id, b.id, rating=2)
    review_service.submit_review(db_session, cache, diner.id, c.id, rating=2)

    stats = stats_service.compute_stats(db_session)
    assert stats.best_rated.dish_id == a.id
    assert stats.best_rated.avg_rating == 4.5
    assert stats.best_rated.review_count == 2
    # b and c tie at 2.0
    assert stats.worst_rated.dish_id == b.id
    assert stats.average_rating == round(13 / 4, 1)


def test_no_reviews_means_no_extremes(db_session, household):
    stats = stats_service.compute_stats(db_session)
    assert stats.best_rated is None
    assert stats.worst_rated is None
    assert stats.average_rating == 0.0
    assert stats.top_dishes == []


def test_favorites_per_member(db_session, chef, diner, dishes, cache):
    a, b, _ = dishes
    order_service.create_order(db_session, cache, diner.id, lines=[CartLine(dish_id=b.id, quantity=3)])
    order_service.create_order(db_session, cache, diner.id, lines=[CartLine(dish_id=a.id)])

    favorites = {f.user_name: f for f in stats_service.compute_stats(db_session).favorites}
    assert favorites["Diner"].favorite.dish_id == b.id
    assert favorites["Diner"].favorite.total_ordered == 3
    assert favorites["Chef"].favorite is None


def test_category_counts(db_session, diner, dishes, cache):
    noodles, dumplings, curry = dishes
    order_service.create_order(db_session, cache, diner.id, lines=[
        CartLine(dish_id=noodles.id, quantity=2),
        CartLine(dish_id=curry.id),
        CartLine(dish_id=dumplings.id, quantity=3),
    ])

    counts = {c.category: c.count for c in stats_service.compute_stats(db_session).category_stats}
    assert counts == {"Noodles": 2, "Mains": 1, "Appetizers": 3}


def test_orders_by_day_has_seven_buckets_sunday_first(db_session, diner, dishes, cache):
    order = order_service.create_order(db_session, cache, diner.id, lines=[CartLine(dish_id=dishes[0].id)])
    # 2024-06-02 was a Sunday
    db_session.get(Order, order.id).created_at = datetime(2024, 6, 2, 12, 0, tzinfo=timezone.utc)
    db_session.commit()

    days = stats_service.compute_stats(db_session).orders_by_day
    assert [d.day for d in days] == list(range(7))
    assert days[0].count == 1
    assert sum(d.count for d in days) == 1


def test_spice_trend_respects_window(db_session, diner, dishes, cache):
    noodles, dumplings, curry = dishes
    now = datetime(2025, 3, 1, tzinfo=timezone.utc)

    old = order_service.create_order(db_session, cache, diner.id, lines=[CartLine(dish_id=curry.id)])
    recent = order_service.create_order(db_session, cache, diner.id, lines=[
        CartLine(dish_id=noodles.id),
        CartLine(dish_id=dumplings.id),
    ])
    db_session.get(Order, old.id).created_at = now - timedelta(days=50)
    db_session.get(Order, recent.id).created_at = now - timedelta(days=5)
    db_session.commit()

    month = stats_service.compute_stats(db_session, "1m", now=now).spice_trend
    assert [p.order_id for p in month] == [recent.id]
    assert month[0].avg_spice == 1.5
    assert month[0].user_name == "Diner"

    quarter = stats_service.compute_stats(db_session, "3m", now=now).spice_trend
    assert [p.order_id for p in quarter] == [old.id, recent.id]
    assert quarter[0].avg_spice == 5.0


def test_window_start():
    now = datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert stats_service.window_start("all", now) is None
    assert stats_service.window_start("6m", now) == now - timedelta(days=180)
    with pytest.raises(ValueError):
        stats_service.window_start("2y", now)


def test_days_together():
    assert stats_service.days_together(None) is None
    assert stats_service.days_together(date(2024, 1, 1), date(2024, 1, 31)) == 30


def test_stats_cached_until_order_changes(db_session, diner, dishes, cache):
    assert stats_service.get_stats(db_session, cache)["total_orders"] == 0
    assert cache.get("stats:summary:all") is not None

    order_service.create_order(db_session, cache, diner.id, lines=[CartLine(dish_id=dishes[0].id)])
    assert stats_service.get_stats(db_session, cache)["total_orders"] == 1


# --- HTTP ---

def test_stats_endpoint(client, diner, dishes):
    r = client.get("/api/stats", params={"range": "3m"}, headers=auth(diner))
    assert r.status_code == 200
    body = r.json()
    assert body["range"] == "3m"
    assert len(body["orders_by_day"]) == 7


def test_stats_hidden_from_visitors_by_default(client, visitor):
    assert client.get("/api/stats", headers=auth(visitor)).status_code == 403
