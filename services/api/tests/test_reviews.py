import pytest
from sqlalchemy.exc import IntegrityError

from app.core.errors import NotFoundError, ValidationError
from app.models import Review, ReviewPhoto
from app.schemas import ReviewPhotoIn
from app.services import orders as order_service
from app.services import reviews as review_service
from app.services.orders import CartLine
from conftest import auth


@pytest.fixture
def order(db_session, diner, dishes, cache):
    return order_service.create_order(
        db_session, cache, diner.id, lines=[CartLine(dish_id=dishes[0].id)]
    )


@pytest.mark.parametrize("given,stored", [(0, 1), (-3, 1), (1, 1), (4, 4), (5, 5), (9, 5)])
def test_clamp_rating(given, stored):
    assert review_service.clamp_rating(given) == stored


def test_out_of_range_rating_is_clamped(db_session, diner, dishes, cache):
    review = review_service.submit_review(db_session, cache, diner.id, dishes[0].id, rating=11)
    assert review.rating == 5


def test_same_order_review_is_updated_in_place(db_session, diner, dishes, cache, order):
    first = review_service.submit_review(
        db_session, cache, diner.id, dishes[0].id, rating=2, order_id=order.id, comment="bland"
    )
    second = review_service.submit_review(
        db_session, cache, diner.id, dishes[0].id, rating=5, order_id=order.id, comment="better"
    )

    assert second.id == first.id
    assert db_session.query(Review).count() == 1
    assert second.rating == 5
    assert second.comment == "better"


def test_store_refuses_second_review_for_same_order(db_session, diner, dishes, order):
    db_session.add(Review(user_id=diner.id, dish_id=dishes[0].id, order_id=order.id, rating=3))
    db_session.commit()

    db_session.add(Review(user_id=diner.id, dish_id=dishes[0].id, order_id=order.id, rating=4))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()
    assert db_session.query(Review).count() == 1


def test_lost_insert_race_updates_existing_review(db_session, diner, dishes, cache, order, monkeypatch):
    first = review_service.submit_review(
        db_session, cache, diner.id, dishes[0].id, rating=2, order_id=order.id
    )

    # The up-front lookup misses as if the competing insert had not committed yet
    real_existing = review_service._existing
    calls = []

    def stale_then_real(*args):
        calls.append(args)
        return None if len(calls) == 1 else real_existing(*args)

    monkeypatch.setattr(review_service, "_existing", stale_then_real)
    second = review_service.submit_review(
        db_session, cache, diner.id, dishes[0].id, rating=5, order_id=order.id, comment="better"
    )

    assert len(calls) == 2
    assert second.id == first.id
    assert second.rating == 5
    assert second.comment == "better"
    assert db_session.query(Review).count() == 1


def test_standalone_reviews_are_never_merged(db_session, diner, dishes, cache):
    review_service.submit_review(db_session, cache, diner.id, dishes[0].id, rating=3)
    review_service.submit_review(db_session, cache, diner.id, dishes[0].id, rating=4)
    assert db_session.query(Review).count() == 2


def test_different_users_review_separately(db_session, chef, diner, dishes, cache, order):
    review_service.submit_review(db_session, cache, diner.id, dishes[0].id, rating=3, order_id=order.id)
    review_service.submit_review(db_session, cache, chef.id, dishes[0].id, rating=5, order_id=order.id)
    assert db_session.query(Review).count() == 2


def test_photos_are_attached(db_session, diner, dishes, cache):
    review = review_service.submit_review(
        db_session, cache, diner.id, dishes[1].id, rating=4,
        photos=[ReviewPhotoIn(image_url="/img/a.jpg"), ReviewPhotoIn(image_url="/img/b.jpg", thumbnail_url="/t/b.jpg")],
    )
    assert [p.image_url for p in review.photos] == ["/img/a.jpg", "/img/b.jpg"]


def test_missing_fields_rejected(db_session, diner, dishes, cache):
    with pytest.raises(ValidationError):
        review_service.submit_review(db_session, cache, diner.id, None, rating=3)
    with pytest.raises(ValidationError):
        review_service.submit_review(db_session, cache, diner.id, dishes[0].id, rating=None)


def test_unknown_references_rejected(db_session, diner, dishes, cache):
    with pytest.raises(NotFoundError):
        review_service.submit_review(db_session, cache, diner.id, 777, rating=3)
    with pytest.raises(NotFoundError):
        review_service.submit_review(db_session, cache, diner.id, dishes[0].id, rating=3, order_id=777)


def test_delete_review_removes_photos(db_session, diner, dishes, cache):
    review = review_service.submit_review(
        db_session, cache, diner.id, dishes[0].id, rating=4,
        photos=[ReviewPhotoIn(image_url="/img/a.jpg")],
    )
    review_service.delete_review(db_session, cache, review.id)
    review_service.delete_review(db_session, cache, review.id)

    assert db_session.query(Review).count() == 0
    assert db_session.query(ReviewPhoto).count() == 0


def test_listing_joins_names_and_filters_by_dish(db_session, chef, diner, dishes, cache):
    review_service.submit_review(db_session, cache, diner.id, dishes[0].id, rating=4)
    review_service.submit_review(db_session, cache, chef.id, dishes[1].id, rating=2)

    everything = review_service.list_reviews(db_session, cache)
    assert len(everything) == 2

    noodles = review_service.list_reviews(db_session, cache, dish_id=dishes[0].id)
    assert len(noodles) == 1
    assert noodles[0]["user_name"] == "Diner"
    assert noodles[0]["dish_name"] == "Noodles"


def test_submit_invalidates_review_and_stats_caches(db_session, diner, dishes, cache):
    assert review_service.list_reviews(db_session, cache) == []
    cache.set("stats:summary:all", {"stale": True}, 60)

    review_service.submit_review(db_session, cache, diner.id, dishes[0].id, rating=5)

    assert cache.get("stats:summary:all") is None
    assert len(review_service.list_reviews(db_session, cache)) == 1


# --- HTTP ---

def test_review_over_http(client, diner, dishes):
    r = client.post("/api/reviews", json={"dish_id": dishes[0].id, "rating": 4, "comment": "good"},
                    headers=auth(diner))
    assert r.status_code == 200
    assert r.json()["rating"] == 4

    r = client.get("/api/reviews", headers=auth(diner))
    assert [rv["comment"] for rv in r.json()] == ["good"]


def test_review_missing_rating_is_400(client, diner, dishes):
    r = client.post("/api/reviews", json={"dish_id": dishes[0].id}, headers=auth(diner))
    assert r.status_code == 400


def test_visitor_reviews_hidden_by_default(client, visitor):
    assert client.get("/api/reviews", headers=auth(visitor)).status_code == 403


def test_visitor_cannot_post_reviews(client, visitor, dishes):
    r = client.post("/api/reviews", json={"dish_id": dishes[0].id, "rating": 5}, headers=auth(visitor))
    assert r.status_code == 403
