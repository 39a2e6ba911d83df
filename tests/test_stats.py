import pytest

from bolt_reviews.models import Product
from bolt_reviews.services import reviews as review_service
from bolt_reviews.services.stats import recompute_stats
from conftest import SHOP


def _product(db, product_id):
    db.expire_all()
    return db.query(Product).filter(Product.id == product_id).one()


def test_counts_only_published_reviews(db, make_product, make_review):
    product = make_product()
    make_review(product, rating=5)
    make_review(product, rating=3)
    make_review(product, rating=1, status="pending")
    make_review(product, rating=1, status="rejected")

    recompute_stats(db, product.id)

    refreshed = _product(db, product.id)
    assert refreshed.review_count == 2
    assert refreshed.average_rating == pytest.approx(4.0)


def test_zero_when_nothing_published(db, make_product, make_review):
    product = make_product()
    make_review(product, rating=4, status="pending")

    recompute_stats(db, product.id)

    refreshed = _product(db, product.id)
    assert refreshed.review_count == 0
    assert refreshed.average_rating == 0


def test_invariant_holds_across_mutations(db, make_product, shop_settings):
    shop_settings(auto_publish=True, min_rating_to_publish=1)
    product = make_product()

    first = review_service.create_review(
        db, SHOP,
        {"product_id": product.id, "customer_name": "A", "rating": 5, "title": "t", "content": "c"},
    )
    second = review_service.create_review(
        db, SHOP,
        {"product_id": product.id, "customer_name": "B", "rating": 2, "title": "t", "content": "c"},
    )
    refreshed = _product(db, product.id)
    assert (refreshed.review_count, refreshed.average_rating) == (2, pytest.approx(3.5))

    review_service.update_review(db, SHOP, second.id, {"rating": 4})
    refreshed = _product(db, product.id)
    assert refreshed.average_rating == pytest.approx(4.5)

    review_service.set_publication(db, SHOP, first.id, "unpublish")
    refreshed = _product(db, product.id)
    assert (refreshed.review_count, refreshed.average_rating) == (1, pytest.approx(4.0))

    review_service.bulk_action(db, SHOP, [second.id], "reject")
    refreshed = _product(db, product.id)
    assert (refreshed.review_count, refreshed.average_rating) == (0, 0)

    review_service.set_publication(db, SHOP, first.id, "publish")
    review_service.delete_review(db, SHOP, first.id)
    refreshed = _product(db, product.id)
    assert (refreshed.review_count, refreshed.average_rating) == (0, 0)
