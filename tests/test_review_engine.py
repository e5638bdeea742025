import pytest

from services import review_engine, swap_workflow
from services.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
)


@pytest.fixture
async def parties(make_user):
    return await make_user("alice"), await make_user("bob")


async def user_rating(db, user):
    doc = await db.users.find_one({"_id": user["_id"]})
    return doc["rating"], doc["totalRatings"]


@pytest.mark.parametrize(
    "value, expected",
    [
        (4.0, 4.0),
        (4.25, 4.3),
        (4.24, 4.2),
        (13 / 3, 4.3),
        (3.5, 3.5),
    ],
)
def test_round_rating_half_up(value, expected):
    assert review_engine.round_rating(value) == expected


async def test_rating_is_zero_when_only_inactive_reviews_remain(db, parties):
    alice, bob = parties
    await db.reviews.insert_one({
        "reviewer": bob["_id"], "reviewee": alice["_id"], "swap": None, "rating": 4, "isActive": False,
    })

    assert await review_engine.calculate_user_rating(db, alice["_id"]) == {"averageRating": 0, "totalReviews": 0}
    assert await review_engine.calculate_user_rating(db, bob["_id"]) == {"averageRating": 0, "totalReviews": 0}


class TestCreateReview:

    async def test_both_parties_review_each_other(self, db, parties, make_completed_swap):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)

        await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 4, "Great trade")
        await review_engine.create_review(db, alice, swap["_id"], bob["_id"], 5)

        assert await user_rating(db, alice) == (4.0, 1)
        assert await user_rating(db, bob) == (5.0, 1)

    async def test_average_across_swaps(self, db, parties, make_user, make_completed_swap):
        alice, bob = parties
        carol = await make_user("carol")
        first = await make_completed_swap(bob, alice)
        second = await make_completed_swap(carol, alice)

        await review_engine.create_review(db, bob, first["_id"], alice["_id"], 4)
        await review_engine.create_review(db, carol, second["_id"], alice["_id"], 5)

        assert await user_rating(db, alice) == (4.5, 2)

    async def test_second_review_of_same_swap_conflicts(self, db, parties, make_completed_swap):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)
        await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 4)

        with pytest.raises(ConflictError):
            await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 1)

        assert await user_rating(db, alice) == (4.0, 1)

    async def test_swap_must_be_completed(self, db, parties, make_book):
        alice, bob = parties
        wanted = await make_book(alice)
        offered = await make_book(bob)
        swap = await swap_workflow.create_swap(db, bob, wanted["_id"], offered["_id"])
        await swap_workflow.accept_swap(db, swap["_id"], alice)

        with pytest.raises(PreconditionFailedError):
            await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 5)

        assert await db.reviews.count_documents({}) == 0

    async def test_outsider_cannot_review(self, db, parties, make_user, make_completed_swap):
        alice, bob = parties
        carol = await make_user("carol")
        swap = await make_completed_swap(bob, alice)

        with pytest.raises(ForbiddenError):
            await review_engine.create_review(db, carol, swap["_id"], alice["_id"], 5)

    async def test_reviewee_must_be_the_other_party(self, db, parties, make_user, make_completed_swap):
        alice, bob = parties
        carol = await make_user("carol")
        swap = await make_completed_swap(bob, alice)

        with pytest.raises(PreconditionFailedError):
            await review_engine.create_review(db, bob, swap["_id"], carol["_id"], 5)
        with pytest.raises(PreconditionFailedError):
            await review_engine.create_review(db, bob, swap["_id"], bob["_id"], 5)

    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_out_of_range(self, db, parties, make_completed_swap, rating):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)

        with pytest.raises(PreconditionFailedError):
            await review_engine.create_review(db, bob, swap["_id"], alice["_id"], rating)

    async def test_reviewee_is_notified(self, db, parties, make_completed_swap):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)

        await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 4)

        notification = await db.notifications.find_one(
            {"user_id": str(alice["_id"]), "type": "review_received"}
        )
        assert notification is not None


class TestUpdateAndDelete:

    async def test_update_rating_recomputes(self, db, parties, make_completed_swap):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)
        review = await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 2)

        updated = await review_engine.update_review(db, review["_id"], bob, rating=5, comment=" Better ")

        assert updated["rating"] == 5
        assert updated["comment"] == "Better"
        assert await user_rating(db, alice) == (5.0, 1)

    async def test_only_reviewer_can_update(self, db, parties, make_completed_swap):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)
        review = await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 2)

        with pytest.raises(ForbiddenError):
            await review_engine.update_review(db, review["_id"], alice, rating=5)

    async def test_soft_delete_recomputes_down_to_zero(self, db, parties, make_user, make_completed_swap):
        alice, bob = parties
        carol = await make_user("carol")
        first = await make_completed_swap(bob, alice)
        second = await make_completed_swap(carol, alice)
        low = await review_engine.create_review(db, bob, first["_id"], alice["_id"], 2)
        high = await review_engine.create_review(db, carol, second["_id"], alice["_id"], 4)
        assert await user_rating(db, alice) == (3.0, 2)

        await review_engine.delete_review(db, high["_id"], carol)
        assert await user_rating(db, alice) == (2.0, 1)

        await review_engine.delete_review(db, low["_id"], bob)
        assert await user_rating(db, alice) == (0, 0)

        stored = await db.reviews.find_one({"_id": low["_id"]})
        assert stored["isActive"] is False

    async def test_deleted_review_is_not_found(self, db, parties, make_completed_swap):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)
        review = await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 3)
        await review_engine.delete_review(db, review["_id"], bob)

        with pytest.raises(NotFoundError):
            await review_engine.get_review(db, review["_id"])

    async def test_stranger_cannot_delete_but_moderator_can(self, db, parties, make_user, make_completed_swap):
        alice, bob = parties
        admin = await make_user("root", role="admin")
        swap = await make_completed_swap(bob, alice)
        review = await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 1)

        with pytest.raises(ForbiddenError):
            await review_engine.delete_review(db, review["_id"], alice)

        await review_engine.delete_review(db, review["_id"], admin, moderator=True)
        assert await user_rating(db, alice) == (0, 0)


class TestEligibility:

    async def test_party_can_review_completed_swap(self, db, parties, make_completed_swap):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)

        result = await review_engine.check_eligibility(db, swap["_id"], bob["_id"])

        assert result["canReview"] is True
        assert result["revieweeId"] == str(alice["_id"])

    async def test_not_completed(self, db, parties, make_book):
        alice, bob = parties
        wanted = await make_book(alice)
        offered = await make_book(bob)
        swap = await swap_workflow.create_swap(db, bob, wanted["_id"], offered["_id"])

        result = await review_engine.check_eligibility(db, swap["_id"], bob["_id"])

        assert result == {"canReview": False, "reason": "Swap not completed"}

    async def test_outsider(self, db, parties, make_user, make_completed_swap):
        alice, bob = parties
        carol = await make_user("carol")
        swap = await make_completed_swap(bob, alice)

        result = await review_engine.check_eligibility(db, swap["_id"], carol["_id"])

        assert result == {"canReview": False, "reason": "Not involved in swap"}

    async def test_already_reviewed(self, db, parties, make_completed_swap):
        alice, bob = parties
        swap = await make_completed_swap(bob, alice)
        await review_engine.create_review(db, bob, swap["_id"], alice["_id"], 5)

        result = await review_engine.check_eligibility(db, swap["_id"], bob["_id"])

        assert result == {"canReview": False, "reason": "Already reviewed"}
        # The other side has not reviewed yet.
        assert (await review_engine.check_eligibility(db, swap["_id"], alice["_id"]))["canReview"] is True
