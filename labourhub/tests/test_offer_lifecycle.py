import pytest
from sqlalchemy.exc import IntegrityError

from labourhub import models
from labourhub.errors import BadRequest, BadState, Conflict, Forbidden, NotFound
from labourhub.schemas import JobCreate
from labourhub.services.jobs import JobManager
from labourhub.services.offers import OfferManager


@pytest.fixture()
def job(db_session, client_user):
    data = JobCreate(
        title="Tile bathroom",
        description="Small bathroom, 6 sqm",
        location="Bristol",
        budget="300",
        created_by=client_user.id,
    )
    return JobManager(db_session).create(client_user.id, data)


def _notifications(db, user_id, type=None):
    q = db.query(models.Notification).filter_by(user_id=user_id)
    if type:
        q = q.filter_by(type=type)
    return q.all()


def test_create_offer_notifies_job_creator(db_session, job, client_user, labour_user):
    offer = OfferManager(db_session).create(job.id, labour_user.id, "280", "Can start Monday")

    assert offer.status == models.OFFER_PENDING
    assert offer.proposed_price == "280"
    notes = _notifications(db_session, client_user.id, models.NOTIFY_NEW_OFFER)
    assert len(notes) == 1
    assert notes[0].job_id == job.id
    assert notes[0].offer_id == offer.id
    assert notes[0].read is False
    assert "Tile bathroom" in notes[0].message


def test_create_offer_validation(db_session, job, client_user, make_user):
    offers = OfferManager(db_session)
    other_client = make_user("client")

    with pytest.raises(NotFound):
        offers.create("missing", client_user.id, "1", "hi")
    with pytest.raises(NotFound):
        offers.create(job.id, "missing", "1", "hi")
    with pytest.raises(BadRequest):
        offers.create(job.id, other_client.id, "1", "hi")
    # creator cannot bid on their own job
    with pytest.raises(BadRequest):
        offers.create(job.id, client_user.id, "1", "hi")


def test_creator_with_labour_role_cannot_bid_on_own_job(db_session, labour_user):
    own = JobManager(db_session).create(
        labour_user.id,
        JobCreate(title="t", description="d", location="l", budget="5", created_by=labour_user.id),
    )
    with pytest.raises(BadRequest, match="own job"):
        OfferManager(db_session).create(own.id, labour_user.id, "5", "me")


def test_second_pending_offer_conflicts(db_session, job, labour_user):
    offers = OfferManager(db_session)
    offers.create(job.id, labour_user.id, "280", "first")
    with pytest.raises(Conflict):
        offers.create(job.id, labour_user.id, "250", "second")


def test_new_offer_allowed_after_rejection(db_session, job, client_user, labour_user):
    offers = OfferManager(db_session)
    first = offers.create(job.id, labour_user.id, "280", "first")
    offers.reject(first.id, client_user.id)
    second = offers.create(job.id, labour_user.id, "250", "second")
    assert second.status == models.OFFER_PENDING


def test_pending_index_blocks_duplicates_at_the_database(db_session, job, labour_user):
    for _ in range(2):
        db_session.add(models.Offer(job_id=job.id, user_id=labour_user.id, proposed_price="1", message="m"))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_offer_on_non_open_job(db_session, job, client_user, labour_user, make_user):
    offers = OfferManager(db_session)
    offer = offers.create(job.id, labour_user.id, "280", "first")
    offers.accept(offer.id, client_user.id)
    with pytest.raises(BadState):
        offers.create(job.id, make_user("labour").id, "200", "late")


def test_list_by_job_newest_first_with_bidder(db_session, job, labour_user, make_user):
    offers = OfferManager(db_session)
    first = offers.create(job.id, labour_user.id, "280", "first")
    second = offers.create(job.id, make_user("labour").id, "260", "second")

    listed = offers.list_by_job(job.id)
    assert [o.id for o in listed] == [second.id, first.id]
    assert listed[1].user.name == "Lee Labour"

    with pytest.raises(NotFound):
        offers.list_by_job("missing")


def test_accept_reserves_job_and_rejects_siblings(db_session, job, client_user, labour_user, make_user):
    offers = OfferManager(db_session)
    winner = offers.create(job.id, labour_user.id, "80", "winner")
    loser_a = offers.create(job.id, make_user("labour").id, "90", "a")
    loser_b = offers.create(job.id, make_user("labour").id, "95", "b")
    before = db_session.query(models.Notification).count()

    accepted = offers.accept(winner.id, client_user.id)

    assert accepted.status == models.OFFER_ACCEPTED
    assert accepted.job.status == models.JOB_RESERVED
    statuses = {o.id: o.status for o in offers.list_by_job(job.id)}
    assert statuses == {
        winner.id: models.OFFER_ACCEPTED,
        loser_a.id: models.OFFER_REJECTED,
        loser_b.id: models.OFFER_REJECTED,
    }
    # bulk rejection during accept does not notify anyone
    assert db_session.query(models.Notification).count() == before


def test_accept_twice_fails_with_bad_state(db_session, job, client_user, labour_user):
    offers = OfferManager(db_session)
    offer = offers.create(job.id, labour_user.id, "80", "hi")
    offers.accept(offer.id, client_user.id)
    with pytest.raises(BadState):
        offers.accept(offer.id, client_user.id)

    accepted = db_session.query(models.Offer).filter_by(job_id=job.id, status=models.OFFER_ACCEPTED).count()
    assert accepted == 1


def test_accept_requires_job_creator(db_session, job, labour_user):
    offers = OfferManager(db_session)
    offer = offers.create(job.id, labour_user.id, "80", "hi")
    with pytest.raises(Forbidden):
        offers.accept(offer.id, labour_user.id)
    with pytest.raises(NotFound):
        offers.accept("missing", labour_user.id)


def test_accept_is_all_or_nothing_when_job_already_taken(db_session, job, client_user, labour_user, make_user):
    offers = OfferManager(db_session)
    first = offers.create(job.id, labour_user.id, "80", "first")
    second = offers.create(job.id, make_user("labour").id, "85", "second")

    # simulate another request having reserved the job in between
    job.status = models.JOB_RESERVED
    db_session.commit()

    with pytest.raises(BadState):
        offers.accept(first.id, client_user.id)

    db_session.expire_all()
    assert db_session.get(models.Offer, first.id).status == models.OFFER_PENDING
    assert db_session.get(models.Offer, second.id).status == models.OFFER_PENDING


def test_reject_notifies_bidder(db_session, job, client_user, labour_user):
    offers = OfferManager(db_session)
    offer = offers.create(job.id, labour_user.id, "80", "hi")

    rejected = offers.reject(offer.id, client_user.id)

    assert rejected.status == models.OFFER_REJECTED
    assert rejected.job.status == models.JOB_OPEN
    notes = _notifications(db_session, labour_user.id, models.NOTIFY_OFFER_REJECTED)
    assert len(notes) == 1
    assert notes[0].offer_id == offer.id

    with pytest.raises(BadState):
        offers.reject(offer.id, client_user.id)
    with pytest.raises(BadState):
        offers.accept(offer.id, client_user.id)


def test_reject_requires_job_creator(db_session, job, labour_user):
    offers = OfferManager(db_session)
    offer = offers.create(job.id, labour_user.id, "80", "hi")
    with pytest.raises(Forbidden):
        offers.reject(offer.id, labour_user.id)
