import pytest
from sqlalchemy.orm import Session

from ministrypath.schemas import SurveyProgressSave
from ministrypath.services import LeadershipService, SurveyProgressService, SurveyService


@pytest.fixture
def congregation(db: Session, make_user, tiny_catalog):
    """
    Four members on the tiny catalog:
    anna completed (teaching + sound interest), ben completed (mercy, outgoing),
    cara in progress, dan not started. An archived member is hidden.
    """
    SurveyService.set_catalog(tiny_catalog)

    anna = make_user("anna@example.com", role="member", first_name="Anna", last_name="Lee")
    ben = make_user("ben@example.com", role="member", first_name="Ben")
    cara = make_user("cara@example.com", role="intern")
    dan = make_user("dan@example.com")
    make_user("old@example.com", is_archived=True)

    SurveyService.submit_survey(db, anna, answers={"q1": 5, "m2": 5})
    SurveyService.submit_survey(db, ben, answers={"q2": 5, "p1": 5, "m1": 3})
    SurveyProgressService.save_progress(db, cara, SurveyProgressSave(answers={"q1": 2, "q2": 3}))
    return {"anna": anna, "ben": ben, "cara": cara, "dan": dan}


def test_pastoral_care_overview(client, congregation, pastor_token_headers):
    response = client.get("/api/v1/leadership/pastoral-care", headers=pastor_token_headers)

    assert response.status_code == 200
    data = response.json()
    rows = {row["email"]: row for row in data["items"]}
    # pastor_user is also an active member
    assert data["total"] == 5
    assert "old@example.com" not in rows

    anna = rows["anna@example.com"]
    assert anna["status"] == "completed"
    assert anna["name"] == "Anna Lee"
    assert anna["top_gifts"] == ["Teaching", "Mercy / Compassion"]
    assert anna["primary_ministries"] == ["Sound Team", "Kids Ministry"]
    assert anna["answered_count"] == 2

    assert rows["cara@example.com"]["status"] == "in_progress"
    assert rows["cara@example.com"]["answered_count"] == 2
    assert rows["dan@example.com"]["status"] == "not_started"
    assert rows["dan@example.com"]["last_activity"] is None


def test_pastoral_care_status_filter(client, congregation, pastor_token_headers):
    response = client.get(
        "/api/v1/leadership/pastoral-care", params={"status": "completed"}, headers=pastor_token_headers
    )

    emails = [row["email"] for row in response.json()["items"]]
    assert emails == ["anna@example.com", "ben@example.com"]


def test_pastoral_care_bad_status(client, pastor_token_headers):
    response = client.get(
        "/api/v1/leadership/pastoral-care", params={"status": "lapsed"}, headers=pastor_token_headers
    )
    assert response.status_code == 400


def test_pastoral_care_pagination(db: Session, congregation, pastor_user):
    page = LeadershipService.pastoral_care_overview(db, page=2, limit=2)

    assert page["total"] == 5
    assert page["pages"] == 3
    assert len(page["items"]) == 2


def test_leader_cannot_see_pastoral_care(client, leader_token_headers):
    response = client.get("/api/v1/leadership/pastoral-care", headers=leader_token_headers)
    assert response.status_code == 403


def test_ministry_candidates_ranked(client, congregation, leader_token_headers):
    response = client.get("/api/v1/leadership/ministries/kids/candidates", headers=leader_token_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Kids Ministry"
    # anna gets 0.5 from the teaching bonus, ben 0.5 from m1=3; ties keep submission order
    assert [c["email"] for c in data["candidates"]] == ["anna@example.com", "ben@example.com"]
    assert all(c["score"] == pytest.approx(0.5) for c in data["candidates"])


def test_candidates_flag_pending_verification(client, congregation, leader_token_headers):
    data = client.get("/api/v1/leadership/ministries/sound/candidates", headers=leader_token_headers).json()

    top = data["candidates"][0]
    assert top["email"] == "anna@example.com"
    assert top["requires_skill_verification"] is True
    assert top["growth_pathway"]


def test_unknown_ministry_candidates_404(client, leader_token_headers):
    response = client.get("/api/v1/leadership/ministries/choir/candidates", headers=leader_token_headers)
    assert response.status_code == 404


def test_member_cannot_see_candidates(client, token_headers):
    response = client.get("/api/v1/leadership/ministries/kids/candidates", headers=token_headers)
    assert response.status_code == 403


def test_analytics(client, congregation, leader_token_headers):
    response = client.get("/api/v1/leadership/analytics", headers=leader_token_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_results"] == 2
    assert data["in_progress"] == 1
    assert data["gift_averages"] == {"teaching": 50.0, "mercy": 50.0}
    assert data["top_gifts_distribution"] == {"teaching": 1, "mercy": 1}
    assert data["primary_ministries_distribution"]["kids"] == 2
    assert data["personality_types_distribution"] == {"Steady Servant": 1, "Bold Evangelist": 1}


def test_analytics_empty(db: Session):
    data = LeadershipService.get_analytics(db)

    assert data["total_results"] == 0
    assert data["gift_averages"] == {}


def test_analytics_ignores_archived_members(db: Session, congregation, make_user):
    gone = make_user("gone@example.com", role="member", is_archived=True)
    leaving = make_user("leaving@example.com", role="member", is_archived=True)
    SurveyService.submit_survey(db, gone, answers={"q2": 5})
    SurveyProgressService.save_progress(db, leaving, SurveyProgressSave(answers={"q1": 4}))

    data = LeadershipService.get_analytics(db)

    assert data["total_results"] == 2
    assert data["in_progress"] == 1
    assert data["top_gifts_distribution"] == {"teaching": 1, "mercy": 1}
