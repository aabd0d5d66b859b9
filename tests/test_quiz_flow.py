"""End-to-end quiz flow through the Flask test client."""

import copy
from unittest.mock import patch

import pytest

from app import create_app
from models import ConsumedAttempt, SiteStatistics, db
from services.errors import AggregationFailed
from services.quiz_bank import PRIVACY_QUIZ
from services.session_helper import FLOW_KEY, TELEMETRY_KEY
from services.statistics import StatisticsAggregator

CORRECT = [q.correct_index for q in PRIVACY_QUIZ]


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def stage_of(client):
    with client.session_transaction() as sess:
        return (sess.get(FLOW_KEY) or {}).get("stage", "landing")


def accept_cookies_and_terms(client, cookies="accept", terms="accept"):
    client.post("/start")
    client.post("/consent/cookies", data={"decision": cookies})
    return client.post("/terms", data={"decision": terms})


def answer_all(client, answers, extra=None):
    response = None
    for answer in answers:
        data = {"answer": str(answer)}
        data.update(extra or {})
        response = client.post("/question", data=data)
    return response


def test_landing_shows_cookie_banner(client):
    response = client.get("/")
    assert response.status_code == 200
    html = response.get_data(as_text=True)
    assert "Data Privacy" in html
    assert "Accept Cookies" in html


def test_banner_hidden_after_decision(client):
    client.post("/consent/cookies", data={"decision": "reject"})
    html = client.get("/").get_data(as_text=True)
    assert "Accept Cookies" not in html
    assert stage_of(client) == "landing"


def test_start_without_cookie_decision_prompts(client):
    response = client.post("/start", follow_redirects=True)
    assert response.status_code == 200
    assert stage_of(client) == "consent_pending"
    assert "make a cookie choice" in response.get_data(as_text=True)


def test_full_flow_records_statistics(client, app):
    response = accept_cookies_and_terms(client)
    assert response.status_code == 302
    assert response.location.endswith("/question")

    page = client.get("/question").get_data(as_text=True)
    assert PRIVACY_QUIZ[0].prompt in page

    response = answer_all(
        client,
        CORRECT,
        extra={"client_screen": "1920x1080", "client_timezone": "Europe/Berlin"},
    )
    assert response.status_code == 302
    assert response.location.endswith("/result")

    result = client.get("/result")
    assert result.status_code == 200
    html = result.get_data(as_text=True)
    assert "5/5" in html
    assert "100% Correct" in html
    assert "1920x1080" in html
    assert "Europe/Berlin" in html
    assert "could not be recorded" not in html

    with app.app_context():
        row = db.session.get(SiteStatistics, 1)
        assert row.total_users == 1
        assert row.cookie_acceptance_count == 1
        assert row.tos_acceptance_count == 1
        assert row.total_score_sum == 5
        assert row.total_quizzes_taken == 1


def test_result_refresh_does_not_double_count(client, app):
    accept_cookies_and_terms(client, cookies="reject")
    answer_all(client, CORRECT)
    client.get("/result")
    client.get("/result")
    client.post("/question", data={"answer": "0"})

    with app.app_context():
        row = db.session.get(SiteStatistics, 1)
        assert row.total_users == 1
        assert row.cookie_acceptance_count == 0


def test_terms_rejection_returns_to_landing_without_statistics(client, app):
    response = accept_cookies_and_terms(client, terms="reject")
    assert response.location.endswith("/")
    assert stage_of(client) == "landing"
    # quiz page is not reachable
    assert client.get("/question").location.endswith("/")
    with app.app_context():
        assert db.session.get(SiteStatistics, 1) is None


def test_terms_dismiss(client):
    client.post("/start")
    client.post("/consent/cookies", data={"decision": "accept"})
    assert client.get("/terms").status_code == 200
    client.post("/terms", data={"decision": "dismiss"})
    assert stage_of(client) == "landing"


def test_submit_without_answer_is_refused(client):
    accept_cookies_and_terms(client)
    response = client.post("/question", data={}, follow_redirects=True)
    assert response.status_code == 200
    assert "Please select an answer" in response.get_data(as_text=True)
    with client.session_transaction() as sess:
        assert sess[FLOW_KEY]["session"]["current_index"] == 0


@pytest.mark.parametrize("bad", ["9", "-1", "abc"])
def test_invalid_answer_is_refused(client, bad):
    accept_cookies_and_terms(client)
    response = client.post("/question", data={"answer": bad}, follow_redirects=True)
    assert response.status_code == 200
    assert "Please choose one of the listed answers" in response.get_data(as_text=True)
    with client.session_transaction() as sess:
        assert sess[FLOW_KEY]["session"]["answers"] == []


def test_show_explanation_keeps_question(client):
    accept_cookies_and_terms(client)
    client.post("/question", data={"answer": "1", "show_explanation": "1"})
    html = client.get("/question").get_data(as_text=True)
    assert PRIVACY_QUIZ[0].explanation in html
    # the selection survives, so Next works without re-posting the answer
    client.post("/question", data={})
    with client.session_transaction() as sess:
        assert sess[FLOW_KEY]["session"]["answers"] == [1]


def test_result_page_requires_completion(client):
    response = client.get("/result")
    assert response.status_code == 302
    assert response.location.endswith("/")


def test_restart_clears_session(client):
    accept_cookies_and_terms(client)
    answer_all(client, CORRECT)
    response = client.post("/restart")
    assert response.location.endswith("/")
    assert stage_of(client) == "idle"
    with client.session_transaction() as sess:
        assert TELEMETRY_KEY not in sess
        assert sess[FLOW_KEY]["cookie_consent"] is None
    assert "Accept Cookies" in client.get("/").get_data(as_text=True)


def test_aggregation_failure_still_shows_result(client, app):
    with patch.object(
        StatisticsAggregator, "apply", side_effect=AggregationFailed("conflicted", attempts=5)
    ):
        accept_cookies_and_terms(client)
        answer_all(client, CORRECT)

    html = client.get("/result").get_data(as_text=True)
    assert "5/5" in html
    assert "could not be recorded" in html
    with client.session_transaction() as sess:
        assert sess[FLOW_KEY]["aggregation"]["committed"] is False


def test_site_statistics_shown_after_several_sessions(app):
    for cookies in ("accept", "reject"):
        c = app.test_client()
        accept_cookies_and_terms(c, cookies=cookies)
        answer_all(c, CORRECT[:-1] + [(CORRECT[-1] + 1) % 4])

    last = app.test_client()
    accept_cookies_and_terms(last, cookies="reject")
    answer_all(last, CORRECT)
    html = last.get("/result").get_data(as_text=True)
    # 3 visitors, 1 of 3 accepted cookies, 4+4+5 of 15 correct
    assert "Total Visitors" in html
    assert "33%" in html
    assert "87%" in html


def test_statistics_api(client):
    data = client.get("/api/statistics").get_json()
    assert data["totals"]["total_users"] == 0
    assert data["average_score_percentage"] == 0

    accept_cookies_and_terms(client)
    answer_all(client, CORRECT)
    data = client.get("/api/statistics").get_json()
    assert data["totals"]["total_users"] == 1
    assert data["cookie_acceptance_percentage"] == 100
    assert data["tos_acceptance_percentage"] == 100
    assert data["average_score_percentage"] == 100


def test_statistics_api_store_error(client):
    from sqlalchemy.exc import OperationalError

    with patch.object(
        StatisticsAggregator, "read", side_effect=OperationalError("SELECT", {}, Exception("down"))
    ):
        response = client.get("/api/statistics")
    assert response.status_code == 503
    assert response.get_json()["error"] == "Database error"


def test_replayed_final_answer_is_counted_once(client, app):
    accept_cookies_and_terms(client)
    answer_all(client, CORRECT[:-1])
    with client.session_transaction() as sess:
        before_last = copy.deepcopy(dict(sess))

    first = client.post("/question", data={"answer": str(CORRECT[-1])})
    assert first.location.endswith("/result")

    # resend the final answer with the cookie from before completion
    with client.session_transaction() as sess:
        sess.clear()
        sess.update(before_last)
    second = client.post("/question", data={"answer": str(CORRECT[-1])})
    assert second.location.endswith("/result")
    assert "could not be recorded" not in client.get("/result").get_data(as_text=True)

    attempt_id = before_last[FLOW_KEY]["session"]["attempt_id"]
    with app.app_context():
        row = db.session.get(SiteStatistics, 1)
        assert row.total_users == 1
        assert row.total_quizzes_taken == 1
        assert db.session.get(ConsumedAttempt, attempt_id) is not None


def test_second_attempt_after_restart_is_counted(client, app):
    for _ in range(2):
        accept_cookies_and_terms(client)
        answer_all(client, CORRECT)
        client.post("/restart")
    with app.app_context():
        assert db.session.get(SiteStatistics, 1).total_users == 2


def test_result_page_offers_save_results(client):
    accept_cookies_and_terms(client)
    answer_all(client, CORRECT)
    html = client.get("/result").get_data(as_text=True)
    assert "Save Results" in html
    assert "window.print()" in html
