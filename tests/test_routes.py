"""
HTTP and WebSocket tests against the FastAPI app with in-memory dependencies.
"""

from upsc_prep.core.dummy_data import FALLBACK_CURRENT_AFFAIRS
from upsc_prep.core.exceptions import ExternalServiceError, GeneratedContentError
from upsc_prep.core.models import ArticleContent, CurrentAffairsItem
from upsc_prep.services.current_affairs_service import CurrentAffairsService


class FakeScraper:
    def __init__(self, fail=False):
        self.fail = fail

    def scrape_feed(self, feed_type, source, today=None):
        if self.fail:
            raise ExternalServiceError("Failed to fetch NEXT IAS: connection refused")
        return [CurrentAffairsItem(title="Ramsar sites", date="2025-08-02", category="Current Affairs",
                                   type=feed_type, source="NEXT IAS")]

    def scrape_article(self, url):
        if self.fail:
            raise ExternalServiceError("Failed to fetch article: timeout")
        return ArticleContent(title="Ramsar sites", date="2025-08-02", content=["Two new sites."],
                              source="NEXT IAS", scraped_at="2025-08-02T00:00:00+00:00")


def _start(client, count=3):
    response = client.post("/api/users/u1/tests", json={"topics": ["Polity"], "num_questions": count})
    assert response.status_code == 200
    return response.json()


class TestGeneration:
    def test_generate_test(self, client):
        response = client.post("/api/generate-test", json={"topics": ["Geography"], "num_questions": 2})
        assert response.status_code == 200
        questions = response.json()["questions"]
        assert len(questions) == 2
        assert questions[0]["answer"] in questions[0]["options"]

    def test_request_schema_enforced(self, client):
        response = client.post("/api/generate-test", json={"topics": ["Polity"], "num_questions": 31})
        assert response.status_code == 422

    def test_generated_content_error_is_retryable(self, client, ai_service, monkeypatch):
        def malformed(topics, count):
            raise GeneratedContentError("Generated question 1 is malformed")
        monkeypatch.setattr(ai_service, "generate_test_questions", malformed)

        response = client.post("/api/generate-test", json={"topics": ["Polity"]})

        assert response.status_code == 502
        assert response.json()["retryable"] is True
        assert response.json()["type"] == "generated_content_error"

    def test_flashcards_and_topics(self, client):
        cards = client.post("/api/generate-flashcards", json={"topic": "Polity", "num_cards": 2}).json()
        topics = client.post("/api/generate-topics", json={"subject": "Polity"}).json()
        assert len(cards["cards"]) == 2
        assert "Preamble" in topics["topics"]


class TestTestEndpoints:
    def test_full_attempt(self, client):
        state = _start(client)
        base = f"/api/users/u1/tests/{state['test_id']}"

        answered = client.post(f"{base}/answer", json={"index": 0, "option": "1 and 2"}).json()
        assert answered["changed"] is True

        assert client.post(f"{base}/navigate", json={"index": 2}).json()["current"] == 2
        assert client.post(f"{base}/review", json={"index": 2}).json()["summary"]["review"] == 1
        assert client.post(f"{base}/clear", json={"index": 0}).json()["questions"][0]["selected"] is None

        result = client.post(f"{base}/submit").json()
        assert result["submitted"] is True
        assert result["persisted"] is True
        assert "correct_answer" in result["questions"][0]

        history = client.get("/api/users/u1/tests/history").json()
        assert history["count"] == 1
        assert history["history"][0]["test_id"] == state["test_id"]

        analytics = client.get("/api/users/u1/analytics").json()
        assert analytics["has_data"] is True
        assert analytics["stats"]["total_tests"] == 1

    def test_state_and_retake(self, client):
        state = _start(client)
        base = f"/api/users/u1/tests/{state['test_id']}"
        client.post(f"{base}/submit")

        assert client.get(base).json()["submitted"] is True
        retaken = client.post(f"{base}/retake", params={"date_key": state["date_key"]})
        assert retaken.status_code == 200
        assert retaken.json()["submitted"] is False

    def test_invalid_option_is_400(self, client):
        state = _start(client)
        response = client.post(f"/api/users/u1/tests/{state['test_id']}/answer",
                               json={"index": 0, "option": "none of these"})
        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_out_of_range_is_400(self, client):
        state = _start(client)
        response = client.post(f"/api/users/u1/tests/{state['test_id']}/navigate", json={"index": 10})
        assert response.status_code == 400
        assert response.json()["type"] == "out_of_range_error"

    def test_unknown_test_is_404(self, client):
        response = client.get("/api/users/u1/tests/test_missing")
        assert response.status_code == 404
        assert response.json()["error"] == "Resource Not Found"

    def test_empty_analytics(self, client):
        assert client.get("/api/users/u1/analytics").json() == {"has_data": False, "stats": None}


class TestStudyEndpoints:
    SUBJECT = {"name": "Polity", "start": "09:00", "end": "11:00",
               "start_date": "2025-08-01", "end_date": "2025-08-11"}

    def test_subject_and_topics(self, client):
        subject = client.post("/api/users/u1/subjects", json=self.SUBJECT).json()
        base = f"/api/users/u1/subjects/{subject['id']}"

        suggested = client.post(f"{base}/topics/generate").json()["topics"]
        saved = client.put(f"{base}/topics", json={"topics": suggested[:2]}).json()
        assert len(saved["topics"]) == 2

        added = client.post(f"{base}/topics", json={"name": "Judiciary"}).json()
        assert added["topics"][-1]["name"] == "Judiciary"

        toggled = client.post(f"{base}/topics/0/toggle").json()
        assert toggled["subject"]["topics"][0]["completed"] is True
        assert toggled["streak"] == 1

        remaining = client.delete(f"{base}/topics/1").json()
        assert len(remaining["topics"]) == 2

        listing = client.get("/api/users/u1/subjects").json()
        assert listing["count"] == 1

        assert client.delete(base).json() == {"deleted": subject["id"]}
        assert client.get("/api/users/u1/subjects").json()["count"] == 0

    def test_exam_date_and_dashboard(self, client):
        assert client.put("/api/users/u1/exam-date", json={"exam_date": "2099-05-24"}).status_code == 200
        assert client.get("/api/users/u1/exam-date").json() == {"exam_date": "2099-05-24"}

        dashboard = client.get("/api/users/u1/dashboard").json()
        assert dashboard["exam_date"] == "2099-05-24"
        assert dashboard["days_to_exam"] > 0

    def test_bad_exam_date_is_400(self, client):
        assert client.put("/api/users/u1/exam-date", json={"exam_date": "soon"}).status_code == 400

    def test_store_failure_is_503(self, client, store):
        store.fail_writes = True
        response = client.post("/api/users/u1/subjects", json=self.SUBJECT)
        assert response.status_code == 503
        assert response.json()["type"] == "persistence_error"


class TestFlashCardEndpoints:
    def test_cards(self, client):
        created = client.post("/api/users/u1/flashcards",
                              json={"question": "Which Article?", "answer": "Article 280", "topic": "Polity"})
        assert created.status_code == 200

        generated = client.post("/api/users/u1/flashcards/generate",
                                json={"topic": "Economy", "num_cards": 2}).json()
        assert generated["count"] == 2

        polity = client.get("/api/users/u1/flashcards", params={"topic": "Polity"}).json()
        assert polity["count"] == 1
        assert polity["topics"] == ["Economy", "Polity"]

        card_id = created.json()["id"]
        assert client.delete(f"/api/users/u1/flashcards/{card_id}").status_code == 200
        assert client.delete(f"/api/users/u1/flashcards/{card_id}").status_code == 404


class TestCurrentAffairsEndpoints:
    def test_feed(self, client, override_current_affairs):
        override_current_affairs(CurrentAffairsService(FakeScraper()))

        body = client.get("/api/scrape-current-affairs", params={"type": "headlines"}).json()

        assert body["success"] is True
        assert body["source"] == "NEXT IAS"
        assert body["data"][0]["type"] == "headlines"

    def test_feed_falls_back_to_mock_data(self, client, override_current_affairs):
        override_current_affairs(CurrentAffairsService(FakeScraper(fail=True)))

        response = client.get("/api/scrape-current-affairs", params={"source": "all"})

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["data"] == FALLBACK_CURRENT_AFFAIRS

    def test_article(self, client, override_current_affairs):
        override_current_affairs(CurrentAffairsService(FakeScraper()))
        body = client.get("/api/scrape-article", params={"url": "https://www.nextias.com/ca/x"}).json()
        assert body["data"]["content"] == ["Two new sites."]

    def test_article_fallback(self, client, override_current_affairs):
        override_current_affairs(CurrentAffairsService(FakeScraper(fail=True)))
        body = client.get("/api/scrape-article", params={"url": "https://www.nextias.com/ca/x"}).json()
        assert body["success"] is False
        assert body["data"]["source"] == "Error"


class TestMisc:
    def test_home_and_info(self, client):
        assert client.get("/").json()["status"] == "operational"
        info = client.get("/info").json()
        assert info["configuration"]["max_questions"] == 30

    def test_cleanup(self, client):
        _start(client)
        body = client.delete("/api/cleanup").json()
        assert body["removed"] == 0
        assert body["active_tests"] == 1


class TestWebSockets:
    def test_timer_socket_reports_submission(self, client):
        state = _start(client, 2)
        client.post(f"/api/users/u1/tests/{state['test_id']}/submit")

        with client.websocket_connect(f"/ws/users/u1/tests/{state['test_id']}") as websocket:
            timer = websocket.receive_json()
            done = websocket.receive_json()

        assert timer["type"] == "timer"
        assert timer["submitted"] is True
        assert done["type"] == "submitted"
        assert done["analytics"]["not_attempted"] == 2

    def test_timer_socket_unknown_test(self, client):
        with client.websocket_connect("/ws/users/u1/tests/test_missing") as websocket:
            message = websocket.receive_json()
        assert message["type"] == "error"

    def test_subjects_socket(self, client):
        client.post("/api/users/u1/subjects", json=TestStudyEndpoints.SUBJECT)
        with client.websocket_connect("/ws/users/u1/subjects") as websocket:
            message = websocket.receive_json()
        assert message["type"] == "subjects"
        assert len(message["data"]) == 1
