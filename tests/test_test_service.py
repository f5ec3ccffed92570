"""
Tests for the daily test lifecycle: start, answer, submit, persist, retake and history.
"""

import asyncio

import pytest

from upsc_prep.core.exceptions import InvalidInputError, NotFoundError, OutOfRangeError
from upsc_prep.services.test_service import TestService


async def _start(test_service, count=4):
    return await test_service.start_test("u1", ["Polity"], count)


class TestStart:
    async def test_start_opens_a_session(self, test_service, memory):
        state = await _start(test_service)

        assert state["total_questions"] == 4
        assert state["duration_seconds"] == 240
        assert state["submitted"] is False
        assert state["summary"]["not_visited"] == 4
        assert memory.get_session("u1", state["test_id"]) is not None

    async def test_answers_hidden_before_submission(self, test_service):
        state = await _start(test_service)
        question = state["questions"][0]
        assert question["question_html"].startswith("<p>")
        assert question["topic"] == "Polity"
        assert "correct_answer" not in question
        assert "explanation" not in question

    async def test_test_document_is_stored(self, test_service, store):
        state = await _start(test_service)
        document = await store.read(f"users/u1/tests/{state['date_key']}/{state['test_id']}")
        assert len(document["questions"]) == 4
        assert document["status"] == ["not_visited"] * 4

    async def test_question_count_bounds(self, test_service):
        with pytest.raises(InvalidInputError):
            await test_service.start_test("u1", ["Polity"], 31)
        with pytest.raises(InvalidInputError):
            await test_service.start_test("u1", ["Polity"], 0)

    async def test_blank_topics_rejected(self, test_service):
        with pytest.raises(InvalidInputError):
            await test_service.start_test("u1", ["  "], 5)

    async def test_invalid_user_rejected(self, test_service):
        with pytest.raises(InvalidInputError):
            await test_service.start_test("a/b", ["Polity"], 5)


class TestTransitions:
    async def test_answer_persists_slices(self, test_service, store):
        state = await _start(test_service)
        test_id = state["test_id"]

        result = await test_service.select_answer("u1", test_id, 0, "1 and 2")

        assert result["changed"] is True
        assert result["questions"][0]["selected"] == "1 and 2"
        base = f"users/u1/tests/{state['date_key']}/{test_id}"
        assert await store.read(f"{base}/answers") == ["1 and 2", None, None, None]
        assert (await store.read(f"{base}/status"))[0] == "answered"

    async def test_review_and_clear(self, test_service, store):
        state = await _start(test_service)
        test_id = state["test_id"]

        await test_service.select_answer("u1", test_id, 1, "1 only")
        reviewed = await test_service.toggle_review("u1", test_id, 1)
        assert reviewed["questions"][1]["status"] == "review"
        assert reviewed["summary"]["review"] == 1

        cleared = await test_service.clear_response("u1", test_id, 1)
        assert cleared["questions"][1]["selected"] is None
        assert cleared["questions"][1]["review"] is True

    async def test_navigate(self, test_service):
        state = await _start(test_service)
        result = await test_service.navigate("u1", state["test_id"], 3)
        assert result["current"] == 3
        assert result["questions"][3]["status"] == "not_answered"
        with pytest.raises(OutOfRangeError):
            await test_service.navigate("u1", state["test_id"], 4)

    async def test_out_of_range_answer_is_noop(self, test_service, store):
        state = await _start(test_service)
        writes = len(store.writes)
        result = await test_service.select_answer("u1", state["test_id"], 9, "1 only")
        assert result["changed"] is False
        assert len(store.writes) == writes

    async def test_unknown_session(self, test_service):
        with pytest.raises(NotFoundError):
            await test_service.select_answer("u1", "test_missing", 0, "1 only")
        with pytest.raises(NotFoundError):
            test_service.get_state("u2", "test_missing")


class TestSubmit:
    async def test_submit_reveals_answers_and_scores(self, test_service):
        state = await _start(test_service)
        test_id = state["test_id"]
        await test_service.select_answer("u1", test_id, 0, "1 and 2")
        await test_service.select_answer("u1", test_id, 1, "1 and 2")

        result = await test_service.submit("u1", test_id)

        assert result["submitted"] is True
        assert result["persisted"] is True
        assert "warning" not in result
        assert result["analytics"]["correct"] == 1
        assert result["analytics"]["wrong"] == 1
        assert result["analytics"]["not_attempted"] == 2
        assert result["questions"][0]["is_correct"] is True
        assert result["questions"][1]["correct_answer"] == "1 only"

    async def test_submission_records(self, test_service, store):
        state = await _start(test_service)
        test_id = state["test_id"]
        await test_service.select_answer("u1", test_id, 0, "1 and 2")
        await test_service.submit("u1", test_id)

        record = await store.read(f"users/u1/tests/{state['date_key']}/{test_id}")
        assert record["submitted"] is True
        assert record["score"] == 25.0
        assert record["test_type"] == "daily-test"

        bank = await store.read(f"pyqs/{test_id}")
        assert bank["created_by"] == "u1"
        assert len(bank["questions"]) == 4

        history = await store.read(f"users/u1/testHistory/{test_id}")
        assert history["score"] == 25.0
        assert history["date_key"] == state["date_key"]

    async def test_failed_save_still_returns_result(self, test_service, store):
        state = await _start(test_service)
        store.fail_writes = True

        result = await test_service.submit("u1", state["test_id"])

        assert result["submitted"] is True
        assert result["persisted"] is False
        assert "could not be saved" in result["warning"]
        assert result["analytics"]["not_attempted"] == 4

    async def test_failed_slice_write_does_not_block_answering(self, test_service, store):
        state = await _start(test_service)
        store.fail_writes = True
        result = await test_service.select_answer("u1", state["test_id"], 0, "1 only")
        assert result["changed"] is True

    async def test_submit_twice(self, test_service):
        state = await _start(test_service)
        first = await test_service.submit("u1", state["test_id"])
        second = await test_service.submit("u1", state["test_id"])
        assert first["analytics"] == second["analytics"]


class TestCountdown:
    async def test_expiry_submits_and_saves(self, config, store, ai_service, memory, monkeypatch):
        real_sleep = asyncio.sleep
        monkeypatch.setattr(asyncio, "sleep", lambda seconds: real_sleep(0))
        config.SECONDS_PER_QUESTION = 3
        service = TestService(config=config, store=store, ai_service=ai_service, memory=memory)

        state = await service.start_test("u1", ["Polity"], 2)
        task = memory.timers[memory.session_key("u1", state["test_id"])]
        await task

        session = memory.get_session("u1", state["test_id"])
        assert session.submitted is True
        assert session.remaining_seconds == 0
        assert await store.read(f"users/u1/testHistory/{state['test_id']}") is not None
        assert memory.get_memory_stats()["running_timers"] == 0

    async def test_manual_submit_cancels_countdown(self, config, store, ai_service, memory):
        service = TestService(config=config, store=store, ai_service=ai_service, memory=memory)
        state = await service.start_test("u1", ["Polity"], 2)
        task = memory.timers[memory.session_key("u1", state["test_id"])]

        await service.submit("u1", state["test_id"])

        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()


class TestRetake:
    async def test_retake_resets_state(self, test_service, memory):
        state = await _start(test_service)
        test_id = state["test_id"]
        await test_service.select_answer("u1", test_id, 0, "1 and 2")
        await test_service.submit("u1", test_id)

        retaken = await test_service.retake_test("u1", test_id, state["date_key"])

        assert retaken["test_id"] == test_id
        assert retaken["submitted"] is False
        assert retaken["total_questions"] == 4
        assert all(q["selected"] is None for q in retaken["questions"])
        assert memory.get_session("u1", test_id).submitted is False

    async def test_retake_missing_test(self, test_service):
        with pytest.raises(NotFoundError):
            await test_service.retake_test("u1", "test_missing", "2025-08-02")

    async def test_retake_bad_date_key(self, test_service):
        with pytest.raises(InvalidInputError):
            await test_service.retake_test("u1", "test_x", "02-08-2025")


class TestHistory:
    async def test_newest_first(self, test_service, store):
        await store.write("users/u1/testHistory/a", {"date_key": "2025-08-01", "submitted_at": 5, "score": 10})
        await store.write("users/u1/testHistory/b", {"date_key": "2025-08-03", "submitted_at": 1, "score": 20})
        await store.write("users/u1/testHistory/c", {"date_key": "2025-08-03", "submitted_at": 9, "score": 30})

        history = await test_service.get_history("u1")

        assert [h["test_id"] for h in history] == ["c", "b", "a"]

    async def test_empty_history(self, test_service):
        assert await test_service.get_history("u1") == []
        assert await test_service.get_overall_stats("u1") is None

    async def test_overall_stats_after_submissions(self, test_service):
        for _ in range(2):
            state = await _start(test_service, 2)
            await test_service.select_answer("u1", state["test_id"], 0, "1 and 2")
            await test_service.submit("u1", state["test_id"])

        stats = await test_service.get_overall_stats("u1")

        assert stats["total_tests"] == 2
        assert stats["total_questions"] == 4
        assert stats["total_correct"] == 2
        assert stats["average_score"] == 50.0


class TestMaintenance:
    async def test_cleanup_expired(self, test_service, memory, config):
        state = await _start(test_service)
        session = memory.get_session("u1", state["test_id"])
        session.created_at -= config.TEST_EXPIRATION_SECONDS + 1

        result = test_service.cleanup_expired_tests()

        assert result["removed"] == 1
        assert result["active_tests"] == 0

    def test_health(self, test_service):
        assert test_service.health_check()["status"] == "healthy"
