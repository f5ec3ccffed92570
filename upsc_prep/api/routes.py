# upsc_prep/api/routes.py
import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from ..core.database import DocumentStore, get_store
from ..core.exceptions import NotFoundError, PrepPortalError
from ..core.models import (
    AddFlashCardRequest, AddSubjectRequest, AddTopicRequest, AnswerRequest, ExamDateRequest,
    GenerateFlashCardsRequest, GenerateTestRequest, GenerateTopicsRequest, IndexRequest,
    SaveTopicsRequest,
)
from ..core.utils import DateTimeUtils
from ..services.current_affairs_service import CurrentAffairsService, get_current_affairs_service
from ..services.flashcard_service import FlashCardService, get_flashcard_service
from ..services.study_service import StudyService, get_study_service
from ..services.test_service import TestService, get_test_service

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/")
async def home():
    """Home endpoint"""
    return {
        "service": "UPSC Prep API",
        "status": "operational",
        "timestamp": DateTimeUtils.get_current_timestamp()
    }

# ==================== Generation ====================

@router.post("/api/generate-test")
async def generate_test(request: GenerateTestRequest,
                        test_service: TestService = Depends(get_test_service)):
    """Generate a question batch without opening a session"""
    questions = await test_service.generate_questions(request.topics, request.num_questions)
    return {"questions": [q.model_dump(exclude_none=True) for q in questions]}

@router.post("/api/generate-flashcards")
async def generate_flashcards(request: GenerateFlashCardsRequest,
                              flashcard_service: FlashCardService = Depends(get_flashcard_service)):
    cards = await flashcard_service.generate_cards(request.topic, request.num_cards)
    return {"cards": [card.model_dump() for card in cards]}

@router.post("/api/generate-topics")
async def generate_topics(request: GenerateTopicsRequest,
                          study_service: StudyService = Depends(get_study_service)):
    return {"topics": await study_service.generate_topics(request.subject)}

# ==================== Current Affairs ====================

@router.get("/api/scrape-current-affairs")
async def scrape_current_affairs(type: str = Query("daily"), source: str = Query("nextias"),
                                 service: CurrentAffairsService = Depends(get_current_affairs_service)):
    return await service.get_feed(type, source)

@router.get("/api/scrape-article")
async def scrape_article(url: str = Query(..., min_length=1),
                         service: CurrentAffairsService = Depends(get_current_affairs_service)):
    return await service.get_article(url)

# ==================== Tests ====================

@router.post("/api/users/{user_id}/tests")
async def start_test(user_id: str, request: GenerateTestRequest,
                     test_service: TestService = Depends(get_test_service)):
    return await test_service.start_test(user_id, request.topics, request.num_questions)

@router.get("/api/users/{user_id}/tests/history")
async def test_history(user_id: str, test_service: TestService = Depends(get_test_service)):
    history = await test_service.get_history(user_id)
    return {"count": len(history), "history": history}

@router.get("/api/users/{user_id}/tests/{test_id}")
async def test_state(user_id: str, test_id: str,
                     test_service: TestService = Depends(get_test_service)):
    return test_service.get_state(user_id, test_id)

@router.post("/api/users/{user_id}/tests/{test_id}/answer")
async def select_answer(user_id: str, test_id: str, request: AnswerRequest,
                        test_service: TestService = Depends(get_test_service)):
    return await test_service.select_answer(user_id, test_id, request.index, request.option)

@router.post("/api/users/{user_id}/tests/{test_id}/navigate")
async def navigate(user_id: str, test_id: str, request: IndexRequest,
                   test_service: TestService = Depends(get_test_service)):
    return await test_service.navigate(user_id, test_id, request.index)

@router.post("/api/users/{user_id}/tests/{test_id}/review")
async def toggle_review(user_id: str, test_id: str, request: IndexRequest,
                        test_service: TestService = Depends(get_test_service)):
    return await test_service.toggle_review(user_id, test_id, request.index)

@router.post("/api/users/{user_id}/tests/{test_id}/clear")
async def clear_response(user_id: str, test_id: str, request: IndexRequest,
                         test_service: TestService = Depends(get_test_service)):
    return await test_service.clear_response(user_id, test_id, request.index)

@router.post("/api/users/{user_id}/tests/{test_id}/submit")
async def submit_test(user_id: str, test_id: str,
                      test_service: TestService = Depends(get_test_service)):
    return await test_service.submit(user_id, test_id)

@router.post("/api/users/{user_id}/tests/{test_id}/retake")
async def retake_test(user_id: str, test_id: str, date_key: Optional[str] = Query(None),
                      test_service: TestService = Depends(get_test_service)):
    return await test_service.retake_test(user_id, test_id, date_key)

@router.delete("/api/cleanup")
async def cleanup_resources(test_service: TestService = Depends(get_test_service)):
    """Cleanup expired tests"""
    return test_service.cleanup_expired_tests()

@router.get("/api/users/{user_id}/analytics")
async def overall_analytics(user_id: str, test_service: TestService = Depends(get_test_service)):
    stats = await test_service.get_overall_stats(user_id)
    return {"has_data": stats is not None, "stats": stats}

# ==================== Subjects & Topics ====================

@router.get("/api/users/{user_id}/subjects")
async def list_subjects(user_id: str, study_service: StudyService = Depends(get_study_service)):
    subjects = await study_service.list_subjects(user_id)
    return {"count": len(subjects), "subjects": subjects}

@router.post("/api/users/{user_id}/subjects")
async def add_subject(user_id: str, request: AddSubjectRequest,
                      study_service: StudyService = Depends(get_study_service)):
    return await study_service.add_subject(
        user_id, request.name, request.start, request.end, request.start_date, request.end_date
    )

@router.delete("/api/users/{user_id}/subjects/{subject_id}")
async def delete_subject(user_id: str, subject_id: str,
                         study_service: StudyService = Depends(get_study_service)):
    await study_service.delete_subject(user_id, subject_id)
    return {"deleted": subject_id}

@router.post("/api/users/{user_id}/subjects/{subject_id}/topics")
async def add_topic(user_id: str, subject_id: str, request: AddTopicRequest,
                    study_service: StudyService = Depends(get_study_service)):
    return await study_service.add_topic(user_id, subject_id, request.name)

@router.put("/api/users/{user_id}/subjects/{subject_id}/topics")
async def save_topics(user_id: str, subject_id: str, request: SaveTopicsRequest,
                      study_service: StudyService = Depends(get_study_service)):
    return await study_service.save_topics(user_id, subject_id, request.topics)

@router.post("/api/users/{user_id}/subjects/{subject_id}/topics/generate")
async def suggest_topics(user_id: str, subject_id: str,
                         study_service: StudyService = Depends(get_study_service)):
    """AI topic suggestions for a subject; saved only through PUT .../topics"""
    subject = await study_service.get_subject(user_id, subject_id)
    return {"subject_id": subject_id, "topics": await study_service.generate_topics(subject["name"])}

@router.post("/api/users/{user_id}/subjects/{subject_id}/topics/{index}/toggle")
async def toggle_topic(user_id: str, subject_id: str, index: int,
                       study_service: StudyService = Depends(get_study_service)):
    return await study_service.toggle_topic(user_id, subject_id, index)

@router.delete("/api/users/{user_id}/subjects/{subject_id}/topics/{index}")
async def delete_topic(user_id: str, subject_id: str, index: int,
                       study_service: StudyService = Depends(get_study_service)):
    return await study_service.delete_topic(user_id, subject_id, index)

@router.get("/api/users/{user_id}/exam-date")
async def get_exam_date(user_id: str, study_service: StudyService = Depends(get_study_service)):
    return {"exam_date": await study_service.get_exam_date(user_id)}

@router.put("/api/users/{user_id}/exam-date")
async def set_exam_date(user_id: str, request: ExamDateRequest,
                        study_service: StudyService = Depends(get_study_service)):
    return {"exam_date": await study_service.set_exam_date(user_id, request.exam_date)}

@router.get("/api/users/{user_id}/dashboard")
async def dashboard(user_id: str, study_service: StudyService = Depends(get_study_service)):
    return await study_service.dashboard(user_id)

# ==================== Flash Cards ====================

@router.get("/api/users/{user_id}/flashcards")
async def list_flashcards(user_id: str, topic: Optional[str] = Query(None),
                          flashcard_service: FlashCardService = Depends(get_flashcard_service)):
    return await flashcard_service.list_cards(user_id, topic)

@router.post("/api/users/{user_id}/flashcards")
async def add_flashcard(user_id: str, request: AddFlashCardRequest,
                        flashcard_service: FlashCardService = Depends(get_flashcard_service)):
    return await flashcard_service.add_card(user_id, request.question, request.answer, request.topic)

@router.post("/api/users/{user_id}/flashcards/generate")
async def generate_user_flashcards(user_id: str, request: GenerateFlashCardsRequest,
                                   flashcard_service: FlashCardService = Depends(get_flashcard_service)):
    cards = await flashcard_service.generate_and_save(user_id, request.topic, request.num_cards)
    return {"count": len(cards), "cards": cards}

@router.delete("/api/users/{user_id}/flashcards/{card_id}")
async def delete_flashcard(user_id: str, card_id: str,
                           flashcard_service: FlashCardService = Depends(get_flashcard_service)):
    await flashcard_service.delete_card(user_id, card_id)
    return {"deleted": card_id}

# ==================== WebSockets ====================

@router.websocket("/ws/users/{user_id}/tests/{test_id}")
async def test_timer_socket(websocket: WebSocket, user_id: str, test_id: str,
                            test_service: TestService = Depends(get_test_service)):
    """Stream the countdown once per second until the test is submitted"""
    await websocket.accept()
    logger.info(f"🔌 Timer socket connected: {user_id}/{test_id}")

    try:
        while True:
            try:
                session = test_service.get_session(user_id, test_id)
            except NotFoundError as e:
                await websocket.send_text(json.dumps({"type": "error", "text": str(e), "status": "error"}))
                break

            await websocket.send_text(json.dumps(test_service.timer_snapshot(session)))
            if session.submitted:
                await websocket.send_text(json.dumps({
                    "type": "submitted",
                    "test_id": test_id,
                    "analytics": session.analytics.model_dump() if session.analytics else None,
                }))
                break
            await asyncio.sleep(1)
    except WebSocketDisconnect:
        logger.info(f"🔌 Timer socket disconnected: {user_id}/{test_id}")
        return

    await websocket.close()

@router.websocket("/ws/users/{user_id}/subjects")
async def subjects_socket(websocket: WebSocket, user_id: str,
                          store: DocumentStore = Depends(get_store)):
    """Push the subjects subtree now and after every change"""
    await websocket.accept()
    logger.info(f"🔌 Subjects socket connected: {user_id}")

    try:
        async for value in store.subscribe(f"users/{user_id}/subjects"):
            await websocket.send_text(json.dumps({"type": "subjects", "data": value or {}}))
    except WebSocketDisconnect:
        logger.info(f"🔌 Subjects socket disconnected: {user_id}")
        return
    except PrepPortalError as e:
        logger.error(f"❌ Subjects subscription failed: {e}")
        await websocket.send_text(json.dumps({"type": "error", "text": str(e), "status": "error"}))

    await websocket.close()
