"""Generation session API endpoints"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from models.session import FeedbackBody, RefineBody, SessionState, SubmitBody

from .deps import get_session

router = APIRouter()


@router.get("", response_model=SessionState)
async def get_state(request: Request) -> SessionState:
    return get_session(request).snapshot()


@router.post("/submit", response_model=SessionState)
async def submit(body: SubmitBody, request: Request) -> SessionState:
    """Start a generation; returns immediately in the generating phase"""
    session = get_session(request)
    if session.is_generating:
        raise HTTPException(status_code=409, detail="A generation is already running")
    if not body.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is required")
    if not session.submit(body.prompt, body.model, body.includeHelper, body.includeSampleCode):
        raise HTTPException(status_code=400, detail=session.state.error)
    return session.snapshot()


@router.post("/wait", response_model=SessionState)
async def wait(request: Request) -> SessionState:
    """Block until the running generation resolves"""
    return await get_session(request).wait()


@router.post("/feedback", response_model=SessionState)
async def feedback(body: FeedbackBody, request: Request) -> SessionState:
    session = get_session(request)
    if not session.give_feedback(body.positive):
        raise HTTPException(status_code=409, detail="No generated script to give feedback on")
    return session.snapshot()


@router.post("/refine", response_model=SessionState)
async def refine(body: RefineBody, request: Request) -> SessionState:
    session = get_session(request)
    if not session.submit_refine(body.text):
        raise HTTPException(status_code=409, detail=session.state.error or "Nothing to refine")
    return session.snapshot()


@router.post("/reset", response_model=SessionState)
async def reset(request: Request) -> SessionState:
    session = get_session(request)
    session.reset()
    return session.snapshot()
