import json
import logging
import os
from datetime import datetime
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from findings_assistant.core.exceptions import InputEmptyError
from findings_assistant.query_handlers.types import QueryErrorResponse, ThinkingMode

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Rate limiting setup
limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title="Findings Assistant",
    docs_url="/docs" if os.environ.get("ENVIRONMENT") != "production" else None,
    redoc_url="/redoc" if os.environ.get("ENVIRONMENT") != "production" else None,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


class AskRequest(BaseModel):
    question: str
    thinking_mode: ThinkingMode = ThinkingMode.FAST
    session_id: Optional[str] = None


class ConfirmRequest(BaseModel):
    question: str
    candidate: str
    thinking_mode: ThinkingMode = ThinkingMode.FAST
    session_id: Optional[str] = None


class ClassifyRequest(BaseModel):
    question: str


# --- Lazy initialization for LLM, repository and query router ---
_llm = None
_repository = None
_query_router = None


def get_llm():
    global _llm
    if _llm is None:
        logger.info(f"GROQ_API_KEY in environment: {'Yes' if os.getenv('GROQ_API_KEY') else 'No'}")
        logger.info("Initializing LLM...")
        from findings_assistant.providers import create_llm

        _llm = create_llm()
        logger.info(f"LLM initialized: {type(_llm).__name__ if _llm else 'none (lookups only)'}")
    return _llm


def get_repository():
    global _repository
    if _repository is None:
        from findings_assistant.data import SQLAlchemyFindingRepository

        _repository = SQLAlchemyFindingRepository()
    return _repository


def get_query_router():
    global _query_router
    if _query_router is None:
        logger.info("Initializing query router...")
        from findings_assistant.query_handlers.router import SmartQueryRouter

        _query_router = SmartQueryRouter(store=get_repository(), llm=get_llm())
        logger.info("Query router initialized successfully")
    return _query_router


def _response_body(result) -> JSONResponse:
    status_code = 200
    if isinstance(result, QueryErrorResponse) and result.code == "UNAVAILABLE":
        status_code = 503
    return JSONResponse(result.to_dict(), status_code=status_code)


@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI app starting up...")

    # Initialize database with SQLAlchemy
    try:
        from findings_assistant.data import init_database

        init_database()
        logger.info("Database initialized with SQLAlchemy and indexes")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    router = app.dependency_overrides.get(get_query_router, get_query_router)()
    if not await router.refresh_entities():
        logger.warning("Starting without known project names, fuzzy matching uses configured projects only")

    logger.info("App startup complete!")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI app shutting down...")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/health/database")
async def database_health_check():
    from findings_assistant.data import DatabaseInitializer

    db_info = DatabaseInitializer.get_database_info()
    return {
        "status": "healthy" if db_info["connection_status"] == "Connected" else "unhealthy",
        "database_info": db_info,
        "timestamp": datetime.now().isoformat(),
    }


@app.post("/ask")
@limiter.limit("20/minute")
async def ask(request: Request, body: AskRequest, router=Depends(get_query_router)):
    """Route a question to lookup, hybrid or analytical execution"""
    try:
        result = await router.process_query(body.question, body.thinking_mode, body.session_id)
    except InputEmptyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response_body(result)


@app.post("/ask/stream")
@limiter.limit("20/minute")
async def ask_stream(request: Request, body: AskRequest, router=Depends(get_query_router)):
    """Stream answer chunks as NDJSON, ending with the full response"""
    if not body.question.strip():
        raise HTTPException(status_code=400, detail="Query text must not be empty")

    async def ndjson_lines():
        async for item in router.stream_query(body.question, body.thinking_mode, body.session_id):
            if isinstance(item, str):
                yield json.dumps({"chunk": item}) + "\n"
            else:
                yield json.dumps({"response": item.to_dict()}) + "\n"

    return StreamingResponse(ndjson_lines(), media_type="application/x-ndjson")


@app.post("/confirm")
@limiter.limit("20/minute")
async def confirm(request: Request, body: ConfirmRequest, router=Depends(get_query_router)):
    """Answer a question after the user picked one of the suggested projects"""
    try:
        result = await router.confirm_candidate(
            body.question, body.candidate, body.session_id, body.thinking_mode
        )
    except InputEmptyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response_body(result)


@app.post("/classify")
async def classify(body: ClassifyRequest, router=Depends(get_query_router)):
    """Classify a query to understand how it would be routed"""
    try:
        classification = router.classify_query(body.question)
    except InputEmptyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"question": body.question, "classification": classification.to_dict()}


@app.delete("/sessions/{session_id}")
async def end_session(session_id: str, router=Depends(get_query_router)):
    router.end_session(session_id)
    return {"session_id": session_id, "status": "ended"}


@app.post("/load_mock_data")
async def load_mock_data(repository=Depends(get_repository), router=Depends(get_query_router)):
    """Replace stored findings with the bundled sample set"""
    from findings_assistant.services.data_loader import DataLoader

    findings = DataLoader.get_mock_findings()
    repository.clear()
    repository.add_many(findings)
    router.cache.clear()
    await router.refresh_entities()
    logger.info(f"Loaded {len(findings)} mock findings")
    return {"loaded": len(findings), "status": "success"}


if __name__ == "__main__":
    uvicorn.run("findings_assistant.web.app:app", host="0.0.0.0", port=8000, reload=True)
