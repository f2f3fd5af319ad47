import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from .config import (
    FLAG_PATH,
    LOG_LEVEL,
    PORT,
    SEED_PATH,
    STORE_BACKEND,
)
from .controller import VoteController
from .errors import AlreadySubmitted
from .models import ControllerSnapshot, Outcome, ToggleIn
from .session import FirebaseAnonymousSession, NullSession
from .state import FileFlagStore
from .store import FirestoreCounterStore, MemoryCounterStore

logger = logging.getLogger(__name__)

UI_DIR = Path(__file__).parent / "ui"

STATUS_BY_KIND = {
    "selection_limit_exceeded": 409,
    "already_submitted": 409,
    "incomplete_selection": 422,
    "submission_failed": 502,
    "fetch_failed": 503,
}

router = APIRouter()


def build_controller() -> VoteController:
    """Wire the controller from environment settings."""
    if STORE_BACKEND == "firestore":
        session = FirebaseAnonymousSession()
        store = FirestoreCounterStore(session=session)
        return VoteController(store, FileFlagStore(FLAG_PATH), session)
    if STORE_BACKEND != "memory":
        raise ValueError(f"STORE_BACKEND must be 'memory' or 'firestore', got {STORE_BACKEND}")
    store = MemoryCounterStore.from_file(SEED_PATH) if SEED_PATH else MemoryCounterStore()
    return VoteController(store, FileFlagStore(FLAG_PATH), NullSession())


def _controller(request: Request) -> VoteController:
    return request.app.state.controller


def _respond(controller: VoteController, outcome: Outcome) -> dict:
    if not outcome.ok:
        raise HTTPException(
            status_code=STATUS_BY_KIND.get(outcome.kind, 400),
            detail=outcome.model_dump(mode="json"),
        )
    return {
        "ok": True,
        "outcome": outcome.model_dump(mode="json"),
        "state": controller.snapshot().model_dump(mode="json"),
    }


def _refuse_if_submitted(controller: VoteController) -> None:
    # the view keeps selection controls disabled after submitting
    if controller.submitted:
        outcome = Outcome.from_error(AlreadySubmitted())
        raise HTTPException(status_code=409, detail=outcome.model_dump(mode="json"))


@router.get("/state")
async def get_state(request: Request) -> ControllerSnapshot:
    return _controller(request).snapshot()


@router.post("/refresh")
async def refresh(request: Request):
    controller = _controller(request)
    return _respond(controller, await controller.refresh_competitors())


@router.post("/selection")
async def toggle_selection(t: ToggleIn, request: Request):
    controller = _controller(request)
    _refuse_if_submitted(controller)
    return _respond(controller, controller.toggle_selection(t.competitor_id, t.category))


@router.post("/submit")
async def submit(request: Request):
    controller = _controller(request)
    return _respond(controller, await controller.submit_votes())


@router.post("/clear")
async def clear(request: Request):
    controller = _controller(request)
    _refuse_if_submitted(controller)
    return _respond(controller, controller.clear_selections())


@router.post("/flag/reset")
async def reset_flag(request: Request):
    controller = _controller(request)
    return _respond(controller, controller.reset_submission_flag())


def create_app(controller: Optional[VoteController] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: session + first competitor load; a failed load is kept as last_error
        app.state.controller = controller or build_controller()
        outcome = await app.state.controller.initialize()
        if not outcome.ok:
            logger.warning(f"Starting with no competitors: {outcome.message}")
        yield
        # Shutdown: drop a sign-in that is still in flight
        task = app.state.controller.session_task
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title="Cookie Competition voting", lifespan=lifespan)
    app.include_router(router)
    app.mount("/ui", StaticFiles(directory=UI_DIR, html=True), name="ui")

    @app.get("/")
    async def root():
        return RedirectResponse(url="/ui/")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL)
    uvicorn.run("cookie_vote.main:app", host="0.0.0.0", port=PORT, log_level=LOG_LEVEL.lower())
