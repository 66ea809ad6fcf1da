"""REST API routes for daybook."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from daybook.api.handlers import (
    handle_calendar_sync,
    handle_document_archive,
    handle_document_get,
    handle_document_list,
    handle_document_process,
    handle_document_sort,
    handle_event_note_create,
    handle_line_process,
    handle_schedule,
    handle_schedule_overdue,
    handle_set_marker,
    handle_status,
    handle_task_info,
    handle_task_note_create,
    handle_task_note_status,
    handle_time_block,
    handle_unlink_parent,
    handle_unschedule,
)


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class DocumentBody(BaseModel):
    path: str


class ProcessBody(BaseModel):
    path: str
    sort: Optional[bool] = None
    archive: Optional[bool] = None


class SortBody(BaseModel):
    path: str
    by_time_block: bool = False


class LineBody(BaseModel):
    path: str
    line: int


class MarkerBody(LineBody):
    command: str


class TimeBlockBody(LineBody):
    start: Optional[str] = None
    end: Optional[str] = None


class ScheduleBody(LineBody):
    date: str


class OverdueBody(BaseModel):
    date: Optional[str] = None


class NoteStatusBody(BaseModel):
    note_path: str
    status: str


class EventBody(BaseModel):
    summary: str
    start_time: str
    end_time: str
    uid: Optional[str] = None
    calendar_name: Optional[str] = None
    location: Optional[str] = None
    call_url: Optional[str] = None


class CalendarSyncBody(BaseModel):
    path: str
    events: List[EventBody]


def _checked(result: dict) -> dict:
    if "error" in result:
        status_code = 404 if "not found" in result["error"] else 400
        raise HTTPException(status_code=status_code, detail=result["error"])
    return result


def _run(handler, ctx, **kwargs) -> dict:
    try:
        result = handler(ctx, **kwargs)
    except Exception as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _checked(result)


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def register_routes(app_router: APIRouter, ctx) -> None:
    """Attach all REST routes that use the shared context."""

    @app_router.get("/status")
    def get_status():
        return handle_status(ctx)

    # --- Documents ---

    @app_router.get("/documents")
    def list_documents(folder: Optional[str] = Query(None)):
        return handle_document_list(ctx, folder=folder)

    @app_router.get("/documents/{path:path}")
    def get_document(path: str):
        return _checked(handle_document_get(ctx, path=path))

    @app_router.post("/process")
    def process_document(body: ProcessBody):
        return _run(handle_document_process, ctx, **body.model_dump())

    @app_router.post("/sort")
    def sort_document(body: SortBody):
        return _run(handle_document_sort, ctx, **body.model_dump())

    @app_router.post("/archive")
    def archive_document(body: DocumentBody):
        return _run(handle_document_archive, ctx, path=body.path)

    # --- Lines ---

    @app_router.get("/lines/info")
    def get_task_info(path: str = Query(...), line: int = Query(...)):
        return _checked(handle_task_info(ctx, path=path, line=line))

    @app_router.post("/lines/process")
    def process_line(body: LineBody):
        return _run(handle_line_process, ctx, **body.model_dump())

    @app_router.post("/lines/marker")
    def set_marker(body: MarkerBody):
        return _run(handle_set_marker, ctx, **body.model_dump())

    @app_router.post("/lines/time-block")
    def set_time_block(body: TimeBlockBody):
        return _run(handle_time_block, ctx, **body.model_dump())

    @app_router.post("/lines/unlink")
    def unlink(body: LineBody):
        return _run(handle_unlink_parent, ctx, **body.model_dump())

    # --- Scheduling ---

    @app_router.post("/schedule")
    def schedule(body: ScheduleBody):
        return _run(handle_schedule, ctx, **body.model_dump())

    @app_router.post("/unschedule")
    def unschedule(body: LineBody):
        return _run(handle_unschedule, ctx, **body.model_dump())

    @app_router.post("/schedule/overdue")
    def schedule_overdue(body: OverdueBody):
        return _run(handle_schedule_overdue, ctx, **body.model_dump())

    # --- Satellite notes ---

    @app_router.post("/task-notes", status_code=201)
    def create_task_note(body: LineBody):
        return _run(handle_task_note_create, ctx, **body.model_dump())

    @app_router.post("/task-notes/status")
    def set_task_note_status(body: NoteStatusBody):
        return _run(handle_task_note_status, ctx, **body.model_dump())

    @app_router.post("/event-notes", status_code=201)
    def create_event_note(body: LineBody):
        return _run(handle_event_note_create, ctx, **body.model_dump())

    @app_router.post("/calendar/sync")
    def sync_calendar(body: CalendarSyncBody):
        return _run(handle_calendar_sync, ctx, **body.model_dump())
