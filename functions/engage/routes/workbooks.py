"""
Routes for workbook templates, class assignments, student progress and the
gradebook.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from engage import albums, gradebook
from engage.dependencies import get_document_store
from engage.schemas import (
    AlbumAnswerRequest,
    AlbumTemplateCreateRequest,
    AlbumTemplateUpdateRequest,
    AssignAlbumRequest,
    CompletePageRequest,
    GradeAnswerRequest,
    GradeAnswerResponse,
    ProgressOpenRequest,
    StatusResponse,
)
from engage.store import DocumentStore
from shared.json_utils import from_document
from shared.types import (
    AlbumAnswer,
    AlbumPage,
    AlbumProgress,
    AlbumTemplate,
    AssignmentSettings,
    ClassAlbum,
)

router = APIRouter()


# Templates


@router.post("/album-templates", response_model=None, status_code=201)
def create_template(
    payload: AlbumTemplateCreateRequest, store: DocumentStore = Depends(get_document_store)
) -> AlbumTemplate:
    pages = [from_document(AlbumPage, page.model_dump()) for page in payload.pages]
    return albums.create_album_template(
        store, payload.designer_id, payload.title, payload.description, pages
    )


@router.get("/album-templates", response_model=None)
def list_templates(
    designer_id: str | None = None, store: DocumentStore = Depends(get_document_store)
) -> List[AlbumTemplate]:
    if designer_id:
        return albums.get_designer_albums(store, designer_id)
    return albums.get_published_albums(store)


@router.get("/album-templates/{template_id}", response_model=None)
def get_template(template_id: str, store: DocumentStore = Depends(get_document_store)) -> AlbumTemplate:
    template = albums.get_album_template(store, template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.patch("/album-templates/{template_id}", response_model=StatusResponse)
def update_template(
    template_id: str,
    payload: AlbumTemplateUpdateRequest,
    store: DocumentStore = Depends(get_document_store),
):
    albums.update_album_template(store, template_id, payload.model_dump(exclude_unset=True))
    return StatusResponse()


# Assignments


@router.post("/class-albums", response_model=None, status_code=201)
def assign_album(payload: AssignAlbumRequest, store: DocumentStore = Depends(get_document_store)) -> ClassAlbum:
    settings = from_document(AssignmentSettings, payload.settings.model_dump()) if payload.settings else None
    return albums.assign_album_to_class(
        store,
        payload.template_id,
        payload.class_id,
        payload.trainer_id,
        due_date=payload.due_date,
        settings=settings,
    )


@router.get("/classes/{class_id}/class-albums", response_model=None)
def class_assignments(
    class_id: str,
    include_archived: bool = False,
    store: DocumentStore = Depends(get_document_store),
) -> List[ClassAlbum]:
    if include_archived:
        return gradebook.get_class_assignments(store, class_id)
    return albums.get_student_assignments(store, class_id)


@router.get("/class-albums/{assignment_id}", response_model=None)
def get_assignment(assignment_id: str, store: DocumentStore = Depends(get_document_store)) -> ClassAlbum:
    assignment = albums.get_class_album(store, assignment_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return assignment


@router.get("/class-albums/{assignment_id}/progress", response_model=None)
def assignment_progress(
    assignment_id: str, store: DocumentStore = Depends(get_document_store)
) -> List[AlbumProgress]:
    return albums.get_album_progress_for_class(store, assignment_id)


# Student progress


@router.post("/album-progress", response_model=None)
def open_progress(payload: ProgressOpenRequest, store: DocumentStore = Depends(get_document_store)) -> AlbumProgress:
    return albums.get_or_create_album_progress(
        store, payload.class_album_id, payload.class_id, payload.student_id
    )


@router.get("/album-progress/{progress_id}", response_model=None)
def get_progress(progress_id: str, store: DocumentStore = Depends(get_document_store)) -> AlbumProgress:
    progress = albums.get_album_progress(store, progress_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Progress not found")
    return progress


@router.post("/album-progress/{progress_id}/answers", response_model=None)
def submit_answer(
    progress_id: str, payload: AlbumAnswerRequest, store: DocumentStore = Depends(get_document_store)
) -> AlbumAnswer:
    return albums.submit_album_answer(store, progress_id, payload.block_id, payload.answer)


@router.post("/album-progress/{progress_id}/pages", response_model=None)
def complete_page(
    progress_id: str, payload: CompletePageRequest, store: DocumentStore = Depends(get_document_store)
) -> AlbumProgress:
    return albums.complete_album_page(store, progress_id, payload.page_id)


@router.get("/album-progress/{progress_id}/grades", response_model=None)
def question_grades(progress_id: str, store: DocumentStore = Depends(get_document_store)) -> list:
    return gradebook.load_question_grades(store, progress_id)


@router.post("/album-progress/{progress_id}/grades", response_model=GradeAnswerResponse)
def grade_answer(
    progress_id: str, payload: GradeAnswerRequest, store: DocumentStore = Depends(get_document_store)
):
    delta = gradebook.grade_answer(
        store,
        progress_id,
        payload.block_id,
        payload.awarded_points,
        feedback=payload.feedback,
        grader_id=payload.grader_id,
    )
    return GradeAnswerResponse(delta=delta)


# Gradebook


@router.get("/classes/{class_id}/gradebook", response_model=None)
def class_gradebook(class_id: str, store: DocumentStore = Depends(get_document_store)) -> gradebook.Gradebook:
    data, _assignments = gradebook.load_class_gradebook(store, class_id)
    return data


@router.get("/classes/{class_id}/gradebook.csv")
def class_gradebook_csv(class_id: str, store: DocumentStore = Depends(get_document_store)):
    data, assignments = gradebook.load_class_gradebook(store, class_id)
    csv_text = gradebook.export_gradebook_to_csv(data.entries, assignments)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="gradebook-{class_id}.csv"'},
    )
