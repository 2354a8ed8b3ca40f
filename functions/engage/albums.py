"""
Workbooks ("albums"): designer templates, class assignments and student
progress.

A template is a list of pages made of blocks; question blocks carry points.
When a trainer assigns a template the title and point total are copied onto
the assignment so grades survive later template edits. Points a student
earns on a workbook move through the class ledger as they change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from engage import analytics
from engage.errors import InvalidInputError, NotFoundError
from engage.scoring import apply_points
from engage.store import ArrayUnion, DocumentStore, Transaction
from shared.constants import (
    ALBUM_PROGRESS_COLLECTION,
    ALBUM_TEMPLATES_COLLECTION,
    CLASS_ALBUMS_COLLECTION,
)
from shared.json_utils import from_document, to_document
from shared.types import (
    AlbumAnswer,
    AlbumBlock,
    AlbumPage,
    AlbumProgress,
    AlbumTemplate,
    AssignmentSettings,
    AssignmentStatus,
    BlockType,
    ClassAlbum,
    ProgressStatus,
    QuestionType,
)
from shared.utils import get_unique_id, now_ms, round_half_up

logger = logging.getLogger(__name__)

TEMPLATE_EDITABLE_FIELDS = {"title", "description", "cover_image_url", "is_published", "pages"}


@dataclass
class BlockGrade:
    is_correct: Optional[bool]
    awarded_points: Optional[int]
    needs_grading: bool


def template_path(template_id: str) -> str:
    return f"{ALBUM_TEMPLATES_COLLECTION}/{template_id}"


def class_album_path(assignment_id: str) -> str:
    return f"{CLASS_ALBUMS_COLLECTION}/{assignment_id}"


def progress_path(progress_id: str) -> str:
    return f"{ALBUM_PROGRESS_COLLECTION}/{progress_id}"


def workbook_reason(title: str) -> str:
    return f"Workbook: {title}"


def total_points(pages: List[AlbumPage]) -> int:
    return sum(block.points or 0 for page in pages for block in page.blocks)


def _as_pages(pages: List[Union[AlbumPage, dict]]) -> List[AlbumPage]:
    return [page if isinstance(page, AlbumPage) else from_document(AlbumPage, page) for page in pages]


def iter_question_blocks(template: AlbumTemplate):
    for page in template.pages:
        for block in page.blocks:
            if block.type == BlockType.QUESTION:
                yield block


def find_block(template: AlbumTemplate, block_id: str) -> Optional[AlbumBlock]:
    for page in template.pages:
        for block in page.blocks:
            if block.id == block_id:
                return block
    return None


# Templates


def create_album_template(
    store: DocumentStore,
    designer_id: str,
    title: str,
    description: str = "",
    pages: Optional[List[AlbumPage]] = None,
) -> AlbumTemplate:
    if not title.strip():
        raise InvalidInputError("Workbook title is required")
    now = now_ms()
    pages = pages or []
    template = AlbumTemplate(
        id=get_unique_id(),
        title=title.strip(),
        description=description,
        designer_id=designer_id,
        created_at=now,
        updated_at=now,
        pages=pages,
        total_points_available=total_points(pages),
    )
    store.set(template_path(template.id), to_document(template))
    logger.info("Workbook template %s created by %s", template.id, designer_id)
    return template


def get_album_template(store: DocumentStore, template_id: str) -> Optional[AlbumTemplate]:
    data = store.get(template_path(template_id))
    return from_document(AlbumTemplate, data, template_id) if data else None


def get_published_albums(store: DocumentStore) -> List[AlbumTemplate]:
    docs = store.query(ALBUM_TEMPLATES_COLLECTION, where=[("is_published", "==", True)])
    return [from_document(AlbumTemplate, doc.data, doc.id) for doc in docs]


def get_designer_albums(store: DocumentStore, designer_id: str) -> List[AlbumTemplate]:
    docs = store.query(ALBUM_TEMPLATES_COLLECTION, where=[("designer_id", "==", designer_id)])
    return [from_document(AlbumTemplate, doc.data, doc.id) for doc in docs]


def update_album_template(store: DocumentStore, template_id: str, changes: dict) -> None:
    """Applies designer edits; new pages also refresh the point total."""
    changes = {key: value for key, value in changes.items() if key in TEMPLATE_EDITABLE_FIELDS}
    if "pages" in changes:
        pages = _as_pages(changes["pages"])
        changes["pages"] = [to_document(page) for page in pages]
        changes["total_points_available"] = total_points(pages)
    changes["updated_at"] = now_ms()
    store.update(template_path(template_id), changes)


# Assignments


def assign_album_to_class(
    store: DocumentStore,
    template_id: str,
    class_id: str,
    trainer_id: str,
    due_date: Optional[int] = None,
    settings: Optional[AssignmentSettings] = None,
) -> ClassAlbum:
    template = get_album_template(store, template_id)
    if template is None:
        raise NotFoundError("Template not found")
    assignment = ClassAlbum(
        id=get_unique_id(),
        template_id=template_id,
        class_id=class_id,
        assigned_by_user_id=trainer_id,
        title=template.title,
        total_points_available=template.total_points_available,
        assigned_at=now_ms(),
        due_date=due_date,
        settings=settings or AssignmentSettings(),
    )
    store.set(class_album_path(assignment.id), to_document(assignment))
    logger.info("Workbook %s assigned to class %s", template_id, class_id)
    return assignment


def get_class_album(store: DocumentStore, assignment_id: str) -> Optional[ClassAlbum]:
    data = store.get(class_album_path(assignment_id))
    return from_document(ClassAlbum, data, assignment_id) if data else None


def get_student_assignments(store: DocumentStore, class_id: str) -> List[ClassAlbum]:
    docs = store.query(
        CLASS_ALBUMS_COLLECTION,
        where=[("class_id", "==", class_id), ("status", "==", AssignmentStatus.ACTIVE.value)],
    )
    return [from_document(ClassAlbum, doc.data, doc.id) for doc in docs]


def get_album_progress_for_class(store: DocumentStore, assignment_id: str) -> List[AlbumProgress]:
    docs = store.query(ALBUM_PROGRESS_COLLECTION, where=[("class_album_id", "==", assignment_id)])
    return [from_document(AlbumProgress, doc.data, doc.id) for doc in docs]


# Progress


def get_or_create_album_progress(
    store: DocumentStore, class_album_id: str, class_id: str, student_id: str
) -> AlbumProgress:
    """One progress record per student and assignment, created on first open."""
    progress_id = f"{class_album_id}_{student_id}"

    def run(txn: Transaction) -> dict:
        existing = txn.get(progress_path(progress_id))
        if existing:
            return existing
        progress = AlbumProgress(
            id=progress_id,
            class_album_id=class_album_id,
            student_id=student_id,
            class_id=class_id,
            last_accessed_at=now_ms(),
        )
        txn.set(progress_path(progress_id), to_document(progress))
        return to_document(progress)

    return from_document(AlbumProgress, store.run_transaction(run), progress_id)


def get_album_progress(store: DocumentStore, progress_id: str) -> Optional[AlbumProgress]:
    data = store.get(progress_path(progress_id))
    return from_document(AlbumProgress, data, progress_id) if data else None


def grade_block_answer(block: AlbumBlock, answer: Any) -> BlockGrade:
    """Auto-grades multiple choice against the stored answer key.

    Other questions, and multiple choice without a key, wait for the trainer.
    """
    if block.question_type == QuestionType.MULTIPLE_CHOICE and block.correct_answer_hash is not None:
        correct = str(answer) == block.correct_answer_hash
        return BlockGrade(
            is_correct=correct,
            awarded_points=(block.points or 0) if correct else 0,
            needs_grading=False,
        )
    return BlockGrade(is_correct=None, awarded_points=None, needs_grading=True)


def earned_points(progress: AlbumProgress) -> int:
    return sum(answer.awarded_points or 0 for answer in progress.answers.values())


def load_for_update(txn: Transaction, progress_id: str) -> tuple:
    """Reads a progress record with its assignment inside a transaction."""
    data = txn.get(progress_path(progress_id))
    if data is None:
        raise NotFoundError(f"Progress not found: {progress_id}")
    progress = from_document(AlbumProgress, data, progress_id)
    assignment_data = txn.get(class_album_path(progress.class_album_id))
    if assignment_data is None:
        raise NotFoundError(f"Assignment not found: {progress.class_album_id}")
    assignment = from_document(ClassAlbum, assignment_data, progress.class_album_id)
    return progress, assignment


def save_points(
    txn: Transaction,
    progress: AlbumProgress,
    previous_total: int,
    reason: str,
    admin_id: Optional[str] = None,
) -> int:
    """Stores the recomputed total and moves the difference through the ledger."""
    total = earned_points(progress)
    delta = total - previous_total
    txn.update(
        progress_path(progress.id),
        {
            "answers": {block_id: to_document(answer) for block_id, answer in progress.answers.items()},
            "current_points_earned": total,
            "last_accessed_at": now_ms(),
            "status": progress.status.value,
        },
    )
    if delta:
        apply_points(txn, progress.class_id, progress.student_id, delta, reason, admin_id, create_member=True)
    return delta


def submit_album_answer(
    store: DocumentStore, progress_id: str, block_id: str, answer: Any
) -> AlbumAnswer:
    """Saves a student's answer, grades it when possible and settles points."""

    def run(txn: Transaction) -> tuple:
        progress, assignment = load_for_update(txn, progress_id)
        template_data = txn.get(template_path(assignment.template_id))
        if template_data is None:
            raise NotFoundError("Template not found")
        template = from_document(AlbumTemplate, template_data, assignment.template_id)
        block = find_block(template, block_id)
        if block is None or block.type != BlockType.QUESTION:
            raise InvalidInputError(f"Block {block_id} is not a question")

        grade = grade_block_answer(block, answer)
        recorded = AlbumAnswer(
            answer=answer,
            submitted_at=now_ms(),
            awarded_points=grade.awarded_points,
            is_correct=grade.is_correct,
            needs_grading=grade.needs_grading,
        )
        previous_total = earned_points(progress)
        progress.answers[block_id] = recorded
        if progress.status == ProgressStatus.NOT_STARTED:
            progress.status = ProgressStatus.IN_PROGRESS
        delta = save_points(txn, progress, previous_total, workbook_reason(assignment.title))
        return recorded, delta, progress

    recorded, delta, progress = store.run_transaction(run)
    if delta:
        analytics.log_point_transaction(
            store, progress.student_id, delta, "workbook", progress.class_id
        )
    return recorded


def complete_album_page(store: DocumentStore, progress_id: str, page_id: str) -> AlbumProgress:
    """Marks a page done and recomputes how much of the workbook is answered."""

    def run(txn: Transaction) -> AlbumProgress:
        progress, assignment = load_for_update(txn, progress_id)
        template_data = txn.get(template_path(assignment.template_id))
        if template_data is None:
            raise NotFoundError("Template not found")
        template = from_document(AlbumTemplate, template_data, assignment.template_id)

        questions = list(iter_question_blocks(template))
        answered = sum(1 for block in questions if block.id in progress.answers)
        percent = round_half_up(answered / len(questions) * 100) if questions else 100
        status = ProgressStatus.COMPLETED if percent == 100 else ProgressStatus.IN_PROGRESS

        txn.update(
            progress_path(progress_id),
            {
                "completed_page_ids": ArrayUnion(page_id),
                "percent_complete": percent,
                "status": status.value,
                "last_accessed_at": now_ms(),
            },
        )
        if page_id not in progress.completed_page_ids:
            progress.completed_page_ids.append(page_id)
        progress.percent_complete = percent
        progress.status = status
        return progress

    return store.run_transaction(run)
