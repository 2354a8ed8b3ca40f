"""
Trainer gradebook over workbook assignments.

`calculate_gradebook_data` is pure: callers load students, assignments and
progress, and the grid plus summary are derived from them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from engage import analytics
from engage.albums import (
    earned_points,
    get_album_progress,
    get_album_template,
    get_class_album,
    iter_question_blocks,
    load_for_update,
    save_points,
)
from engage.classes import get_class_members
from engage.errors import InvalidInputError, NotFoundError
from engage.store import DocumentStore, Transaction
from shared.constants import ALBUM_PROGRESS_COLLECTION, CLASS_ALBUMS_COLLECTION, MAX_POINTS
from shared.json_utils import from_document
from shared.types import (
    AlbumProgress,
    AlbumTemplate,
    ClassAlbum,
    ProgressStatus,
    QuestionType,
)
from shared.utils import round_half_up

logger = logging.getLogger(__name__)

GRADING_REASON = "Workbook grading"


@dataclass
class GradebookStudent:
    id: str
    name: str
    email: str = ""


@dataclass
class AssignmentCell:
    assignment_id: str
    assignment_title: str
    points_earned: int
    points_possible: int
    percent_complete: int
    status: ProgressStatus
    needs_grading: bool
    last_accessed_at: Optional[int] = None


@dataclass
class GradebookEntry:
    student_id: str
    student_name: str
    student_email: str
    assignments: Dict[str, AssignmentCell] = field(default_factory=dict)
    total_points_earned: int = 0
    total_points_possible: int = 0
    overall_grade: int = 0


@dataclass
class GradeSummary:
    total_students: int = 0
    total_assignments: int = 0
    average_completion: int = 0
    average_grade: int = 0
    completed_count: int = 0
    in_progress_count: int = 0
    not_started_count: int = 0
    needs_grading_count: int = 0


@dataclass
class Gradebook:
    entries: List[GradebookEntry]
    summary: GradeSummary


@dataclass
class QuestionGrade:
    block_id: str
    question: str
    question_type: str
    points_possible: int
    answer: Any
    awarded_points: int
    is_correct: Optional[bool]
    feedback: Optional[str]
    submitted_at: int
    needs_grading: bool


def get_class_assignments(store: DocumentStore, class_id: str) -> List[ClassAlbum]:
    docs = store.query(CLASS_ALBUMS_COLLECTION, where=[("class_id", "==", class_id)])
    return [from_document(ClassAlbum, doc.data, doc.id) for doc in docs]


def get_all_progress_for_class(store: DocumentStore, class_id: str) -> List[AlbumProgress]:
    docs = store.query(ALBUM_PROGRESS_COLLECTION, where=[("class_id", "==", class_id)])
    return [from_document(AlbumProgress, doc.data, doc.id) for doc in docs]


def _derive_status(percent: int) -> ProgressStatus:
    if percent >= 100:
        return ProgressStatus.COMPLETED
    if percent > 0:
        return ProgressStatus.IN_PROGRESS
    return ProgressStatus.NOT_STARTED


def _needs_grading(progress: AlbumProgress) -> bool:
    return any(
        answer.needs_grading or (answer.awarded_points is None and bool(answer.answer))
        for answer in progress.answers.values()
    )


def calculate_gradebook_data(
    students: List[GradebookStudent],
    assignments: List[ClassAlbum],
    progress: List[AlbumProgress],
) -> Gradebook:
    """Builds one row per student with a cell per assignment."""
    by_key = {f"{item.student_id}_{item.class_album_id}": item for item in progress}
    total_possible = sum(assignment.total_points_available for assignment in assignments)

    entries = []
    for student in students:
        entry = GradebookEntry(
            student_id=student.id,
            student_name=student.name,
            student_email=student.email,
            total_points_possible=total_possible,
        )
        for assignment in assignments:
            record = by_key.get(f"{student.id}_{assignment.id}")
            if record is None:
                cell = AssignmentCell(
                    assignment_id=assignment.id,
                    assignment_title=assignment.title,
                    points_earned=0,
                    points_possible=assignment.total_points_available,
                    percent_complete=0,
                    status=ProgressStatus.NOT_STARTED,
                    needs_grading=False,
                )
            else:
                cell = AssignmentCell(
                    assignment_id=assignment.id,
                    assignment_title=assignment.title,
                    points_earned=record.current_points_earned,
                    points_possible=assignment.total_points_available,
                    percent_complete=record.percent_complete,
                    status=record.status or _derive_status(record.percent_complete),
                    needs_grading=_needs_grading(record),
                    last_accessed_at=record.last_accessed_at,
                )
            entry.assignments[assignment.id] = cell
            entry.total_points_earned += cell.points_earned
        if total_possible > 0:
            entry.overall_grade = round_half_up(entry.total_points_earned / total_possible * 100)
        entries.append(entry)

    return Gradebook(entries=entries, summary=summarize(entries, len(assignments)))


def summarize(entries: List[GradebookEntry], assignment_count: int) -> GradeSummary:
    summary = GradeSummary(total_students=len(entries), total_assignments=assignment_count)
    cells = [cell for entry in entries for cell in entry.assignments.values()]
    for cell in cells:
        if cell.status == ProgressStatus.COMPLETED:
            summary.completed_count += 1
        elif cell.status == ProgressStatus.IN_PROGRESS:
            summary.in_progress_count += 1
        else:
            summary.not_started_count += 1
        if cell.needs_grading:
            summary.needs_grading_count += 1
    if cells:
        summary.average_completion = round_half_up(
            sum(cell.percent_complete for cell in cells) / len(cells)
        )
    if entries:
        summary.average_grade = round_half_up(
            sum(entry.overall_grade for entry in entries) / len(entries)
        )
    return summary


def grade_answer(
    store: DocumentStore,
    progress_id: str,
    block_id: str,
    awarded_points: int,
    feedback: Optional[str] = None,
    grader_id: Optional[str] = None,
) -> int:
    """Records a trainer's grade and returns the change in earned points."""
    if isinstance(awarded_points, bool) or not isinstance(awarded_points, int):
        raise InvalidInputError("Awarded points must be a whole number")
    if not 0 <= awarded_points <= MAX_POINTS:
        raise InvalidInputError(f"Awarded points must be between 0 and {MAX_POINTS}")

    def run(txn: Transaction) -> tuple:
        progress, _assignment = load_for_update(txn, progress_id)
        answer = progress.answers.get(block_id)
        if answer is None:
            raise NotFoundError(f"No answer for block {block_id}")
        previous_total = earned_points(progress)
        answer.awarded_points = awarded_points
        answer.feedback = feedback or ""
        answer.needs_grading = False
        delta = save_points(txn, progress, previous_total, GRADING_REASON, grader_id)
        return delta, progress

    delta, progress = store.run_transaction(run)
    logger.info("Graded %s on %s: %d points", block_id, progress_id, awarded_points)
    if delta:
        analytics.log_point_transaction(
            store, progress.student_id, delta, "workbook_grading", progress.class_id
        )
    return delta


def get_student_question_grades(
    progress: AlbumProgress, template: AlbumTemplate
) -> List[QuestionGrade]:
    grades = []
    for block in iter_question_blocks(template):
        answer = progress.answers.get(block.id)
        grades.append(
            QuestionGrade(
                block_id=block.id,
                question=block.content,
                question_type=block.question_type or QuestionType.SHORT_ANSWER.value,
                points_possible=block.points or 0,
                answer=answer.answer if answer else "",
                awarded_points=(answer.awarded_points or 0) if answer else 0,
                is_correct=answer.is_correct if answer else None,
                feedback=answer.feedback if answer else None,
                submitted_at=answer.submitted_at if answer else 0,
                needs_grading=answer.needs_grading if answer else False,
            )
        )
    return grades


def _quote(value: Any) -> str:
    return '"' + str(value).replace('"', '""') + '"'


def export_gradebook_to_csv(entries: List[GradebookEntry], assignments: List[ClassAlbum]) -> str:
    """Renders the grid as CSV text with every cell quoted."""
    headers = ["Student Name", "Email"]
    for assignment in assignments:
        headers.append(f"{assignment.title} (Points)")
        headers.append(f"{assignment.title} (Status)")
    headers.extend(["Total Points", "Overall Grade %"])

    rows = [headers]
    for entry in entries:
        row = [entry.student_name, entry.student_email]
        for assignment in assignments:
            cell = entry.assignments.get(assignment.id)
            earned = cell.points_earned if cell else 0
            possible = cell.points_possible if cell else assignment.total_points_available
            status = cell.status.value if cell else ProgressStatus.NOT_STARTED.value
            row.append(f"{earned}/{possible}")
            row.append(status)
        row.append(f"{entry.total_points_earned}/{entry.total_points_possible}")
        row.append(f"{entry.overall_grade}%")
        rows.append(row)

    return "\n".join(",".join(_quote(value) for value in row) for row in rows)


def load_class_gradebook(store: DocumentStore, class_id: str) -> Tuple[Gradebook, List[ClassAlbum]]:
    """Loads everything the gradebook needs for one class."""
    students = [
        GradebookStudent(id=profile.uid, name=profile.display_name, email=profile.email)
        for profile in get_class_members(store, class_id)
    ]
    assignments = get_class_assignments(store, class_id)
    progress = get_all_progress_for_class(store, class_id)
    return calculate_gradebook_data(students, assignments, progress), assignments


def load_question_grades(store: DocumentStore, progress_id: str) -> List[QuestionGrade]:
    progress = get_album_progress(store, progress_id)
    if progress is None:
        raise NotFoundError(f"Progress not found: {progress_id}")
    assignment = get_class_album(store, progress.class_album_id)
    template = get_album_template(store, assignment.template_id) if assignment else None
    if template is None:
        raise NotFoundError("Template not found")
    return get_student_question_grades(progress, template)
