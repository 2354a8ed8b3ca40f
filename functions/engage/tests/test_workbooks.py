import unittest

from engage import albums, classes, gradebook, scoring, users
from engage.errors import InvalidInputError, NotFoundError
from engage.store import InMemoryDocumentStore
from shared.types import (
    AlbumBlock,
    AlbumPage,
    BlockType,
    ProgressStatus,
    QuestionType,
)


def sample_pages():
    return [
        AlbumPage(
            id="page-1",
            title="Warm-up",
            blocks=[
                AlbumBlock(id="intro", type=BlockType.TEXT, content="Read this first"),
                AlbumBlock(
                    id="mc",
                    type=BlockType.QUESTION,
                    content="Pick the prime",
                    question_type=QuestionType.MULTIPLE_CHOICE.value,
                    options=["4", "7"],
                    correct_answer_hash="1",
                    points=10,
                ),
                AlbumBlock(
                    id="short",
                    type=BlockType.QUESTION,
                    content="Explain why",
                    question_type=QuestionType.SHORT_ANSWER.value,
                    points=5,
                ),
            ],
        )
    ]


class WorkbookTestCase(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        users.create_user_profile(self.store, "s1", "ada@example.com", "Ada")
        users.create_user_profile(self.store, "s2", "bob@example.com", "Bob")
        self.room = classes.create_class(self.store, "trainer", "Number theory")
        classes.join_class(self.store, "s1", self.room.code)
        classes.join_class(self.store, "s2", self.room.code)

        self.template = albums.create_album_template(
            self.store, "designer", "Unit 1", pages=sample_pages()
        )
        self.assignment = albums.assign_album_to_class(
            self.store, self.template.id, self.room.id, "trainer"
        )
        self.progress = albums.get_or_create_album_progress(
            self.store, self.assignment.id, self.room.id, "s1"
        )

    def score(self, uid):
        return scoring.get_class_member(self.store, self.room.id, uid).score


class AlbumTests(WorkbookTestCase):
    def test_template_totals(self):
        self.assertEqual(self.template.total_points_available, 15)
        self.assertEqual(self.assignment.total_points_available, 15)
        self.assertEqual(self.assignment.title, "Unit 1")
        with self.assertRaises(InvalidInputError):
            albums.create_album_template(self.store, "designer", "   ")

    def test_update_template_recomputes_total(self):
        pages = sample_pages()
        pages[0].blocks[1].points = 20
        albums.update_album_template(
            self.store, self.template.id, {"pages": pages, "is_published": True, "designer_id": "x"}
        )
        updated = albums.get_album_template(self.store, self.template.id)
        self.assertEqual(updated.total_points_available, 25)
        self.assertEqual(updated.designer_id, "designer")
        self.assertEqual([t.id for t in albums.get_published_albums(self.store)], [self.template.id])
        self.assertEqual([t.id for t in albums.get_designer_albums(self.store, "designer")], [self.template.id])

    def test_assign_missing_template(self):
        with self.assertRaises(NotFoundError):
            albums.assign_album_to_class(self.store, "missing", self.room.id, "trainer")

    def test_progress_is_created_once(self):
        self.assertEqual(self.progress.id, f"{self.assignment.id}_s1")
        self.assertEqual(self.progress.status, ProgressStatus.NOT_STARTED)
        again = albums.get_or_create_album_progress(self.store, self.assignment.id, self.room.id, "s1")
        self.assertEqual(again.last_accessed_at, self.progress.last_accessed_at)
        self.assertEqual(
            [p.id for p in albums.get_album_progress_for_class(self.store, self.assignment.id)],
            [self.progress.id],
        )

    def test_multiple_choice_is_auto_graded(self):
        answer = albums.submit_album_answer(self.store, self.progress.id, "mc", 1)
        self.assertTrue(answer.is_correct)
        self.assertEqual(answer.awarded_points, 10)
        self.assertFalse(answer.needs_grading)

        progress = albums.get_album_progress(self.store, self.progress.id)
        self.assertEqual(progress.status, ProgressStatus.IN_PROGRESS)
        self.assertEqual(progress.current_points_earned, 10)
        self.assertEqual(self.score("s1"), 10)
        self.assertEqual(users.get_user_profile(self.store, "s1").lifetime_points, 10)
        history = scoring.get_student_history(self.store, self.room.id, "s1")
        self.assertEqual(history[0].reason, "Workbook: Unit 1")

    def test_changing_an_answer_moves_the_difference(self):
        albums.submit_album_answer(self.store, self.progress.id, "mc", "1")
        answer = albums.submit_album_answer(self.store, self.progress.id, "mc", "0")
        self.assertFalse(answer.is_correct)
        self.assertEqual(self.score("s1"), 0)
        self.assertEqual(albums.get_album_progress(self.store, self.progress.id).current_points_earned, 0)

    def test_open_questions_wait_for_grading(self):
        answer = albums.submit_album_answer(self.store, self.progress.id, "short", "Only two factors")
        self.assertTrue(answer.needs_grading)
        self.assertIsNone(answer.awarded_points)
        self.assertEqual(self.score("s1"), 0)

    def test_non_question_blocks_are_rejected(self):
        with self.assertRaises(InvalidInputError):
            albums.submit_album_answer(self.store, self.progress.id, "intro", "x")
        with self.assertRaises(NotFoundError):
            albums.submit_album_answer(self.store, "missing", "mc", "1")

    def test_complete_page(self):
        albums.submit_album_answer(self.store, self.progress.id, "mc", "1")
        progress = albums.complete_album_page(self.store, self.progress.id, "page-1")
        self.assertEqual(progress.percent_complete, 50)
        self.assertEqual(progress.status, ProgressStatus.IN_PROGRESS)

        albums.submit_album_answer(self.store, self.progress.id, "short", "Because")
        progress = albums.complete_album_page(self.store, self.progress.id, "page-1")
        self.assertEqual(progress.percent_complete, 100)
        self.assertEqual(progress.status, ProgressStatus.COMPLETED)
        stored = albums.get_album_progress(self.store, self.progress.id)
        self.assertEqual(stored.completed_page_ids, ["page-1"])


class GradebookTests(WorkbookTestCase):
    def test_grade_answer_settles_points(self):
        albums.submit_album_answer(self.store, self.progress.id, "short", "Because")
        delta = gradebook.grade_answer(self.store, self.progress.id, "short", 4, "Good", "trainer")
        self.assertEqual(delta, 4)
        self.assertEqual(self.score("s1"), 4)

        progress = albums.get_album_progress(self.store, self.progress.id)
        graded = progress.answers["short"]
        self.assertEqual(graded.awarded_points, 4)
        self.assertEqual(graded.feedback, "Good")
        self.assertFalse(graded.needs_grading)
        history = scoring.get_student_history(self.store, self.room.id, "s1")
        self.assertEqual(history[0].reason, gradebook.GRADING_REASON)
        self.assertEqual(history[0].admin_id, "trainer")

        self.assertEqual(gradebook.grade_answer(self.store, self.progress.id, "short", 4), 0)
        self.assertEqual(gradebook.grade_answer(self.store, self.progress.id, "short", 1), -3)
        self.assertEqual(self.score("s1"), 1)

    def test_grade_answer_validation(self):
        with self.assertRaises(InvalidInputError):
            gradebook.grade_answer(self.store, self.progress.id, "short", -1)
        with self.assertRaises(InvalidInputError):
            gradebook.grade_answer(self.store, self.progress.id, "short", 2.5)
        with self.assertRaises(NotFoundError):
            gradebook.grade_answer(self.store, self.progress.id, "short", 3)

    def test_class_gradebook_and_csv(self):
        albums.submit_album_answer(self.store, self.progress.id, "mc", "1")
        albums.submit_album_answer(self.store, self.progress.id, "short", "Because")

        book, assignments = gradebook.load_class_gradebook(self.store, self.room.id)
        ada, bob = book.entries
        cell = ada.assignments[self.assignment.id]
        self.assertEqual(cell.points_earned, 10)
        self.assertTrue(cell.needs_grading)
        self.assertEqual(bob.assignments[self.assignment.id].status, ProgressStatus.NOT_STARTED)
        self.assertEqual(book.summary.needs_grading_count, 1)

        gradebook.grade_answer(self.store, self.progress.id, "short", 4)
        albums.complete_album_page(self.store, self.progress.id, "page-1")
        book, assignments = gradebook.load_class_gradebook(self.store, self.room.id)
        ada, bob = book.entries
        self.assertEqual(ada.total_points_earned, 14)
        self.assertEqual(ada.total_points_possible, 15)
        self.assertEqual(ada.overall_grade, 93)
        self.assertEqual(bob.overall_grade, 0)

        summary = book.summary
        self.assertEqual(summary.total_students, 2)
        self.assertEqual(summary.total_assignments, 1)
        self.assertEqual(summary.average_completion, 50)
        self.assertEqual(summary.average_grade, 47)
        self.assertEqual(summary.completed_count, 1)
        self.assertEqual(summary.not_started_count, 1)
        self.assertEqual(summary.needs_grading_count, 0)

        csv_text = gradebook.export_gradebook_to_csv(book.entries, assignments)
        lines = csv_text.split("\n")
        self.assertEqual(
            lines[0],
            '"Student Name","Email","Unit 1 (Points)","Unit 1 (Status)","Total Points","Overall Grade %"',
        )
        self.assertEqual(lines[1], '"Ada","ada@example.com","14/15","completed","14/15","93%"')
        self.assertEqual(lines[2], '"Bob","bob@example.com","0/15","not_started","0/15","0%"')

    def test_csv_escapes_quotes(self):
        entry = gradebook.GradebookEntry(student_id="s", student_name='Ada "The Count"', student_email="")
        csv_text = gradebook.export_gradebook_to_csv([entry], [])
        self.assertEqual(csv_text.split("\n")[1], '"Ada ""The Count""","","0/0","0%"')

    def test_question_grades(self):
        albums.submit_album_answer(self.store, self.progress.id, "mc", "1")
        grades = gradebook.load_question_grades(self.store, self.progress.id)
        self.assertEqual([grade.block_id for grade in grades], ["mc", "short"])
        self.assertEqual(grades[0].awarded_points, 10)
        self.assertTrue(grades[0].is_correct)
        self.assertEqual(grades[1].answer, "")
        self.assertEqual(grades[1].points_possible, 5)

    def test_empty_class(self):
        book = gradebook.calculate_gradebook_data([], [], [])
        self.assertEqual(book.entries, [])
        self.assertEqual(book.summary.average_grade, 0)


if __name__ == "__main__":
    unittest.main()
