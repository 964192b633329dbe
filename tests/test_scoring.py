import unittest
import uuid

from quizroom.backend.database.models import Answer, Question, QuestionType
from quizroom.backend.services.scoring import calculate_score, question_credit


def build_question(points, question_type, correct, incorrect=1):
    question = Question(id=uuid.uuid4(), points=points, question_type=question_type)
    for i in range(correct):
        question.answers.append(
            Answer(id=uuid.uuid4(), question_id=question.id, answer_text=f"right {i}", is_correct=True)
        )
    for i in range(incorrect):
        question.answers.append(
            Answer(id=uuid.uuid4(), question_id=question.id, answer_text=f"wrong {i}", is_correct=False)
        )
    return question


def correct_answers(question):
    return [answer for answer in question.answers if answer.is_correct]


def wrong_answers(question):
    return [answer for answer in question.answers if not answer.is_correct]


class CalculateScoreTests(unittest.TestCase):
    def setUp(self):
        self.single = build_question(10, QuestionType.SINGLE_SELECT, correct=1, incorrect=2)
        self.multi = build_question(10, QuestionType.MULTI_SELECT, correct=2, incorrect=1)
        self.questions = [self.single, self.multi]

    def test_single_and_half_of_multi_select(self):
        selected = correct_answers(self.single) + correct_answers(self.multi)[:1]
        self.assertEqual(calculate_score(self.questions, selected), 75.0)

    def test_all_correct_scores_full_marks(self):
        selected = correct_answers(self.single) + correct_answers(self.multi)
        self.assertEqual(calculate_score(self.questions, selected), 100.0)

    def test_incorrect_answers_earn_nothing(self):
        selected = wrong_answers(self.single) + wrong_answers(self.multi)
        self.assertEqual(calculate_score(self.questions, selected), 0.0)

    def test_incorrect_picks_do_not_subtract(self):
        selected = correct_answers(self.single) + wrong_answers(self.multi)
        self.assertEqual(calculate_score(self.questions, selected), 50.0)

    def test_zero_point_quiz_scores_zero(self):
        questions = [
            build_question(0, QuestionType.SINGLE_SELECT, correct=1),
            build_question(0, QuestionType.MULTI_SELECT, correct=2),
        ]
        selected = correct_answers(questions[0]) + correct_answers(questions[1])
        self.assertEqual(calculate_score(questions, selected), 0.0)

    def test_quiz_without_questions_scores_zero(self):
        self.assertEqual(calculate_score([], []), 0.0)

    def test_answers_outside_the_question_set_are_ignored(self):
        stray = build_question(10, QuestionType.SINGLE_SELECT, correct=1)
        selected = correct_answers(self.single) + correct_answers(stray)
        self.assertEqual(calculate_score(self.questions, selected), 50.0)


class QuestionCreditTests(unittest.TestCase):
    def test_multi_select_credit_is_proportional(self):
        question = build_question(9, QuestionType.MULTI_SELECT, correct=3)
        self.assertAlmostEqual(question_credit(question, 1), 3.0)
        self.assertAlmostEqual(question_credit(question, 2), 6.0)
        self.assertAlmostEqual(question_credit(question, 3), 9.0)

    def test_single_select_credit_is_capped_at_question_points(self):
        question = build_question(4, QuestionType.SINGLE_SELECT, correct=2)
        self.assertEqual(question_credit(question, 2), 4.0)

    def test_no_correct_picks_earn_nothing(self):
        question = build_question(4, QuestionType.MULTI_SELECT, correct=2)
        self.assertEqual(question_credit(question, 0), 0.0)


if __name__ == "__main__":
    unittest.main()
