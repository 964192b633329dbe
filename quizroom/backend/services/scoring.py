"""
Quizroom - Course Quiz Submission Service
Quiz score calculation
"""

from collections import defaultdict
from typing import Dict, Iterable, Sequence

from ..database.models import Answer, Question, QuestionType


def question_credit(question: Question, correct_selected: int) -> float:
    """Points earned on one question for a number of correct choices picked.

    Multi-select questions split their points evenly across the correct
    choices; single-select questions give full points for a correct pick.
    """
    if correct_selected <= 0:
        return 0.0

    if question.question_type == QuestionType.MULTI_SELECT:
        correct_total = question.correct_answer_count
        if correct_total == 0:
            return 0.0
        return question.points * min(correct_selected, correct_total) / correct_total

    return float(question.points)


def calculate_score(questions: Sequence[Question], selected: Iterable[Answer]) -> float:
    """Percentage score (0-100) for the selected answers of a quiz.

    Incorrect selections earn nothing and there is no negative marking.
    A quiz whose questions are worth zero points in total scores 0.
    """
    total_points = sum(question.points for question in questions)
    if total_points <= 0:
        return 0.0

    questions_by_id: Dict = {question.id: question for question in questions}
    correct_picks: Dict = defaultdict(int)
    for answer in selected:
        if answer.is_correct and answer.question_id in questions_by_id:
            correct_picks[answer.question_id] += 1

    student_points = sum(
        question_credit(questions_by_id[question_id], count)
        for question_id, count in correct_picks.items()
    )

    return (student_points / total_points) * 100


__all__ = ["calculate_score", "question_credit"]
