"""Auto-grading for submitted tests.

Everything here is pure: callers hand in question specs and raw answers and get
outcomes back. Nothing touches the database or the request session.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

log = logging.getLogger(__name__)

SINGLE_CHOICE = "SINGLE_CHOICE"
MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
NUMERICAL = "NUMERICAL"
MATRIX_MATCH = "MATRIX_MATCH"
QUESTION_TYPES = (SINGLE_CHOICE, MULTIPLE_CHOICE, NUMERICAL, MATRIX_MATCH)

MATRIX_ROWS = 4
MATRIX_COLUMNS = ("A", "B", "C", "D")
MATRIX_SUMMARY = "Matrix matching"

PASSED = "PASSED"
FAILED = "FAILED"


# --------------------------------------------------------------------
# Errors
# --------------------------------------------------------------------
class GradingError(Exception):
    pass

class MalformedAnswer(GradingError):
    """Raw answer does not fit the question type."""

class InconsistentQuestionSpec(GradingError):
    """Question has no usable grading key."""

class DuplicateSubmission(GradingError):
    """A result already exists for this (test, student) pair."""


# --------------------------------------------------------------------
# Question specs
# --------------------------------------------------------------------
@dataclass(frozen=True)
class Option:
    id: str
    text: str = ""
    is_correct: bool = False

@dataclass(frozen=True)
class Marks:
    correct: float = 1
    incorrect: float = 0

@dataclass(frozen=True)
class QuestionSpec:
    id: str
    type: str
    text: str = ""
    options: Tuple[Option, ...] = ()
    correct_answer: Optional[str] = None
    # MATRIX_MATCH key: expected column letter for each row, in row order
    row_columns: Tuple[str, ...] = ()
    marks: Marks = field(default_factory=Marks)

    def correct_option_ids(self):
        return frozenset(o.id for o in self.options if o.is_correct)

    def validate(self):
        """Raise InconsistentQuestionSpec if the grading key is unusable."""
        if self.type not in QUESTION_TYPES:
            raise InconsistentQuestionSpec(f"Unsupported question type '{self.type}'.")
        if self.marks.incorrect > 0:
            raise InconsistentQuestionSpec("Incorrect marks must be zero or negative.")
        correct = self.correct_option_ids()
        if self.type == SINGLE_CHOICE and len(correct) != 1:
            raise InconsistentQuestionSpec("Single choice questions need exactly one correct option.")
        if self.type == MULTIPLE_CHOICE and not correct:
            raise InconsistentQuestionSpec("Multiple choice questions need at least one correct option.")
        if self.type == NUMERICAL and self.correct_answer is None:
            raise InconsistentQuestionSpec("Numerical questions need a correct answer.")
        if self.type == MATRIX_MATCH:
            if len(self.row_columns) != MATRIX_ROWS or any(c not in MATRIX_COLUMNS for c in self.row_columns):
                raise InconsistentQuestionSpec("Matrix match questions need a column A-D for each of the 4 rows.")
        return self


# --------------------------------------------------------------------
# Answers
# --------------------------------------------------------------------
@dataclass(frozen=True)
class Choice:
    option_id: str

    def to_json(self):
        return self.option_id

@dataclass(frozen=True)
class ChoiceSet:
    option_ids: frozenset

    def to_json(self):
        return sorted(self.option_ids)

@dataclass(frozen=True)
class Text:
    value: str

    def to_json(self):
        return self.value

@dataclass(frozen=True)
class MatchVector:
    cells: Tuple[str, ...]

    def to_json(self):
        return list(self.cells)

Answer = Union[Choice, ChoiceSet, Text, MatchVector]


def _is_blank(raw):
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw == ""
    if isinstance(raw, (list, tuple, set, frozenset)):
        return len(raw) == 0
    return False


def coerce_answer(question_type, raw) -> Optional[Answer]:
    """Strict normalizer. Returns None for unattempted, raises MalformedAnswer."""
    if _is_blank(raw):
        return None
    if question_type == SINGLE_CHOICE:
        if isinstance(raw, bool) or not isinstance(raw, (str, int)):
            raise MalformedAnswer(f"expected a single option id, got {type(raw).__name__}")
        return Choice(str(raw))
    if question_type == MULTIPLE_CHOICE:
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, (list, tuple, set, frozenset)):
            raise MalformedAnswer(f"expected a set of option ids, got {type(raw).__name__}")
        ids = set()
        for item in raw:
            if isinstance(item, bool) or not isinstance(item, (str, int)):
                raise MalformedAnswer("option ids must be strings")
            if item != "":
                ids.add(str(item))
        return ChoiceSet(frozenset(ids)) if ids else None
    if question_type == NUMERICAL:
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
            raise MalformedAnswer(f"expected text, got {type(raw).__name__}")
        return Text(raw if isinstance(raw, str) else str(raw))
    if question_type == MATRIX_MATCH:
        if not isinstance(raw, (list, tuple)):
            raise MalformedAnswer(f"expected a list of {MATRIX_ROWS} selections, got {type(raw).__name__}")
        cells = []
        for item in list(raw)[:MATRIX_ROWS]:
            cell = "" if item is None else item
            if cell != "" and cell not in MATRIX_COLUMNS:
                raise MalformedAnswer(f"invalid matrix selection {cell!r}")
            cells.append(cell)
        cells += [""] * (MATRIX_ROWS - len(cells))
        if not any(cells):
            return None
        return MatchVector(tuple(cells))
    raise MalformedAnswer(f"unknown question type {question_type!r}")


def normalize_answer(question_type, raw) -> Optional[Answer]:
    """Lenient normalizer: a malformed answer counts as unattempted."""
    try:
        return coerce_answer(question_type, raw)
    except MalformedAnswer as e:
        log.warning("Treating malformed %s answer as unattempted: %s", question_type, e)
        return None


# --------------------------------------------------------------------
# Numeric comparison
# --------------------------------------------------------------------
@dataclass(frozen=True)
class NumericComparison:
    """How NUMERICAL answers are matched. Exact string match unless a tolerance is set."""
    tolerance: Optional[float] = None

    @classmethod
    def parse(cls, text):
        # "exact" | "tolerance:<eps>"
        text = (text or "exact").strip().lower()
        if text == "exact":
            return cls()
        if text.startswith("tolerance"):
            _, _, eps = text.partition(":")
            try:
                value = float(eps)
            except ValueError:
                raise ValueError(f"Bad numeric comparison setting {text!r}; use 'tolerance:<eps>'.")
            if value < 0:
                raise ValueError("Numeric tolerance must not be negative.")
            return cls(tolerance=value)
        raise ValueError(f"Unknown numeric comparison {text!r}; use 'exact' or 'tolerance:<eps>'.")

    def matches(self, submitted, expected):
        if self.tolerance is None:
            return submitted == expected
        try:
            return abs(float(submitted) - float(expected)) <= self.tolerance
        except (TypeError, ValueError):
            return False

EXACT = NumericComparison()


# --------------------------------------------------------------------
# Grading
# --------------------------------------------------------------------
@dataclass(frozen=True)
class GradeOutcome:
    is_correct: bool
    marks_awarded: float
    attempted: bool = True

UNATTEMPTED = GradeOutcome(is_correct=False, marks_awarded=0, attempted=False)


def _is_correct(question, answer, numeric):
    qtype = question.type
    if qtype == SINGLE_CHOICE:
        correct = question.correct_option_ids()
        return isinstance(answer, Choice) and len(correct) == 1 and answer.option_id in correct
    if qtype == MULTIPLE_CHOICE:
        correct = question.correct_option_ids()
        return isinstance(answer, ChoiceSet) and bool(correct) and answer.option_ids == correct
    if qtype == NUMERICAL:
        if not isinstance(answer, Text) or question.correct_answer is None:
            return False
        return numeric.matches(answer.value, question.correct_answer)
    if qtype == MATRIX_MATCH:
        key = tuple(question.row_columns)
        if len(key) != MATRIX_ROWS or any(c not in MATRIX_COLUMNS for c in key):
            return False
        return isinstance(answer, MatchVector) and answer.cells == key
    return False


def grade_question(question, answer, numeric=EXACT) -> GradeOutcome:
    if answer is None:
        return UNATTEMPTED
    if _is_correct(question, answer, numeric):
        return GradeOutcome(True, question.marks.correct)
    return GradeOutcome(False, question.marks.incorrect)


@dataclass
class TestScore:
    score: float
    total_marks: float
    raw_score: float
    status: str
    outcomes: Dict[str, GradeOutcome] = field(default_factory=dict)


def _safe_grade(question, answer, numeric):
    try:
        return grade_question(question, answer, numeric)
    except Exception:
        log.exception("Grading failed for question %s; scoring it as unattempted", question.id)
        return UNATTEMPTED


def score_test(questions, answers_by_id, passing_marks, numeric=EXACT) -> TestScore:
    answers_by_id = answers_by_id if isinstance(answers_by_id, dict) else {}
    total = 0
    raw_score = 0
    outcomes = {}
    for q in questions:
        total += q.marks.correct
        outcome = _safe_grade(q, normalize_answer(q.type, answers_by_id.get(q.id)), numeric)
        outcomes[q.id] = outcome
        raw_score += outcome.marks_awarded
    # floor once over the whole test, not per question
    score = max(0, raw_score)
    status = PASSED if score >= passing_marks else FAILED
    return TestScore(score=score, total_marks=total, raw_score=raw_score, status=status, outcomes=outcomes)


def grade_submission(questions, passing_marks, answers_by_id, numeric=EXACT) -> TestScore:
    return score_test(list(questions), answers_by_id, passing_marks, numeric)


# --------------------------------------------------------------------
# Results / review
# --------------------------------------------------------------------
def materialize_result(test_score, answers):
    """Fields persisted on a TestResult row."""
    return {
        "score": test_score.score,
        "total_marks": test_score.total_marks,
        "status": test_score.status,
        "answers": dict(answers) if isinstance(answers, dict) else {},
    }


def correct_answer_summary(question):
    if question.type == SINGLE_CHOICE:
        opt = next((o for o in question.options if o.is_correct), None)
        return opt.text if opt else ""
    if question.type == MULTIPLE_CHOICE:
        return ", ".join(o.text for o in question.options if o.is_correct)
    if question.type == NUMERICAL:
        return question.correct_answer or ""
    return MATRIX_SUMMARY


@dataclass(frozen=True)
class ReviewItem:
    question_id: str
    type: str
    text: str
    student_answer: object
    correct_answer: str
    is_correct: bool
    marks: Dict[str, float]
    options: Tuple[Option, ...] = ()

    def to_dict(self):
        return {
            "id": self.question_id,
            "type": self.type,
            "text": self.text,
            "student_answer": self.student_answer,
            "correct_answer": self.correct_answer,
            "is_correct": self.is_correct,
            "marks": dict(self.marks),
            "options": [{"id": o.id, "text": o.text, "is_correct": o.is_correct} for o in self.options],
        }


def explain_result(questions, stored_answers, numeric=EXACT) -> List[ReviewItem]:
    stored_answers = stored_answers if isinstance(stored_answers, dict) else {}
    items = []
    for q in questions:
        answer = normalize_answer(q.type, stored_answers.get(q.id))
        outcome = _safe_grade(q, answer, numeric)
        items.append(ReviewItem(
            question_id=q.id,
            type=q.type,
            text=q.text,
            student_answer=answer.to_json() if answer is not None else None,
            correct_answer=correct_answer_summary(q),
            is_correct=outcome.is_correct,
            marks={
                "correct": q.marks.correct,
                "incorrect": q.marks.incorrect,
                "obtained": outcome.marks_awarded,
            },
            options=q.options,
        ))
    return items
