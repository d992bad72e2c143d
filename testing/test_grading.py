"""
Tests for the grading engine.

Covers answer normalization, per-question grading for each question type,
whole-test scoring (floor at zero, pass/fail) and the review payload.
"""

import pytest

import grading
from grading import (
    Choice, ChoiceSet, Text, MatchVector, Marks, Option, QuestionSpec,
    GradeOutcome, NumericComparison, MalformedAnswer, InconsistentQuestionSpec,
    SINGLE_CHOICE, MULTIPLE_CHOICE, NUMERICAL, MATRIX_MATCH, PASSED, FAILED,
)


def single(qid="q1", correct="a", marks=(4, -1)):
    return QuestionSpec(
        id=qid, type=SINGLE_CHOICE, text="Pick one",
        options=(Option("a", "Alpha", correct == "a"), Option("b", "Beta", correct == "b")),
        marks=Marks(*marks),
    )


def multi(qid="q2", correct=("a", "c"), marks=(4, -2)):
    return QuestionSpec(
        id=qid, type=MULTIPLE_CHOICE, text="Pick all",
        options=tuple(Option(i, i.upper(), i in correct) for i in ("a", "b", "c", "d")),
        marks=Marks(*marks),
    )


def numerical(qid="q3", answer="9.8", marks=(2, 0)):
    return QuestionSpec(id=qid, type=NUMERICAL, text="g?", correct_answer=answer, marks=Marks(*marks))


def matrix(qid="q4", columns=("B", "A", "D", "C"), marks=(4, -1)):
    return QuestionSpec(
        id=qid, type=MATRIX_MATCH, text="Match",
        options=tuple(Option(f"r{i}", f"Row {i}") for i in range(4)),
        row_columns=columns, marks=Marks(*marks),
    )


class TestNormalizeAnswer:
    """Raw value -> typed answer."""

    @pytest.mark.parametrize("qtype", grading.QUESTION_TYPES)
    @pytest.mark.parametrize("raw", [None, "", []])
    def test_blank_is_unattempted(self, qtype, raw):
        assert grading.normalize_answer(qtype, raw) is None

    def test_single_choice(self):
        assert grading.normalize_answer(SINGLE_CHOICE, "a") == Choice("a")
        assert grading.normalize_answer(SINGLE_CHOICE, 7) == Choice("7")

    def test_multiple_choice_collapses_duplicates_and_order(self):
        answer = grading.normalize_answer(MULTIPLE_CHOICE, ["c", "a", "c"])
        assert answer == ChoiceSet(frozenset({"a", "c"}))

    def test_numerical_kept_verbatim(self):
        assert grading.normalize_answer(NUMERICAL, " 9.8 ") == Text(" 9.8 ")

    def test_matrix_pads_missing_trailing_cells(self):
        assert grading.normalize_answer(MATRIX_MATCH, ["B", "A"]) == MatchVector(("B", "A", "", ""))

    def test_matrix_all_empty_is_unattempted(self):
        assert grading.normalize_answer(MATRIX_MATCH, ["", "", "", ""]) is None

    def test_malformed_answer_becomes_unattempted(self):
        assert grading.normalize_answer(SINGLE_CHOICE, ["a", "b"]) is None
        assert grading.normalize_answer(MULTIPLE_CHOICE, {"a": 1}) is None
        assert grading.normalize_answer(MATRIX_MATCH, "ABCD") is None
        assert grading.normalize_answer(MATRIX_MATCH, ["A", "Z"]) is None

    def test_strict_coercion_raises(self):
        with pytest.raises(MalformedAnswer):
            grading.coerce_answer(SINGLE_CHOICE, ["a"])
        with pytest.raises(MalformedAnswer):
            grading.coerce_answer(NUMERICAL, True)


class TestGradeQuestion:
    """Type-specific correctness and marks."""

    def test_single_choice_scenario(self):
        q = single()
        assert grading.grade_question(q, Choice("a")) == GradeOutcome(True, 4)
        assert grading.grade_question(q, Choice("b")) == GradeOutcome(False, -1)
        outcome = grading.grade_question(q, None)
        assert outcome.is_correct is False
        assert outcome.marks_awarded == 0

    def test_single_choice_unknown_id_is_incorrect(self):
        assert grading.grade_question(single(), Choice("zzz")).marks_awarded == -1

    def test_single_choice_without_correct_option_never_correct(self):
        q = single(correct=None)
        assert grading.grade_question(q, Choice("a")).is_correct is False

    def test_multiple_choice_scenario(self):
        q = multi()
        assert not grading.grade_question(q, ChoiceSet(frozenset({"a"}))).is_correct
        assert grading.grade_question(q, ChoiceSet(frozenset({"a", "c"}))).is_correct
        assert not grading.grade_question(q, ChoiceSet(frozenset({"a", "c", "d"}))).is_correct

    def test_multiple_choice_with_no_correct_options_never_correct(self):
        q = multi(correct=())
        assert not grading.grade_question(q, ChoiceSet(frozenset({"a"}))).is_correct

    def test_numerical_exact_match_only(self):
        q = numerical()
        assert grading.grade_question(q, Text("9.8")).is_correct
        assert not grading.grade_question(q, Text("9.80")).is_correct
        assert not grading.grade_question(q, Text(" 9.8")).is_correct

    def test_numerical_missing_key_never_correct(self):
        assert not grading.grade_question(numerical(answer=None), Text("9.8")).is_correct

    def test_numerical_tolerance_opt_in(self):
        q = numerical()
        tol = NumericComparison.parse("tolerance:0.01")
        assert grading.grade_question(q, Text("9.80"), tol).is_correct
        assert grading.grade_question(q, Text("9.805"), tol).is_correct
        assert not grading.grade_question(q, Text("9.9"), tol).is_correct
        assert not grading.grade_question(q, Text("nine"), tol).is_correct

    def test_matrix_match_elementwise(self):
        q = matrix()
        assert grading.grade_question(q, MatchVector(("B", "A", "D", "C"))).is_correct
        wrong = grading.grade_question(q, MatchVector(("B", "A", "C", "D")))
        assert wrong == GradeOutcome(False, -1)

    def test_matrix_partial_answer_is_attempted_and_wrong(self):
        outcome = grading.grade_question(matrix(), grading.normalize_answer(MATRIX_MATCH, ["B"]))
        assert outcome == GradeOutcome(False, -1)

    def test_matrix_without_key_never_correct(self):
        q = matrix(columns=())
        assert not grading.grade_question(q, MatchVector(("A", "A", "A", "A"))).is_correct

    @pytest.mark.parametrize("q", [single(), multi(), numerical(), matrix()])
    def test_unattempted_never_penalised(self, q):
        outcome = grading.grade_question(q, None)
        assert outcome.marks_awarded == 0
        assert outcome.is_correct is False


class TestScoreTest:
    """Aggregation across a whole test."""

    def test_scenario_clamped_at_zero(self):
        questions = [single("q1"), single("q2")]
        scored = grading.score_test(questions, {"q1": "b"}, passing_marks=1)
        assert scored.raw_score == -1
        assert scored.score == 0
        assert scored.total_marks == 8
        assert scored.status == FAILED

    def test_floor_applies_once_at_test_level(self):
        questions = [multi("q1", marks=(4, -3)), single("q2"), single("q3")]
        scored = grading.score_test(questions, {"q1": ["b"], "q2": "a", "q3": "b"}, passing_marks=0)
        assert scored.raw_score == -3 + 4 - 1
        assert scored.score == 0

        scored = grading.score_test(questions, {"q1": ["b"], "q2": "a", "q3": "a"}, passing_marks=0)
        assert scored.score == 5

    def test_all_wrong_never_negative(self):
        questions = [single(f"q{i}") for i in range(5)]
        scored = grading.score_test(questions, {f"q{i}": "b" for i in range(5)}, passing_marks=0)
        assert scored.score == 0
        assert scored.status == PASSED

    def test_total_marks_independent_of_attempts(self):
        questions = [single("q1"), multi("q2"), numerical("q3"), matrix("q4")]
        none = grading.score_test(questions, {}, passing_marks=0)
        some = grading.score_test(questions, {"q1": "a", "q3": "1"}, passing_marks=0)
        assert none.total_marks == some.total_marks == 4 + 4 + 2 + 4

    def test_pass_boundary_is_inclusive(self):
        questions = [single("q1")]
        assert grading.score_test(questions, {"q1": "a"}, passing_marks=4).status == PASSED
        assert grading.score_test(questions, {"q1": "a"}, passing_marks=4.5).status == FAILED

    def test_malformed_answer_does_not_block_others(self):
        questions = [single("q1"), single("q2")]
        scored = grading.score_test(questions, {"q1": {"bad": True}, "q2": "a"}, passing_marks=0)
        assert scored.outcomes["q1"].marks_awarded == 0
        assert scored.score == 4

    def test_grade_submission(self):
        scored = grading.grade_submission([single("q1")], 1, {"q1": "a"})
        assert scored.score == 4
        assert scored.status == PASSED
        assert scored.outcomes["q1"] == grading.GradeOutcome(True, 4)


class TestExplainResult:
    """Review payload recomputed from stored answers."""

    def test_review_detail(self):
        questions = [single("q1"), multi("q2"), numerical("q3"), matrix("q4")]
        stored = {"q1": "b", "q2": ["c", "a"], "q3": "9.8"}
        items = {i.question_id: i for i in grading.explain_result(questions, stored)}

        assert items["q1"].correct_answer == "Alpha"
        assert items["q1"].marks == {"correct": 4, "incorrect": -1, "obtained": -1}
        assert items["q2"].student_answer == ["a", "c"]
        assert items["q2"].correct_answer == "A, C"
        assert items["q2"].is_correct
        assert items["q3"].correct_answer == "9.8"
        assert items["q4"].correct_answer == grading.MATRIX_SUMMARY
        assert items["q4"].student_answer is None
        assert items["q4"].marks["obtained"] == 0

    def test_idempotent(self):
        questions = [single("q1"), multi("q2")]
        stored = {"q1": "a", "q2": ["a"]}
        first = [i.to_dict() for i in grading.explain_result(questions, stored)]
        second = [i.to_dict() for i in grading.explain_result(questions, stored)]
        assert first == second

    def test_matches_submission_grading(self):
        questions = [single("q1"), multi("q2"), numerical("q3"), matrix("q4")]
        stored = {"q1": "a", "q2": ["a", "b"], "q3": "9.8", "q4": ["B", "A", "D", "C"]}
        scored = grading.grade_submission(questions, 0, stored)
        for item in grading.explain_result(questions, stored):
            assert item.is_correct == scored.outcomes[item.question_id].is_correct
            assert item.marks["obtained"] == scored.outcomes[item.question_id].marks_awarded


class TestValidationAndConfig:

    def test_validate_rejects_inconsistent_specs(self):
        with pytest.raises(InconsistentQuestionSpec):
            single(correct=None).validate()
        with pytest.raises(InconsistentQuestionSpec):
            multi(correct=()).validate()
        with pytest.raises(InconsistentQuestionSpec):
            numerical(answer=None).validate()
        with pytest.raises(InconsistentQuestionSpec):
            matrix(columns=("A", "B")).validate()
        with pytest.raises(InconsistentQuestionSpec):
            single(marks=(4, 1)).validate()

    def test_validate_accepts_good_specs(self):
        for q in (single(), multi(), numerical(), matrix()):
            assert q.validate() is q

    def test_numeric_comparison_parse(self):
        assert NumericComparison.parse("exact") == grading.EXACT
        assert NumericComparison.parse(None) == grading.EXACT
        assert NumericComparison.parse("tolerance:0.5").tolerance == 0.5
        with pytest.raises(ValueError):
            NumericComparison.parse("fuzzy")
        with pytest.raises(ValueError):
            NumericComparison.parse("tolerance:abc")

    def test_materialize_result(self):
        scored = grading.grade_submission([single("q1")], 5, {"q1": "a"})
        row = grading.materialize_result(scored, {"q1": "a"})
        assert row == {"score": 4, "total_marks": 4, "status": FAILED, "answers": {"q1": "a"}}
