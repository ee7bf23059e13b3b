"""Question bank validation rules and the validate() contract."""
from exam_engine.models import MULTI_CHOICE, TRUE_FALSE, AnswerOption, Question
from exam_engine.validator import NO_ACTIVE_QUESTIONS, QuestionBankValidator, check_question, check_questions

from conftest import FlakyStore, add_certification, add_question


def _question(options, question_type="multiple_choice", text="What is the capital of France?"):
    return Question(
        id="q1",
        certification_id="c1",
        question_text=text,
        question_type=question_type,
        answer_options=[AnswerOption(id=f"o{i}", question_id="q1", option_text=t, is_correct=c)
                        for i, (t, c) in enumerate(options)],
    )


def test_single_option_is_invalid():
    issues = check_question(_question([("Paris", True)]))
    assert issues == ["Less than 2 answer options"]


def test_single_choice_with_two_correct_is_invalid():
    issues = check_question(_question([("Paris", True), ("Lyon", True), ("Nice", False)]))
    assert issues == ["Single choice question should have exactly one correct answer"]


def test_true_false_with_two_correct_is_invalid():
    issues = check_question(_question([("True", True), ("False", True)], question_type=TRUE_FALSE))
    assert len(issues) == 1


def test_blank_option_text_is_invalid():
    issues = check_question(_question([("Paris", True), ("   ", False)]))
    assert issues == ["Some answer options have empty text"]


def test_no_correct_option_is_invalid():
    assert check_question(_question([("Paris", False), ("Lyon", False)])) == ["No correct answer marked"]


def test_no_options_is_invalid():
    assert check_question(_question([])) == ["No answer options found"]


def test_well_formed_four_option_question_is_valid():
    question = _question([("Paris", True), ("Lyon", False), ("Nice", False), ("Lille", False)])
    assert check_question(question) == []


def test_multi_answer_allows_several_correct():
    question = _question([("A", True), ("B", True), ("C", False)], question_type=MULTI_CHOICE)
    assert check_question(question) == []


def test_issue_is_prefixed_with_truncated_question_text():
    text = "x" * 80
    report = check_questions([_question([("only", True)], text=text)])
    assert report.issues == ["x" * 50 + "...: Less than 2 answer options"]


def test_partial_validity_is_enough(store):
    cert = add_certification(store)
    good = add_question(store, cert["id"])
    add_question(store, cert["id"], options=(("lonely", True),))

    report = QuestionBankValidator(store).validate(cert["id"])

    assert report.is_valid
    assert [q.id for q in report.valid_questions] == [good["id"]]
    assert report.total_questions == 2
    assert len(report.issues) == 1


def test_no_active_questions_fails_with_single_issue(store):
    cert = add_certification(store)
    add_question(store, cert["id"], is_active=False)

    report = QuestionBankValidator(store).validate(cert["id"])

    assert not report.is_valid
    assert report.issues == [NO_ACTIVE_QUESTIONS]
    assert report.valid_questions == []


def test_all_invalid_questions_is_not_valid(store):
    cert = add_certification(store)
    add_question(store, cert["id"], options=(("a", False), ("b", False)))
    report = QuestionBankValidator(store).validate(cert["id"])
    assert not report.is_valid
    assert report.issues[0].endswith("No correct answer marked")


def test_store_failure_becomes_validation_issue():
    store = FlakyStore()
    store.fail_on.add(("find", "questions"))

    report = QuestionBankValidator(store).validate("any")

    assert not report.is_valid
    assert report.issues == ["simulated find failure on questions"]
