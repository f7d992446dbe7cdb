# backend/tests/unit/test_question_tree.py
from interviewer.models.guide import Question
from interviewer.models.session import Answer
from interviewer.workflows import question_tree


def test_flatten_is_preorder(questions):
    assert [q.id for q in question_tree.flatten(questions)] == ["q1", "q1a", "q1b", "q2", "q3"]


def test_first_question(questions):
    assert question_tree.first_question(questions).id == "q1"
    assert question_tree.first_question([]) is None


def test_next_question_walks_into_sub_questions_then_siblings(questions):
    assert question_tree.next_question(questions, "q1").id == "q1a"
    assert question_tree.next_question(questions, "q1b").id == "q2"
    assert question_tree.next_question(questions, "q3") is None


def test_next_question_unknown_id_returns_none(questions):
    assert question_tree.next_question(questions, "missing") is None


def test_find_by_id_nested(questions):
    assert question_tree.find_by_id(questions, "q1b").text == "What does a typical day look like?"
    assert question_tree.find_by_id(questions, "nope") is None
    assert question_tree.find_by_id(questions, "") is None
    assert question_tree.find_by_id(questions, None) is None


def test_find_by_id_returns_first_preorder_match():
    tree = [Question.model_validate({
        "id": "a", "text": "outer",
        "sub_questions": [{"id": "dup", "text": "first"}],
    }), Question(id="dup", text="second")]
    assert question_tree.find_by_id(tree, "dup").text == "first"
    assert question_tree.find_duplicate_ids(tree) == ["dup"]


def test_find_duplicate_ids_none_for_unique_tree(questions):
    assert question_tree.find_duplicate_ids(questions) == []


def test_collect_context_skips_unresolved_answers(questions):
    answers = [
        Answer(question_id="q1", text="I lead the platform team."),
        Answer(question_id="gone", text="orphaned answer text"),
        Answer(question_id="q1a", text="About three years now."),
    ]
    assert question_tree.collect_context(questions, answers) == [
        ("Tell me about your role.", "I lead the platform team."),
        ("How long have you been in it?", "About three years now."),
    ]
