from quizmark.models import (
    EngineAttempt,
    OcrNamingContext,
    OcrResult,
    OcrRunReport,
    Quiz,
    StudentRecord,
    StudentRole,
)


def test_student_record_tolerates_missing_fields():
    record = StudentRecord.from_dict({})
    assert record.student_name == ""
    assert record.total_score == 0
    assert record.questions == []
    assert record.role == StudentRole.STUDENT
    assert record.display_name == "Student"
    assert record.display_roll == "-"


def test_student_record_ignores_non_dict_input():
    assert StudentRecord.from_dict("garbage") == StudentRecord()


def test_student_record_accepts_short_keys_and_string_numbers():
    record = StudentRecord.from_dict({"name": " Asha ", "roll": 7, "total_score": "42.5", "max_score": "50"})
    assert record.student_name == "Asha"
    assert record.roll_number == "7"
    assert record.total_score == 42.5
    assert record.max_score == 50


def test_question_and_subpart_defaults():
    record = StudentRecord.from_dict({
        "questions": [
            {"number": "2", "marks": None, "subparts": [{"label": "a"}, "junk"]},
            "junk",
        ]
    })
    q = record.questions[0]
    assert q.number == 2
    assert q.marks == 0
    assert q.max_marks is None
    assert q.subparts[0].label == "a"
    assert q.subparts[1].label == ""
    assert record.questions[1].number is None


def test_role_from_sentinels():
    assert StudentRecord.from_dict({"student_name": "solution_paper_quiz_a"}).role == StudentRole.SOLUTION
    assert StudentRecord.from_dict({"roll_number": "Unknown_quiz"}).role == StudentRole.UNKNOWN
    assert StudentRecord.from_dict({"student_name": "Ravi"}).role == StudentRole.STUDENT


def test_explicit_role_wins_over_sentinel():
    record = StudentRecord.from_dict({"student_name": "solution_paper_quiz", "role": "student"})
    assert record.role == StudentRole.STUDENT


def test_page_indices_keep_only_ints():
    record = StudentRecord.from_dict({"page_indices": [0, "1", 2.0, True, 3]})
    assert record.page_indices == [0, 3]
    assert StudentRecord.from_dict({}).page_indices is None


def test_to_dict_round_trips_role():
    record = StudentRecord.from_dict({"student_name": "Asha", "role": "unknown"})
    assert StudentRecord.from_dict(record.to_dict()).role == StudentRole.UNKNOWN


def test_quiz_from_row_defaults():
    quiz = Quiz.from_row({"id": 5, "no_of_pages": None, "read_first_paper_is_solution": None})
    assert quiz.id == "5"
    assert quiz.pages_per_student == 1
    assert quiz.first_paper_is_solution is True
    assert quiz.graded == []


def test_quiz_from_row_explicit_values():
    quiz = Quiz.from_row({
        "id": "q1",
        "no_of_pages": 3,
        "read_first_paper_is_solution": False,
        "graded_json": [{"student_name": "A", "total_score": 9}],
    })
    assert quiz.pages_per_student == 3
    assert quiz.first_paper_is_solution is False
    assert quiz.graded[0].total_score == 9


def test_naming_context_block_roles():
    naming = OcrNamingContext(first_is_solution=True, quiz_title="Quiz 1", section="B", pages_per_student=2)
    assert naming.solution_name == "solution_paper_quiz_1_b"
    assert naming.unknown_name == "unknown_quiz_1_b"
    assert [naming.is_block_start(i) for i in range(4)] == [True, False, True, False]
    assert naming.is_solution_page(0)
    assert not naming.is_solution_page(2)


def test_naming_context_for_quiz():
    quiz = Quiz(id="q", title="Algebra", section="", pages_per_student=3, first_paper_is_solution=False)
    naming = OcrNamingContext.for_quiz(quiz)
    assert naming.block_size == 3
    assert naming.section is None
    assert not naming.is_solution_page(0)


def test_neutral_context():
    naming = OcrNamingContext.neutral()
    assert naming.block_size == 1
    assert not naming.first_is_solution


def test_attempt_and_report():
    good = OcrResult.success("pdf-text", "x" * 40, pages_total=1, pages_kept=1)
    bad = OcrResult.failure("vision-pdf", "boom")
    report = OcrRunReport(mode="auto", text=good.text, winner="pdf-text")
    report.attempts = [EngineAttempt.from_result(bad), EngineAttempt.from_result(good)]

    assert report.attempts[0].reason == "boom"
    assert report.attempts[1].meaningful
    assert not report.low_quality
    data = report.to_dict()
    assert data["chars"] == 40
    assert [a["engine"] for a in data["attempts"]] == ["vision-pdf", "pdf-text"]


def test_short_result_is_reported_below_gate():
    attempt = EngineAttempt.from_result(OcrResult.success("tesseract", "tiny"))
    assert attempt.ok
    assert not attempt.meaningful
    assert attempt.reason == "below quality gate"


def test_result_from_pages_keeps_alignment():
    result = OcrResult.from_pages("images", ["first page", "", "third page"])
    assert result.text == "first page\n\nthird page"
    assert result.pages_total == 3
    assert result.pages_kept == 2
    assert result.page_texts == ["first page", "", "third page"]


def test_report_counts_pages_with_text():
    report = OcrRunReport(mode="auto", page_texts=["a", "", "b"])
    assert report.to_dict()["pages_with_text"] == 2


def test_quiz_from_row_page_texts():
    quiz = Quiz.from_row({"id": "q1", "page_texts": ["Name: A", None, "  "]})
    assert quiz.page_texts == ["Name: A", "", ""]
    assert Quiz.from_row({"id": "q2", "page_texts": "not a list"}).page_texts == []
