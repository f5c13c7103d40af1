import pytest

from conftest import make_pdf, student
from quizmark.segmentation import (
    SOURCE_EVEN,
    SOURCE_EXPLICIT,
    SOURCE_HEADERS,
    block_start_indices,
    even_split,
    infer_blocks_from_page_texts,
    map_pages_to_students,
    map_pdf_pages_to_students,
    normalize_indices,
)


def test_block_starts_example():
    assert block_start_indices(10, 2, 5) == [0, 2, 4, 6, 8]


@pytest.mark.parametrize(
    "page_count, pps, students, expected",
    [
        (10, 2, 7, [0, 2, 4, 6, 8]),
        (5, 2, 3, [0, 2]),
        (3, 1, 2, [0, 1]),
        (3, 0, 5, [0, 1, 2]),
        (0, 1, 3, []),
        (4, 1, 0, []),
    ],
)
def test_block_starts_truncate_to_usable_students(page_count, pps, students, expected):
    assert block_start_indices(page_count, pps, students) == expected


def test_block_starts_are_deterministic():
    assert block_start_indices(12, 3, 4) == block_start_indices(12, 3, 4)


def test_even_split_example():
    assert even_split(7, 3) == [[0, 1, 2], [3, 4], [5, 6]]


def test_even_split_fairness():
    for page_count in range(0, 15):
        for n in range(1, 6):
            split = even_split(page_count, n)
            sizes = [len(s) for s in split]
            assert len(split) == n
            assert max(sizes) - min(sizes) <= 1
            assert [i for s in split for i in s] == list(range(page_count))


def test_even_split_degenerate():
    assert even_split(0, 2) == [[], []]
    assert even_split(5, 0) == []


def test_normalize_indices():
    assert normalize_indices([3, 1, 3, -1, 9, True, "2"], 5) == [1, 3]


def test_infer_blocks_from_headers():
    texts = ["Name: A\nRoll: 1", "more", "NAME: b ROLL: 2", "tail"]
    assert infer_blocks_from_page_texts(texts) == [[0, 1], [2, 3]]


def test_infer_blocks_requires_both_labels():
    assert infer_blocks_from_page_texts(["Name: A", "Roll: 1"]) == []


def test_headerless_second_page_spills_to_next_student():
    texts = ["Name: Jane\nRoll: 12\n----\nAnswer one", "Answer two, no header"]
    mapping = map_pages_to_students(2, [student("Jane"), student("Ravi")], texts)
    assert mapping.source == SOURCE_HEADERS
    assert mapping.pages == [[0], [1]]


def test_headers_matching_student_count_map_one_to_one():
    texts = ["Name: A Roll: 1", "x", "Name: B Roll: 2", "y", "z"]
    mapping = map_pages_to_students(5, [student("A"), student("B")], texts)
    assert mapping.pages == [[0, 1], [2, 3, 4]]


def test_extra_header_blocks_are_ignored():
    texts = ["Name: A Roll: 1", "Name: B Roll: 2", "Name: C Roll: 3"]
    mapping = map_pages_to_students(3, [student("A"), student("B")], texts)
    assert mapping.pages == [[0], [1]]


def test_missed_header_leaves_pages_for_last_student():
    texts = ["Name: A Roll: 1", "a2", "Name: B Roll: 2", "b2", "c1", "c2"]
    students = [student("A"), student("B"), student("C")]
    mapping = map_pages_to_students(6, students, texts)
    assert mapping.pages == [[0, 1], [2, 3], [4, 5]]


def test_explicit_indices_win():
    students = [
        student("A", page_indices=[2, 0, 0]),
        student("B", page_indices=[5, 1]),
    ]
    mapping = map_pages_to_students(4, students, ["Name: x Roll: y"] * 4)
    assert mapping.source == SOURCE_EXPLICIT
    assert mapping.pages == [[0, 2], [1]]


def test_partial_explicit_indices_fall_back():
    students = [student("A", page_indices=[0]), student("B")]
    mapping = map_pages_to_students(4, students)
    assert mapping.source == SOURCE_EVEN
    assert mapping.pages == [[0, 1], [2, 3]]


def test_no_students():
    mapping = map_pages_to_students(4, [])
    assert mapping.pages == []


def test_mapping_invariants_hold():
    texts = ["Name: A Roll: 1", "", "", "Name: B Roll: 2", ""]
    mapping = map_pages_to_students(5, [student("A"), student("B"), student("C"), student("D")], texts)
    for pages in mapping.pages:
        assert pages == sorted(set(pages))
        assert all(0 <= p < 5 for p in pages)
    assert len(mapping) == 4


def test_mapping_from_pdf_text_layer():
    pdf = make_pdf(["Name: Jane\nRoll: 12\n----", "continued", "Name: Ravi\nRoll: 13\n----", "continued"])
    mapping = map_pdf_pages_to_students(pdf, [student("Jane"), student("Ravi")])
    assert mapping.source == SOURCE_HEADERS
    assert mapping.first_pages() == [0, 2]


def test_mapping_prefers_ocr_page_texts_for_scans():
    pdf = make_pdf(["", "", "", ""])
    ocr = ["Name: Jane\nRoll: 12", "answers", "Name: Ravi\nRoll: 13"]
    mapping = map_pdf_pages_to_students(pdf, [student("Jane"), student("Ravi")], ocr)
    assert mapping.source == SOURCE_HEADERS
    assert mapping.pages == [[0, 1], [2, 3]]


def test_headerless_ocr_texts_fall_back_to_text_layer():
    pdf = make_pdf(["Name: Jane\nRoll: 12", "Name: Ravi\nRoll: 13", "continued"])
    mapping = map_pdf_pages_to_students(pdf, [student("Jane"), student("Ravi")], ["blurry", "", ""])
    assert mapping.source == SOURCE_HEADERS
    assert mapping.pages == [[0], [1, 2]]


def test_no_headers_anywhere_splits_evenly():
    pdf = make_pdf(["a", "b", "c", "d"])
    mapping = map_pdf_pages_to_students(pdf, [student("A"), student("B")], ["", "", "", ""])
    assert mapping.source == SOURCE_EVEN
    assert mapping.pages == [[0, 1], [2, 3]]


def test_extra_ocr_texts_beyond_page_count_are_ignored():
    pdf = make_pdf(["", ""])
    ocr = ["x", "y", "Name: Ghost\nRoll: 9"]
    mapping = map_pdf_pages_to_students(pdf, [student("A"), student("B")], ocr)
    assert mapping.source == SOURCE_EVEN
