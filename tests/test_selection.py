from conftest import student
from quizmark.composite.selection import (
    ROLE_AVG,
    ROLE_BEST,
    ROLE_LOW,
    ROLE_SOLUTION,
    map_representatives,
    pick_solution,
    select_roles,
)


def pages(selection):
    return {tag: entry.page_index for tag, entry in selection.ordered()}


def test_ranking_without_solution():
    graded = [student("A", score=40), student("B", score=90), student("C", score=10)]
    mapped = map_representatives(graded, page_count=3, pages_per_student=1)
    selection = select_roles(mapped, first_is_solution=False)

    assert pages(selection) == {ROLE_BEST: 1, ROLE_AVG: 0, ROLE_LOW: 2}
    assert [tag for tag, _ in selection.ordered()] == [ROLE_BEST, ROLE_AVG, ROLE_LOW]


def test_solution_block_excluded_from_ranking():
    graded = [
        student("solution_paper_quiz_1", score=100),
        student("A", score=30),
        student("B", score=80),
        student("C", score=55),
    ]
    mapped = map_representatives(graded, page_count=8, pages_per_student=2)
    selection = select_roles(mapped, first_is_solution=True)

    assert selection.solution.page_index == 0
    assert {m.page_index for m in selection.pool} == {2, 4, 6}
    assert pages(selection) == {ROLE_SOLUTION: 0, ROLE_BEST: 4, ROLE_AVG: 6, ROLE_LOW: 2}
    assert selection.page_indices == [0, 4, 6, 2]


def test_no_solution_flag_ranks_everyone():
    graded = [student("solution_paper_quiz", score=100), student("A", score=50)]
    selection = select_roles(map_representatives(graded, 2, 1), first_is_solution=False)

    assert selection.solution is None
    assert selection.best.page_index == 0
    assert ROLE_SOLUTION not in pages(selection)


def test_ties_keep_arrival_order():
    graded = [student("A", score=50), student("B", score=50), student("C", score=50)]
    mapped = map_representatives(graded, 3, 1)

    first = pages(select_roles(mapped, first_is_solution=False))
    second = pages(select_roles(mapped, first_is_solution=False))
    assert first == second == {ROLE_BEST: 0, ROLE_AVG: 1, ROLE_LOW: 2}


def test_single_student_with_solution_degrades_to_one_page():
    mapped = map_representatives([student("Only", score=12)], page_count=2, pages_per_student=2)
    selection = select_roles(mapped, first_is_solution=True)

    assert selection.pool == []
    assert [entry.page_index for _, entry in selection.ordered()] == [0, 0, 0, 0]
    assert [tag for tag, _ in selection.ordered()] == [ROLE_SOLUTION, ROLE_BEST, ROLE_AVG, ROLE_LOW]


def test_solution_defaults_to_first_mapped():
    mapped = map_representatives([student("A", score=1), student("B", score=2)], 2, 1)
    assert pick_solution(mapped).index == 0


def test_solution_role_preferred_over_unknown():
    graded = [student("Asha"), student("unknown_quiz"), student("solution_paper_quiz")]
    mapped = map_representatives(graded, 3, 1)
    assert pick_solution(mapped).index == 2


def test_unknown_used_when_no_solution_role():
    graded = [student("Asha"), student("unknown_quiz")]
    assert pick_solution(map_representatives(graded, 2, 1)).index == 1


def test_mapping_truncated_by_page_count():
    graded = [student(str(i)) for i in range(5)]
    mapped = map_representatives(graded, page_count=4, pages_per_student=2)
    assert [(m.index, m.page_index) for m in mapped] == [(0, 0), (1, 2)]


def test_nothing_mapped():
    selection = select_roles([], first_is_solution=True)
    assert selection.ordered() == []
    assert pick_solution([]) is None
