import logging

import pytest

from querydesk.models.result_page import ResultPage, ResultView, compute_total_pages


@pytest.mark.parametrize(
    ("total", "page_size", "expected"),
    [(0, 50, 1), (1, 50, 1), (50, 50, 1), (51, 50, 2), (100, 10, 10), (101, 10, 11)],
)
def test_compute_total_pages(total: int, page_size: int, expected: int) -> None:
    assert compute_total_pages(total, page_size) == expected


class TestResultPage:
    def test_to_dict_recomputes_total_pages(self) -> None:
        page = ResultPage(rows=[{"a": 1}], total=26, page=1, page_size=25)
        assert page.to_dict() == {
            "data": [{"a": 1}],
            "total": 26,
            "page": 1,
            "pageSize": 25,
            "totalPages": 2,
        }

    def test_from_dict_ignores_wire_total_pages(self) -> None:
        page = ResultPage.from_dict(
            {"data": [], "total": 30, "page": 1, "pageSize": 10, "totalPages": 99}
        )
        assert page.total_pages == 3

    def test_from_dict_truncates_oversized_page(self, caplog: pytest.LogCaptureFixture) -> None:
        rows = [{"i": i} for i in range(12)]
        with caplog.at_level(logging.WARNING):
            page = ResultPage.from_dict({"data": rows, "total": 12, "page": 1, "pageSize": 10})
        assert len(page.rows) == 10
        assert "truncating" in caplog.text

    def test_from_dict_clamps_bad_values(self) -> None:
        page = ResultPage.from_dict({"data": [], "total": -5, "page": 0, "pageSize": 10})
        assert page.total == 0
        assert page.page == 1

    def test_from_dict_tolerates_non_numeric_counts(self) -> None:
        page = ResultPage.from_dict(
            {"data": [{"a": 1}], "total": "many", "page": "two", "pageSize": "ten"}
        )
        assert page.total == 0
        assert page.page == 1
        assert page.page_size == 1

    def test_rows_may_not_exceed_page_size(self) -> None:
        with pytest.raises(ValueError):
            ResultPage(rows=[{"a": 1}, {"a": 2}, {"a": 3}], total=3, page_size=2)


def _view() -> ResultView:
    rows = [
        {"id": 1, "name": "Charlie", "score": 20},
        {"id": 2, "name": "alice", "score": None},
        {"id": 3, "name": "Bob", "score": 5},
        {"id": 4, "name": "Alicia", "score": 20},
    ]
    return ResultView(ResultPage(rows=rows, total=40, page=2, page_size=4))


class TestResultView:
    def test_columns_from_first_row(self) -> None:
        assert _view().columns() == ["id", "name", "score"]
        assert ResultView(ResultPage()).columns() == []

    def test_search_is_case_insensitive_and_local(self) -> None:
        view = _view()
        matched = view.search("ALI")
        assert [r["id"] for r in matched] == [2, 4]
        assert view.total == 40

    def test_empty_search_restores_rows(self) -> None:
        view = _view()
        view.search("zzz")
        assert view.search("") == view.rows

    def test_sort_toggles_direction(self) -> None:
        view = _view()
        asc = view.sort_page("score")
        assert [r["id"] for r in asc] == [3, 1, 4, 2]
        desc = view.sort_page("score")
        assert [r["id"] for r in desc] == [1, 4, 3, 2]

    def test_sort_is_stable_and_new_column_starts_ascending(self) -> None:
        view = _view()
        view.sort_page("score")
        view.sort_page("score")
        assert view.sort_direction == "desc"
        view.sort_page("id")
        assert view.sort_direction == "asc"

    def test_sort_then_search(self) -> None:
        view = _view()
        view.sort_page("name")
        assert [r["name"] for r in view.search("b")] == ["Bob"]

    def test_does_not_mutate_page(self) -> None:
        view = _view()
        before = list(view.rows)
        view.sort_page("name")
        view.search("a")
        assert view.rows == before

    def test_navigation(self) -> None:
        view = _view()
        assert view.go_to_page(0) == 1
        assert view.go_to_page(50) == 10
        assert view.has_previous and view.has_next
        assert (view.first_index, view.last_index) == (5, 8)

    def test_summary(self) -> None:
        assert _view().summary() == "40 total rows, showing 4 (page 2 of 10)"

    def test_empty_page(self) -> None:
        view = ResultView(ResultPage())
        assert view.is_empty
        assert view.total_pages == 1
        assert view.first_index == 0
        assert not view.has_next


def test_total_pages_rounds_up() -> None:
    assert ResultPage(total=120, page_size=50).total_pages == 3


def test_go_to_page_clamps_to_range() -> None:
    view = ResultView(ResultPage(total=120, page_size=50))
    assert view.go_to_page(0) == 1
    assert view.go_to_page(10) == 3


def test_sort_page_twice_flips_order() -> None:
    view = ResultView(ResultPage(rows=[{"a": 2}, {"a": 1}], total=2))
    assert view.sort_page("a") == [{"a": 1}, {"a": 2}]
    assert view.sort_page("a") == [{"a": 2}, {"a": 1}]


def test_search_matches_regardless_of_case() -> None:
    view = ResultView(ResultPage(rows=[{"name": "John"}, {"name": "Amy"}], total=2))
    assert view.search("jo") == [{"name": "John"}]
    assert view.search("JO") == [{"name": "John"}]


def test_search_ignores_null_cells() -> None:
    view = ResultView(ResultPage(rows=[{"name": "John", "x": None}, {"name": "Amy", "x": 1}]))
    assert view.search("none") == []
    assert view.search("jo") == [{"name": "John", "x": None}]
