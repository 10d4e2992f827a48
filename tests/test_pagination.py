import pytest

from ascgate import ApiError, collect_all

BASE = "https://api.appstoreconnect.apple.com/v1"


class FakePager:
    def __init__(self, pages, fail_on=None):
        self.pages = pages
        self.fail_on = fail_on
        self.calls = []

    def send(self, path, method="GET", body=None, params=None, deadline=None):
        self.calls.append((path, params))
        if path == self.fail_on:
            raise ApiError("Server error: 500", 500)
        return self.pages[path]


def _three_pages():
    return {
        "/things": {"data": [1, 2], "links": {"next": f"{BASE}/things?cursor=B"}},
        f"{BASE}/things?cursor=B": {"data": [3, 4], "links": {"next": f"{BASE}/things?cursor=C"}},
        f"{BASE}/things?cursor=C": {"data": [5], "links": {"self": "..."}},
    }


def test_collects_all_pages_in_order():
    pager = FakePager(_three_pages())
    items = collect_all(pager, "/things", {"limit": 2})
    assert items == [1, 2, 3, 4, 5]
    assert [c[0] for c in pager.calls] == [
        "/things",
        f"{BASE}/things?cursor=B",
        f"{BASE}/things?cursor=C",
    ]
    # params only travel with the first request; cursors already embed them
    assert [c[1] for c in pager.calls] == [{"limit": 2}, None, None]


def test_page_cap_stops_early():
    pager = FakePager(_three_pages())
    assert collect_all(pager, "/things", max_pages=2) == [1, 2, 3, 4]
    assert len(pager.calls) == 2  # noqa: PLR2004


def test_failure_discards_partial_results():
    pager = FakePager(_three_pages(), fail_on=f"{BASE}/things?cursor=C")
    with pytest.raises(ApiError):
        collect_all(pager, "/things")
    assert len(pager.calls) == 3  # noqa: PLR2004


def test_repeated_cursor_is_not_requested_again():
    pages = {
        "/loop": {"data": [1], "links": {"next": f"{BASE}/loop?cursor=A"}},
        f"{BASE}/loop?cursor=A": {"data": [2], "links": {"next": f"{BASE}/loop?cursor=A"}},
    }
    pager = FakePager(pages)
    assert collect_all(pager, "/loop") == [1, 2]
    assert len(pager.calls) == 2  # noqa: PLR2004


def test_single_resource_and_missing_data():
    pages = {
        "/one": {"data": {"id": "x"}, "links": {"next": f"{BASE}/empty"}},
        f"{BASE}/empty": {"meta": {}},
    }
    assert collect_all(FakePager(pages), "/one") == [{"id": "x"}]


def test_invalid_cap():
    with pytest.raises(ValueError):
        collect_all(FakePager({}), "/things", max_pages=0)


def test_through_transport(make_transport, session, respond):
    session.request.side_effect = [
        respond(200, {"data": ["a"], "links": {"next": f"{BASE}/apps?cursor=2"}}),
        respond(200, {"data": ["b"], "links": {}}),
    ]
    t = make_transport()
    assert t.get_all_pages("/apps", {"limit": 1}) == ["a", "b"]
    first, second = session.request.call_args_list
    assert first.kwargs["params"] == {"limit": "1"}
    assert second.args[1] == f"{BASE}/apps?cursor=2"
    assert second.kwargs["params"] == {}


def test_get_all_pages_rejects_zero_cap(make_transport, session):
    with pytest.raises(ValueError):
        make_transport().get_all_pages("/apps", max_pages=0)
    session.request.assert_not_called()
