"""Tests for paginated collection."""

from unittest.mock import MagicMock

from iamjack.aws.pagination import collect_all, drain, marker_fetcher


def _pages(sizes, tokens):
    """Page fetcher over pages of ``sizes`` items, handing back ``tokens``."""
    calls = []
    pages = []
    start = 0
    for size in sizes:
        pages.append(list(range(start, start + size)))
        start += size

    def fetch(cursor):
        calls.append(cursor)
        index = len(calls) - 1
        return pages[index], tokens[index]

    return fetch, calls


class TestCollectAll:
    def test_three_full_pages(self):
        fetch, calls = _pages([50, 50, 50], ["t1", "t2", None])
        items = collect_all(fetch)
        assert len(items) == 150
        assert items == list(range(150))
        assert calls == [None, "t1", "t2"]

    def test_single_page(self):
        fetch, calls = _pages([3], [None])
        assert collect_all(fetch) == [0, 1, 2]
        assert calls == [None]

    def test_empty_token_ends(self):
        fetch, calls = _pages([2, 2], ["next", ""])
        assert collect_all(fetch) == [0, 1, 2, 3]
        assert len(calls) == 2

    def test_empty_pages_keep_going(self):
        fetch, _ = _pages([0, 0, 1], ["a", "b", None])
        assert collect_all(fetch) == [0]

    def test_no_dedup_or_reorder(self):
        responses = iter([(["b", "a"], "m"), (["a", "c"], None)])
        assert collect_all(lambda cursor: next(responses)) == ["b", "a", "a", "c"]


class TestMarkerFetcher:
    def test_follows_marker_while_truncated(self):
        transport = MagicMock()
        transport.invoke.side_effect = [
            {"Policies": [{"n": 1}], "IsTruncated": True, "Marker": "m1"},
            {"Policies": [{"n": 2}], "IsTruncated": False},
        ]
        params = {"Scope": "Local"}
        items = drain(transport, "ListPolicies", params, "Policies")
        assert items == [{"n": 1}, {"n": 2}]
        first, second = transport.invoke.call_args_list
        assert first.args == ("ListPolicies", {"Scope": "Local"})
        assert second.args == ("ListPolicies", {"Scope": "Local", "Marker": "m1"})
        assert params == {"Scope": "Local"}

    def test_marker_ignored_when_not_truncated(self):
        transport = MagicMock()
        transport.invoke.return_value = {"Users": [], "IsTruncated": False, "Marker": "stale"}
        fetch = marker_fetcher(transport, "ListUsers", {}, "Users")
        assert fetch(None) == ([], None)

    def test_missing_items_key(self):
        transport = MagicMock()
        transport.invoke.return_value = {}
        assert drain(transport, "ListGroups", {}, "Groups") == []
