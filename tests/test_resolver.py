from __future__ import annotations

from typing import List

from trigger_backup.resolver import TriggerResolver, is_wildcard, split_requests

CATALOG = ["db-a", "db-b", "web"]


class CountingCatalog:
    def __init__(self, names: List[str]) -> None:
        self.names = names
        self.calls = 0

    def __call__(self) -> List[str]:
        self.calls += 1
        return self.names


def test_literal_first_then_wildcard_in_catalog_order() -> None:
    resolver = TriggerResolver(lambda: CATALOG)
    assert resolver.resolve("web,db-*") == ["web", "db-a", "db-b"]


def test_tokens_are_trimmed_and_empty_tokens_dropped() -> None:
    assert split_requests(" web , ,db-a,, ") == ["web", "db-a"]
    assert split_requests(["web", " db-a,db-b "]) == ["web", "db-a", "db-b"]


def test_literal_tokens_are_not_validated() -> None:
    catalog = CountingCatalog(CATALOG)
    resolver = TriggerResolver(catalog)

    assert resolver.resolve("ghost,web") == ["ghost", "web"]
    assert catalog.calls == 0


def test_wildcard_without_matches_contributes_nothing() -> None:
    resolver = TriggerResolver(lambda: CATALOG)

    assert resolver.resolve(["none-*"]) == []
    assert resolver.resolve("none-*,web") == ["web"]


def test_duplicates_are_kept_unless_deduplicated() -> None:
    resolver = TriggerResolver(lambda: CATALOG)

    assert resolver.resolve("db-a,db-*,db-a") == ["db-a", "db-a", "db-b", "db-a"]
    assert resolver.resolve("db-a,db-*,db-a", deduplicate=True) == ["db-a", "db-b"]


def test_catalog_is_read_once_per_resolve() -> None:
    catalog = CountingCatalog(CATALOG)
    resolver = TriggerResolver(catalog)

    assert resolver.resolve("db-*,w*") == ["db-a", "db-b", "web"]
    assert catalog.calls == 1
    assert resolver.resolve("db-*,w*") == ["db-a", "db-b", "web"]
    assert catalog.calls == 2


def test_other_glob_characters_expand() -> None:
    resolver = TriggerResolver(lambda: CATALOG)

    assert resolver.resolve("db-?") == ["db-a", "db-b"]
    assert resolver.resolve("db-[b]") == ["db-b"]
    assert is_wildcard("db-*")
    assert not is_wildcard("db-a")


def test_matching_is_case_sensitive() -> None:
    resolver = TriggerResolver(lambda: ["Web", "web"])
    assert resolver.resolve("w*") == ["web"]
