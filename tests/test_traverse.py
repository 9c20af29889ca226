from matchbind import ArgumentTraverseContext


def _accept_ints(candidate):
    return isinstance(candidate, int), candidate


def test_search_consumes_first_accepted_candidate():
    ctx = ArgumentTraverseContext(["a", 1, "b", 2])

    assert ctx.search(_accept_ints) == (True, 1)
    assert ctx.is_used(1)
    assert ctx.search(_accept_ints) == (True, 2)
    assert ctx.search(_accept_ints) == (False, None)


def test_every_candidate_is_consumed_at_most_once():
    ctx = ArgumentTraverseContext([1, 2, 3])
    found = [ctx.search(_accept_ints) for _ in range(4)]

    assert found == [(True, 1), (True, 2), (True, 3), (False, None)]
    assert all(ctx.is_used(i) for i in range(3))


def test_collect_takes_all_accepted_candidates_in_order():
    ctx = ArgumentTraverseContext([1, "x", 2, "y", 3])

    assert ctx.collect(_accept_ints) == [1, 2, 3]
    assert ctx.collect(lambda c: (True, c)) == ["x", "y"]
    assert ctx.collect(lambda c: (True, c)) == []


def test_consuming_from_both_ends_shrinks_the_window():
    ctx = ArgumentTraverseContext([1, "a", "b", 2])

    assert ctx.search(lambda c: (c == 2, c)) == (True, 2)
    assert ctx.search(lambda c: (c == 1, c)) == (True, 1)

    seen = []
    ctx.reset()
    while ctx.advance(lambda c, i: seen.append((c, i)) or False):
        pass

    assert seen == [("a", 1), ("b", 2)]


def test_advance_on_empty_context_stops_immediately():
    ctx = ArgumentTraverseContext([])

    assert len(ctx) == 0
    assert ctx.advance(lambda c, i: True) is False
    assert ctx.search(_accept_ints) == (False, None)
