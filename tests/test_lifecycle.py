"""Tests for hud.lifecycle.LifecycleTracker."""

from datetime import timedelta

from hypothesis import given, settings, strategies as st

from helpers import BASE_TIME, build_run
from hud.lifecycle import LifecycleState, LifecycleTracker, describe_changes


def completed(run_id, conclusion="success", **kwargs):
    return build_run(run_id, status="completed", conclusion=conclusion, **kwargs)


class TestObserve:
    def test_first_seen_active_is_watched_and_visible(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1)])
        assert tracker.state_of(1) is LifecycleState.WATCHED
        assert [r.id for r in tracker.visible_runs()] == [1]

    def test_first_seen_completed_is_never_shown(self):
        tracker = LifecycleTracker()
        tracker.observe([completed(1)])
        assert tracker.state_of(1) is LifecycleState.UNWATCHED
        assert tracker.visible_runs() == []

    def test_watched_completion_stays_visible(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1)])
        tracker.observe([completed(1)])
        assert tracker.state_of(1) is LifecycleState.COMPLETED_PENDING
        assert [r.conclusion for r in tracker.visible_runs()] == ["success"]
        assert tracker.pending_ids() == {1}

    def test_record_replaced_wholesale(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1, status="queued")])
        tracker.observe([build_run(1, status="in_progress")])
        assert tracker.get(1).run.status == "in_progress"

    def test_missing_run_kept_and_marked_stale(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1), build_run(2)])
        tracker.observe([build_run(2)])
        entry = tracker.get(1)
        assert entry.stale
        assert entry.visible
        assert not tracker.get(2).stale

    def test_rerun_of_dismissed_run_is_watched_again(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1)])
        tracker.observe([completed(1)])
        tracker.dismiss(1)
        tracker.observe([build_run(1, status="queued")])
        assert tracker.state_of(1) is LifecycleState.WATCHED
        assert [r.id for r in tracker.visible_runs()] == [1]

    def test_rerun_of_unwatched_run_is_watched(self):
        tracker = LifecycleTracker()
        tracker.observe([completed(1)])
        tracker.observe([build_run(1)])
        tracker.observe([completed(1)])
        assert tracker.state_of(1) is LifecycleState.COMPLETED_PENDING

    def test_visible_sorted_most_recent_first(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1), build_run(3), build_run(2)])
        assert [r.id for r in tracker.visible_runs()] == [3, 2, 1]


class TestDismiss:
    def test_dismiss_completed_pending(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1)])
        tracker.observe([completed(1)])
        assert tracker.dismiss(1)
        assert tracker.state_of(1) is LifecycleState.DISMISSED
        assert tracker.visible_runs() == []

    def test_dismissed_stays_hidden_on_later_polls(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1)])
        tracker.observe([completed(1)])
        tracker.dismiss(1)
        tracker.observe([completed(1)])
        assert tracker.visible_runs() == []

    def test_cannot_dismiss_active_run(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1)])
        assert not tracker.dismiss(1)
        assert tracker.state_of(1) is LifecycleState.WATCHED

    def test_cannot_dismiss_unknown_run(self):
        assert not LifecycleTracker().dismiss(99)

    def test_stale_active_run_is_not_dismissable(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1)])
        tracker.observe([])
        assert not tracker.dismiss(1)
        assert tracker.state_of(1) is LifecycleState.WATCHED
        assert [r.id for r in tracker.visible_runs()] == [1]

    def test_stale_completed_pending_run_can_be_dismissed(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1)])
        tracker.observe([completed(1)])
        tracker.observe([])
        assert tracker.get(1).stale
        assert tracker.dismiss(1)
        assert tracker.visible_runs() == []

    def test_dismiss_all_removes_exactly_pending(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(1), build_run(2), build_run(3)])
        tracker.observe([completed(1), completed(2, "failure"), build_run(3)])
        assert sorted(tracker.dismiss_all()) == [1, 2]
        assert [r.id for r in tracker.visible_runs()] == [3]
        assert tracker.dismiss_all() == []


class TestResurrect:
    def test_cursor_is_oldest_displayed(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(5), build_run(7)])
        assert tracker.resurrect_cursor() == build_run(5).created_at

    def test_cursor_none_when_nothing_shown(self):
        assert LifecycleTracker().resurrect_cursor() is None

    def test_admits_newest_older_run(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(10), completed(4), completed(6)])
        run = tracker.resurrect([completed(4), completed(6), completed(8)])
        assert run.id == 8
        assert tracker.state_of(8) is LifecycleState.COMPLETED_PENDING
        assert tracker.get(8).resurrected
        assert tracker.resurrected_ids() == {8}
        assert [r.id for r in tracker.visible_runs()] == [10, 8]

    def test_repeated_resurrect_walks_backwards(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(10)])
        candidates = [completed(i) for i in (2, 4, 6)]
        picked = [tracker.resurrect(candidates).id for _ in range(3)]
        assert picked == [6, 4, 2]
        assert tracker.resurrect(candidates) is None
        assert tracker.resurrect_cursor() == build_run(2).created_at

    def test_no_candidate_leaves_cursor_unchanged(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(10)])
        before = tracker.resurrect_cursor()
        assert tracker.resurrect([completed(11), build_run(10)]) is None
        assert tracker.resurrect_cursor() == before

    def test_skips_visible_candidates(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(10), build_run(3)])
        assert tracker.resurrect([build_run(3)], cursor=BASE_TIME + timedelta(minutes=20)) is None

    def test_dismissed_run_can_be_resurrected(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(10), build_run(4)])
        tracker.observe([build_run(10), completed(4)])
        tracker.dismiss(4)
        assert tracker.resurrect([completed(4)]).id == 4
        assert tracker.get(4).visible

    def test_resurrected_rerun_becomes_watched(self):
        tracker = LifecycleTracker()
        tracker.observe([build_run(10)])
        tracker.resurrect([completed(4)])
        tracker.observe([build_run(10), build_run(4)])
        assert tracker.state_of(4) is LifecycleState.WATCHED
        assert not tracker.get(4).resurrected


class TestDescribeChanges:
    def test_new_status_completed_removed(self):
        before = [build_run(1, status="queued"), build_run(2)]
        after = [build_run(1, status="completed", conclusion="success"), build_run(3)]
        changes = describe_changes(before, after)
        assert "Status changed: api: CI #1 queued -> completed" in changes
        assert "Completed: api: CI #1 (success)" in changes
        assert "New workflow: api: CI #3 (in_progress)" in changes
        assert "Removed: api: CI #2" in changes

    def test_no_changes(self):
        runs = [build_run(1)]
        assert describe_changes(runs, runs) == []


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

status_strategy = st.sampled_from(["queued", "in_progress", "waiting", "completed"])
poll_strategy = st.lists(
    st.dictionaries(st.integers(min_value=1, max_value=8), status_strategy, max_size=8),
    min_size=1,
    max_size=12,
)
command_strategy = st.lists(
    st.one_of(
        st.tuples(st.just("poll"), st.integers(min_value=0, max_value=11)),
        st.tuples(st.just("dismiss"), st.integers(min_value=1, max_value=8)),
        st.tuples(st.just("dismiss_all"), st.just(0)),
        st.tuples(st.just("resurrect"), st.just(0)),
    ),
    max_size=30,
)


def _poll_runs(poll):
    return [
        build_run(run_id, status=status, conclusion="success" if status == "completed" else None)
        for run_id, status in poll.items()
    ]


@settings(max_examples=100, deadline=None)
@given(polls=poll_strategy, commands=command_strategy)
def test_visibility_invariant_holds(polls, commands):
    """Visible iff not completed or completed-pending, after any command sequence."""
    tracker = LifecycleTracker()
    cursors = []
    for name, arg in commands:
        if name == "poll":
            tracker.observe(_poll_runs(polls[arg % len(polls)]))
        elif name == "dismiss":
            if tracker.dismiss(arg):
                assert arg not in {r.id for r in tracker.visible_runs()}
        elif name == "dismiss_all":
            tracker.dismiss_all()
            assert not tracker.pending_ids()
        else:
            run = tracker.resurrect([build_run(i, status="completed", conclusion="success") for i in range(1, 9)])
            if run is not None:
                cursors.append(run.created_at)

        visible_ids = {r.id for r in tracker.visible_runs()}
        for run_id in range(1, 9):
            entry = tracker.get(run_id)
            if entry is None:
                continue
            expected = entry.run.status != "completed" or entry.state is LifecycleState.COMPLETED_PENDING
            assert (run_id in visible_ids) == expected

    # Each successful resurrect moved strictly further back in time
    assert all(a > b for a, b in zip(cursors, cursors[1:]))


@settings(max_examples=100, deadline=None)
@given(polls=poll_strategy)
def test_runs_first_seen_completed_never_shown(polls):
    tracker = LifecycleTracker()
    first_status = {}
    for poll in polls:
        for run_id, status in poll.items():
            first_status.setdefault(run_id, status)
        tracker.observe(_poll_runs(poll))
        for run_id, status in first_status.items():
            entry = tracker.get(run_id)
            if status == "completed" and entry.state is LifecycleState.UNWATCHED:
                assert not entry.visible
