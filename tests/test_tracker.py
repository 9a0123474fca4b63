from dev_diary.classifier import LineChange
from dev_diary.models import Category, TimeInterval
from dev_diary.tracker import ActivityTracker, IdleTimer


def test_silence_after_writing_demotes_once(tracker, clock, loop):
    tracker.on_focus_change(True)
    clock.now = 5_000
    tracker.on_text_edit("go", "A")
    loop.advance(11_000)
    clock.now = 20_000
    tracker.on_text_edit("go", "A")

    assert [(e.category, e.start, e.end) for e in tracker.get_entries()] == [
        (Category.THINKING, 0, 5_000),
        (Category.WRITING, 5_000, 16_000),
        (Category.THINKING, 16_000, 20_000),
    ]
    assert tracker.state.category is Category.WRITING


def test_no_demotion_before_timeout(tracker, clock, loop):
    tracker.on_focus_change(True)
    clock.now = 1_000
    tracker.on_text_edit("go", "A")
    loop.advance(10_999)
    assert tracker.state.category is Category.WRITING
    assert tracker.idle_timer_pending


def test_each_edit_rearms_a_single_timer(tracker, clock, loop):
    tracker.on_focus_change(True)
    for step in range(5):
        clock.now = 1_000 + step * 5_000
        tracker.on_text_edit("go", "A")
    assert len(loop.pending) == 1

    loop.advance(10_000)
    assert tracker.state.category is Category.WRITING
    loop.advance(1_000)
    assert tracker.state.category is Category.THINKING
    assert not tracker.idle_timer_pending


def test_unfocused_edits_do_not_arm_timer(tracker, clock, loop):
    tracker.on_text_edit("go", "A", [LineChange(1, "# x", "#")])
    assert loop.pending == []
    assert tracker.get_comment_line_count() == 0


def test_debug_session_round_trip(tracker, clock):
    tracker.on_focus_change(True)
    clock.now = 1_000
    tracker.on_text_edit("python", "svc")
    clock.now = 2_000
    tracker.on_debug_start()
    clock.now = 9_000
    tracker.on_debug_end()

    assert tracker.state.category is Category.THINKING
    assert tracker.get_entries()[-1] == TimeInterval(
        2_000, 9_000, Category.DEBUGGING, "svc", "python"
    )


def test_shutdown_flushes_and_cancels_timer(tracker, clock, loop):
    tracker.on_focus_change(True)
    clock.now = 1_000
    tracker.on_text_edit("go", "A")
    clock.now = 3_000
    tracker.shutdown()
    tracker.shutdown()

    assert tracker.get_entries()[-1] == TimeInterval(1_000, 3_000, Category.WRITING, "A", "go")
    assert len(tracker.get_entries()) == 2
    assert loop.pending == []


def test_stderr_uses_last_known_context(tracker, clock):
    tracker.on_focus_change(True)
    tracker.on_text_edit("rust", "engine")
    clock.now = 4_000
    error = tracker.on_debug_stderr("thread 'main' panicked")
    explicit = tracker.on_debug_stderr("boom", language="go", workspace="other")

    assert error.timestamp == 4_000
    assert (error.language, error.workspace) == ("rust", "engine")
    assert (explicit.language, explicit.workspace) == ("go", "other")
    assert tracker.get_errors() == [error, explicit]
    # errors never touch the interval log
    assert tracker.state.category is Category.WRITING


def test_commits_are_counted_and_persisted(tracker, store):
    tracker.on_git_commit()
    assert tracker.on_git_commit() == 2
    assert store.get_commit_count() == 2
    assert tracker.get_commit_count() == 2


def test_comment_lines_are_not_double_counted_across_sessions(store, clock, loop):
    for _ in range(2):
        tracker = ActivityTracker(store, clock=clock, scheduler=loop)
        tracker.on_focus_change(True)
        tracker.on_text_edit("python", "A", [LineChange(10, "# todo", "#")])
        tracker.on_text_edit("python", "A", [LineChange(10, "# todo later", "l")])
        tracker.shutdown()

    assert tracker.get_comment_line_count() == 1
    assert store.get_comment_line_count() == 1

    tracker = ActivityTracker(store, clock=clock, scheduler=loop)
    tracker.on_focus_change(True)
    tracker.on_text_edit("python", "A", [LineChange(12, "// more", "m")])
    assert tracker.get_comment_line_count() == 2
    assert store.get_comment_lines() == {10, 12}


def test_edits_after_shutdown_do_nothing(tracker, clock, loop):
    tracker.on_focus_change(True)
    clock.now = 1_000
    tracker.on_text_edit("go", "A")
    clock.now = 2_000
    tracker.shutdown()
    tracker.on_text_edit("go", "A", [LineChange(1, "# late", "#")])

    assert not tracker.idle_timer_pending
    assert tracker.get_comment_line_count() == 0
    assert len(tracker.get_entries()) == 2


def test_idle_timer_cancel_is_safe_when_idle(clock, loop):
    fired = []
    timer = IdleTimer(1.0, lambda: fired.append(clock.now))
    timer.cancel()
    timer.arm(loop)
    timer.arm(loop)
    loop.advance(1_000)

    assert fired == [1_000]
    assert not timer.pending
