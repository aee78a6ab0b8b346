import pytest

from core.session import InvalidTransition, ScrapeSession, SessionState


def drive_to(session, *states):
    for state in states:
        session.transition(state)


class TestScrapeSession:
    """Test suite for ScrapeSession."""

    def test_initial_state(self):
        session = ScrapeSession("Acme Plumbing")
        assert session.state is SessionState.CREATED
        assert session.query == "Acme Plumbing"
        assert session.scraped_count == 0
        assert len(session.records) == 0
        assert not session.is_terminal

    def test_query_is_read_only(self):
        session = ScrapeSession("Acme Plumbing")
        with pytest.raises(AttributeError):
            session.query = "Other"

    def test_full_lifecycle(self):
        session = ScrapeSession("Acme Plumbing")
        drive_to(
            session,
            SessionState.SEARCHING,
            SessionState.COUNTING,
            SessionState.SCROLLING,
            SessionState.SCROLLING,
            SessionState.EXTRACTING,
            SessionState.SCROLLING,
            SessionState.EXTRACTING,
            SessionState.RESPONDING,
            SessionState.RELEASED,
        )
        assert session.is_terminal

    def test_zero_total_skips_scrolling(self):
        session = ScrapeSession("Acme Plumbing")
        drive_to(session, SessionState.SEARCHING, SessionState.COUNTING, SessionState.RESPONDING)
        assert session.state is SessionState.RESPONDING

    @pytest.mark.parametrize("path", [
        [SessionState.COUNTING],
        [SessionState.SEARCHING, SessionState.SCROLLING],
        [SessionState.SEARCHING, SessionState.COUNTING, SessionState.EXTRACTING],
        [SessionState.SEARCHING, SessionState.COUNTING, SessionState.RESPONDING, SessionState.SCROLLING],
    ])
    def test_invalid_transitions(self, path):
        session = ScrapeSession("Acme Plumbing")
        with pytest.raises(InvalidTransition):
            drive_to(session, *path)

    def test_no_transition_out_of_released(self):
        session = ScrapeSession("Acme Plumbing")
        drive_to(session, SessionState.SEARCHING, SessionState.COUNTING,
                 SessionState.RESPONDING, SessionState.RELEASED)
        with pytest.raises(InvalidTransition):
            session.transition(SessionState.SEARCHING)

    def test_fail_from_any_active_state(self):
        session = ScrapeSession("Acme Plumbing")
        drive_to(session, SessionState.SEARCHING, SessionState.COUNTING, SessionState.SCROLLING)
        error = RuntimeError("stalled")

        session.fail(error)

        assert session.state is SessionState.FAILED
        assert session.failure is error
        assert session.is_terminal

    def test_fail_after_release_is_ignored(self):
        session = ScrapeSession("Acme Plumbing")
        drive_to(session, SessionState.SEARCHING, SessionState.COUNTING,
                 SessionState.RESPONDING, SessionState.RELEASED)
        session.fail(RuntimeError("late"))
        assert session.state is SessionState.RELEASED
        assert session.failure is None

    def test_scraped_count_is_monotonic(self):
        session = ScrapeSession("Acme Plumbing")
        session.scraped_count = 10
        session.scraped_count = 7
        assert session.scraped_count == 10
        session.scraped_count = 12
        assert session.scraped_count == 12
