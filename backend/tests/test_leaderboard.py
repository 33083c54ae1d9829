import threading

import pytest

import conftest
from scoregate import create_app, db
from scoregate.services.integrity import StorageError
from scoregate.services.integrity.leaderboard import InMemoryLeaderboardStore, SqlLeaderboardStore


@pytest.fixture(params=['memory', 'sql'])
def board(request, clock):
    if request.param == 'memory':
        yield InMemoryLeaderboardStore(clock=clock)
    else:
        request.getfixturevalue('sql_app')
        yield SqlLeaderboardStore(clock=clock)


def test_first_submission_is_new_high(board):
    result = board.upsert('alice', 0, device_id='phone')
    assert result.is_new_high_score is True
    assert result.record.highest_score == 0
    assert result.record.last_score == 0
    assert result.record.player_device_id == 'phone'


def test_highest_is_monotonic_and_last_tracks_latest(board, clock):
    first = board.upsert('alice', 50)
    clock.advance(10)
    second = board.upsert('alice', 30)
    assert first.is_new_high_score is True
    assert second.is_new_high_score is False
    record = board.get('alice')
    assert record.highest_score == 50
    assert record.last_score == 30
    assert record.updated_at == clock.now
    assert record.created_at == clock.now - 10


def test_equal_score_is_not_new_high(board):
    board.upsert('alice', 40)
    assert board.upsert('alice', 40).is_new_high_score is False


def test_higher_score_is_new_high(board):
    board.upsert('alice', 40)
    result = board.upsert('alice', 41)
    assert result.is_new_high_score is True
    assert board.get_highest('alice') == 41


def test_device_id_follows_latest_submission(board):
    board.upsert('alice', 10, device_id='phone')
    board.upsert('alice', 5, device_id='laptop')
    assert board.get('alice').player_device_id == 'laptop'


def test_get_highest_defaults_to_zero(board):
    assert board.get_highest('nobody') == 0
    assert board.get('nobody') is None


def test_top_n_orders_by_highest(board):
    board.upsert('alice', 10)
    board.upsert('bob', 30)
    board.upsert('cara', 20)
    assert [r.highest_score for r in board.top_n(2)] == [30, 20]
    assert [r.player_identity for r in board.top_n(10)] == ['bob', 'cara', 'alice']
    assert board.top_n(0) == []


def test_top_n_ties_go_to_earliest_update(board, clock):
    board.upsert('zed', 25)
    clock.advance(1)
    board.upsert('amy', 25)
    clock.advance(1)
    board.upsert('bob', 25)
    assert [r.player_identity for r in board.top_n(3)] == ['zed', 'amy', 'bob']


def test_top_n_tie_on_timestamp_falls_back_to_name(board):
    board.upsert('zed', 25)
    board.upsert('amy', 25)
    assert [r.player_identity for r in board.top_n(2)] == ['amy', 'zed']


def test_records_are_values(board):
    result = board.upsert('alice', 10)
    board.upsert('alice', 20)
    assert result.record.highest_score == 10


def test_concurrent_upserts_keep_maximum(clock):
    for _ in range(25):
        board = InMemoryLeaderboardStore(clock=clock)
        barrier = threading.Barrier(2)

        def worker(score):
            barrier.wait()
            board.upsert('alice', score)

        threads = [threading.Thread(target=worker, args=(s,)) for s in (40, 60)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        record = board.get('alice')
        assert record.highest_score == 60
        assert record.last_score in (40, 60)


def test_concurrent_upserts_exactly_one_first_high(clock):
    board = InMemoryLeaderboardStore(clock=clock)
    barrier = threading.Barrier(10)
    flags = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        result = board.upsert('alice', 7)
        with lock:
            flags.append(result.is_new_high_score)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert flags.count(True) == 1


@pytest.fixture()
def file_sql_app(tmp_path):
    class FileConfig(conftest.TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'leaderboard.db'}"

    application = create_app(FileConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_sql_concurrent_upserts_keep_maximum(file_sql_app, clock):
    board = SqlLeaderboardStore(clock=clock)
    barrier = threading.Barrier(2)
    errors = []

    def worker(score):
        barrier.wait()
        with file_sql_app.app_context():
            try:
                board.upsert('alice', score)
            except Exception as exc:
                errors.append(exc)

    threads = [threading.Thread(target=worker, args=(s,)) for s in (40, 60)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
    record = board.get('alice')
    assert record.highest_score == 60
    assert record.last_score in (40, 60)


class _RacedStore(SqlLeaderboardStore):
    """Misses the row on lookup while another worker commits the first insert."""

    def __init__(self, clock, misses=1):
        super().__init__(clock=clock)
        self.misses = misses
        self.rival = SqlLeaderboardStore(clock=clock)

    def _locked_entry(self, player_identity):
        if self.misses:
            self.misses -= 1
            if self.rival.get(player_identity) is None:
                self.rival.upsert(player_identity, 60, device_id='rival')
            return None
        return super()._locked_entry(player_identity)


def test_sql_lost_first_insert_is_retried_as_update(sql_app, clock):
    board = _RacedStore(clock)
    result = board.upsert('alice', 40, device_id='mine')
    assert result.is_new_high_score is False
    record = board.get('alice')
    assert record.highest_score == 60
    assert record.last_score == 40
    assert record.player_device_id == 'mine'


def test_sql_insert_conflict_twice_is_storage_error(sql_app, clock):
    board = _RacedStore(clock, misses=2)
    with pytest.raises(StorageError):
        board.upsert('alice', 40)
    assert board.get('alice').last_score == 60
