import pytest

from quizlobby.models import ResultEntry
from quizlobby.services.scoring import ScoreBoard, parse_answer


def entry(pid, deviation, name=None):
    return ResultEntry(player_id=pid, name=name or pid, answer=None, deviation=deviation)


@pytest.mark.parametrize('raw, expected', [
    ('42', 42.0),
    (' 3,5 ', 3.5),
    ('3.5', 3.5),
    ('-7', -7.0),
    ('1e3', 1000.0),
    (12, 12.0),
    (2.25, 2.25),
    ('', None),
    ('   ', None),
    ('zwölf', None),
    ('1,2,3', None),
    ('1.000,5', None),
    ('inf', None),
    ('nan', None),
    (float('nan'), None),
    (float('inf'), None),
    (10 ** 400, None),
    ('1' * 400, None),
    (True, None),
    (None, None),
])
def test_parse_answer(raw, expected):
    assert parse_answer(raw) == expected


def test_points_follow_deviation_rank_with_stable_ties():
    board = ScoreBoard()
    awards = board.record([entry('A', 1.0), entry('B', 1.0), entry('C', 3.0)])
    assert awards == {'A': 3, 'B': 2, 'C': 1}
    assert [board.get(p).points for p in 'ABC'] == [3, 2, 1]
    assert board.get('A').last_points_awarded == 3


def test_invalid_answers_participate_without_points():
    board = ScoreBoard()
    awards = board.record([entry('A', None), entry('B', 4.0), entry('C', 2.0)])
    # participant count includes the invalid answer
    assert awards == {'A': 0, 'B': 2, 'C': 3}

    a = board.get('A')
    assert a.rounds_participated == 1
    assert a.valid_answer_count == 0
    assert a.last_deviation is None
    assert a.average_deviation is None

    b = board.get('B')
    assert b.valid_answer_count == 1
    assert b.total_deviation == 4.0
    assert b.last_deviation == 4.0


def test_statistics_accumulate_across_rounds():
    board = ScoreBoard()
    board.record([entry('A', 2.0), entry('B', 6.0)])
    board.record([entry('A', 4.0), entry('B', None)])
    a, b = board.get('A'), board.get('B')
    assert a.rounds_participated == 2
    assert a.points == 2 + 2
    assert a.average_deviation == pytest.approx(3.0)
    assert b.points == 1
    assert b.last_points_awarded == 0
    assert b.last_deviation is None
    assert b.average_deviation == pytest.approx(6.0)


def test_highscore_orders_by_points_then_average_deviation():
    board = ScoreBoard()
    for pid in ('X', 'Y', 'Z'):
        board.register(pid, pid)
    x, y, z = board.get('X'), board.get('Y'), board.get('Z')
    x.points, x.valid_answer_count, x.total_deviation, x.rounds_participated = 10, 2, 4.0, 2
    y.points, y.valid_answer_count, y.total_deviation, y.rounds_participated = 10, 2, 10.0, 2
    z.points, z.valid_answer_count, z.total_deviation, z.rounds_participated = 10, 0, 0.0, 2

    ranking = board.build_highscore()
    assert [e.stats.player_id for e in ranking] == ['X', 'Y', 'Z']
    assert [e.rank for e in ranking] == [1, 2, 3]
    assert ranking[0].to_dict()['averageDeviation'] == 2.0
    assert ranking[2].to_dict()['averageDeviation'] is None


def test_highscore_points_beat_deviation():
    board = ScoreBoard()
    board.record([entry('A', 1.0), entry('B', 50.0)])
    board.record([entry('B', 0.0), entry('A', 0.5)])
    board.record([entry('B', 0.0), entry('A', 0.5)])
    ranking = [e.stats.player_id for e in board.build_highscore()]
    assert ranking == ['B', 'A']


def test_highscore_name_breaks_full_ties():
    board = ScoreBoard()
    board.record([entry('p1', None, name='Zoe'), entry('p2', None, name='Ärne'), entry('p3', None, name='bert')])
    names = [e.stats.name for e in board.build_highscore()]
    assert names == ['Ärne', 'bert', 'Zoe']


def test_highscore_skips_players_who_never_played():
    board = ScoreBoard()
    board.register('idle', 'Idle')
    board.record([entry('A', 1.0)])
    assert [e.stats.player_id for e in board.build_highscore()] == ['A']


def test_highscore_is_a_snapshot():
    board = ScoreBoard()
    board.record([entry('A', 1.0)])
    ranking = board.build_highscore()
    board.record([entry('A', 1.0)])
    assert ranking[0].stats.points == 1
