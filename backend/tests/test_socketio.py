from conftest import make_trace


def _ensure_connected(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')


def test_socket_connect_and_join(sio_client):
    _ensure_connected(sio_client)

    # Flush any initial events
    try:
        sio_client.get_received('/ws')
    except Exception:
        pass

    sio_client.emit('join_leaderboard', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] in ('connected', 'joined') for pkt in received)


def test_ping_pong(sio_client):
    _ensure_connected(sio_client)
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'pong' and pkt['args'][0] == {'n': 1} for pkt in received)


def test_accepted_submission_broadcasts_update(sio_client, client):
    _ensure_connected(sio_client)
    sio_client.emit('join_leaderboard', {}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    session = client.post('/api/game/start', json={'playerIdentity': 'Alice'}).get_json()
    res = client.post('/api/game/submit', json={
        'token': session['token'],
        'playerIdentity': 'Alice',
        'playerDeviceId': 'device-1',
        'score': 10,
        'trace': make_trace(session['seed']),
    })
    assert res.status_code == 200

    updates = [e for e in sio_client.get_received('/ws') if e['name'] == 'leaderboard_update']
    assert len(updates) == 1
    assert updates[0]['args'][0] == {
        'playerIdentity': 'Alice',
        'highestScore': 10,
        'lastScore': 10,
        'isNewHighScore': True,
    }


def test_rejected_submission_is_silent(sio_client, client):
    _ensure_connected(sio_client)
    sio_client.emit('join_leaderboard', {}, namespace='/ws')
    sio_client.get_received('/ws')

    session = client.post('/api/game/start', json={'playerIdentity': 'Alice'}).get_json()
    res = client.post('/api/game/submit', json={
        'token': session['token'],
        'playerIdentity': 'Alice',
        'playerDeviceId': 'device-1',
        'score': 10,
        'trace': make_trace(session['seed'], elapsed=1000),
    })
    assert res.status_code == 400
    assert not [e for e in sio_client.get_received('/ws') if e['name'] == 'leaderboard_update']


def test_leave_leaderboard_stops_updates(sio_client, client):
    _ensure_connected(sio_client)
    sio_client.emit('join_leaderboard', {}, namespace='/ws')
    sio_client.emit('leave_leaderboard', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'left' for pkt in received)

    session = client.post('/api/game/start', json={'playerIdentity': 'Bob'}).get_json()
    client.post('/api/game/submit', json={
        'token': session['token'],
        'playerIdentity': 'Bob',
        'playerDeviceId': 'device-2',
        'score': 10,
        'trace': make_trace(session['seed']),
    })
    assert not [e for e in sio_client.get_received('/ws') if e['name'] == 'leaderboard_update']
