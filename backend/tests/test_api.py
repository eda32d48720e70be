from buzzboard.services.games import get_store


def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json()['status'] == 'ok'


def test_create_game(client):
    res = client.post('/api/games', json={'name': 'Friday Trivia'})
    assert res.status_code == 201
    game = res.get_json()
    assert game['name'] == 'Friday Trivia'
    assert len(game['accessCode']) == 6
    assert game['phase'] == 'lobby'
    assert game['currentQuestion'] is None
    assert game['buzzerQueue'] == []
    assert game['settings']['allowNegative'] is True
    # Persisted immediately
    assert get_store().get_game(game['id'])['accessCode'] == game['accessCode']


def test_list_and_get_game(client):
    a = client.post('/api/games', json={'name': 'A'}).get_json()
    b = client.post('/api/games', json={'name': 'B'}).get_json()
    listed = client.get('/api/games').get_json()
    assert {g['id'] for g in listed} == {a['id'], b['id']}
    assert client.get(f"/api/games/{a['id']}").get_json()['name'] == 'A'
    assert client.get('/api/games/does-not-exist').status_code == 404


def test_join_by_access_code(client):
    game = client.post('/api/games', json={}).get_json()
    res = client.get(f"/api/games/join?code={game['accessCode'].lower()}")
    assert res.status_code == 200
    assert res.get_json() == {'gameId': game['id']}


def test_join_by_unknown_or_missing_code(client):
    assert client.get('/api/games/join').status_code == 400
    res = client.get('/api/games/join?code=ZZZZZZ')
    assert res.status_code == 404
    assert res.get_json()['error'] == 'Game not found'


def test_join_finished_game(client):
    game = client.post('/api/games', json={}).get_json()
    assert client.post(f"/api/games/{game['id']}/end").get_json()['phase'] == 'finished'
    res = client.get(f"/api/games/join?code={game['accessCode']}")
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Game has ended'


def test_update_board_and_settings(client, board_payload):
    game = client.post('/api/games', json={}).get_json()
    res = client.put(f"/api/games/{game['id']}", json={
        'name': 'Renamed',
        'categories': board_payload,
        'settings': {'allowNegative': False},
    })
    assert res.status_code == 200
    updated = res.get_json()
    assert updated['name'] == 'Renamed'
    assert updated['settings']['allowNegative'] is False
    assert [q['points'] for q in updated['categories'][0]['questions']] == [100, 200, 300, 400, 500]
    assert all(q['answered'] is False for q in updated['categories'][0]['questions'])


def test_update_rejects_bad_payload(client):
    game = client.post('/api/games', json={}).get_json()
    res = client.put(f"/api/games/{game['id']}", json={'categories': [
        {'name': 'Media', 'questions': [
            {'question': 'q', 'answer': 'a', 'points': 100, 'media': {'type': 'pdf', 'url': '/x.pdf'}},
        ]},
    ]})
    assert res.status_code == 400


def test_categories_capped_at_six(client):
    game = client.post('/api/games', json={}).get_json()
    for i in range(6):
        res = client.post(f"/api/games/{game['id']}/categories", json={'name': f'C{i}'})
        assert res.status_code == 201
        assert [q['points'] for q in res.get_json()['questions']] == [100, 200, 300, 400, 500]
    res = client.post(f"/api/games/{game['id']}/categories", json={})
    assert res.status_code == 400
    state = client.get(f"/api/games/{game['id']}").get_json()
    assert [c['name'] for c in state['categories']] == [f'C{i}' for i in range(6)]


def test_delete_category(client):
    game = client.post('/api/games', json={}).get_json()
    category = client.post(f"/api/games/{game['id']}/categories", json={}).get_json()
    res = client.delete(f"/api/games/{game['id']}/categories/{category['id']}")
    assert res.status_code == 200
    assert res.get_json()['categories'] == []
    assert client.delete(f"/api/games/{game['id']}/categories/{category['id']}").status_code == 404


def test_start_twice_is_rejected(client):
    game = client.post('/api/games', json={}).get_json()
    assert client.post(f"/api/games/{game['id']}/start").get_json()['phase'] == 'playing'
    assert client.post(f"/api/games/{game['id']}/start").status_code == 400


def test_delete_game(client):
    game = client.post('/api/games', json={}).get_json()
    assert client.delete(f"/api/games/{game['id']}").get_json() == {'success': True}
    assert client.get(f"/api/games/{game['id']}").status_code == 404
    assert get_store().get_game(game['id']) is None


def test_template_crud(client, board_payload):
    res = client.post('/api/templates', json={'name': 'Science Night', 'categories': board_payload})
    assert res.status_code == 201
    template = res.get_json()
    assert 'answered' not in template['categories'][0]['questions'][0]

    listed = client.get('/api/templates').get_json()
    assert [t['id'] for t in listed] == [template['id']]

    res = client.put(f"/api/templates/{template['id']}", json={'name': 'Renamed'})
    assert res.get_json()['name'] == 'Renamed'
    assert res.get_json()['createdAt'] == template['createdAt']
    assert len(res.get_json()['categories']) == 1

    assert client.delete(f"/api/templates/{template['id']}").status_code == 200
    assert client.get(f"/api/templates/{template['id']}").status_code == 404
    assert client.delete(f"/api/templates/{template['id']}").status_code == 404


def test_create_game_from_template(client, board_payload):
    template = client.post('/api/templates', json={'name': 'T', 'categories': board_payload}).get_json()
    game = client.post('/api/games', json={'name': 'From T', 'templateId': template['id']}).get_json()

    t_cat = template['categories'][0]
    g_cat = game['categories'][0]
    assert g_cat['id'] != t_cat['id']
    assert g_cat['name'] == t_cat['name']
    t_ids = {q['id'] for q in t_cat['questions']}
    g_ids = {q['id'] for q in g_cat['questions']}
    assert not (t_ids & g_ids)
    assert len(g_ids) == len(g_cat['questions'])
    for tq, gq in zip(t_cat['questions'], g_cat['questions']):
        assert gq['answered'] is False
        assert (gq['question'], gq['answer'], gq['points']) == (tq['question'], tq['answer'], tq['points'])

    # Editing the template later does not touch the game
    client.put(f"/api/templates/{template['id']}", json={'categories': []})
    assert len(client.get(f"/api/games/{game['id']}").get_json()['categories']) == 1


def test_create_game_from_unknown_template(client):
    res = client.post('/api/games', json={'templateId': 'missing'})
    assert res.status_code == 404
    assert res.get_json()['error'] == 'Template not found'


def test_score_adjust_and_remove_player(client, science_game, make_sio):
    player_sock = make_sio()
    player_sock.emit('join-game', {'gameId': science_game['id'], 'playerName': 'Ann'}, namespace='/ws')
    player_id = next(p['args'][0] for p in player_sock.get_received('/ws') if p['name'] == 'player-id')

    res = client.post(f"/api/games/{science_game['id']}/players/{player_id}/score", json={'adjustment': 250})
    assert res.get_json()['players'][0]['score'] == 250
    assert client.post(f"/api/games/{science_game['id']}/players/{player_id}/score",
                       json={'adjustment': 'lots'}).status_code == 400

    res = client.delete(f"/api/games/{science_game['id']}/players/{player_id}")
    assert res.get_json()['players'] == []
    assert client.delete(f"/api/games/{science_game['id']}/players/{player_id}").status_code == 404


def test_update_rejects_category_missing_a_tier(client, board_payload):
    game = client.post('/api/games', json={}).get_json()
    board_payload[0]['questions'].pop()
    res = client.put(f"/api/games/{game['id']}", json={'categories': board_payload})
    assert res.status_code == 400
    assert 'tier' in res.get_json()['error']
    assert client.get(f"/api/games/{game['id']}").get_json()['categories'] == []


def test_template_rejects_category_off_the_tiers(client, board_payload):
    board_payload[0]['questions'][0]['points'] = 50
    res = client.post('/api/templates', json={'name': 'Odd', 'categories': board_payload})
    assert res.status_code == 400
    assert client.get('/api/templates').get_json() == []
