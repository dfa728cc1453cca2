from sqlmodel import select

from prep_tracker import models
from prep_tracker.models import CatalogStatus


def _task(**overrides):
    task = {'date': '2026-01-05', 'morning': 'Read Laxmikanth ch1', 'subject': 'Polity', 'hours': 3}
    task.update(overrides)
    return task


def test_seeded_snapshot(client, user_headers):
    r = client.get('/api/data', headers=user_headers)
    assert r.status_code == 200
    data = r.json()
    assert data['subjects'][0] == 'Polity'
    assert len(data['subjects']) == 8
    assert [t['number'] for t in data['tests']] == list(range(1, 16))
    assert data['tasks'] == []
    assert len(data['routines']['weekday']) == 8
    assert len(data['routines']['saturday']) == 6
    assert len(data['routines']['sunday']) == 5


def test_bulk_subject_sync_creates_and_deactivates_by_name(client, admin_headers, db):
    assert client.put('/api/data', json={'subjects': ['B', 'C']}, headers=admin_headers).status_code == 200
    r = client.put('/api/data', json={'subjects': ['A', 'B']}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {'message': 'Data updated successfully'}

    names = client.get('/api/data', headers=admin_headers).json()['subjects']
    assert sorted(names) == ['A', 'B']
    rows = {s.name: s for s in db.exec(select(models.Subject)).all()}
    assert rows['C'].status == CatalogStatus.inactive
    assert rows['A'].order == 0
    assert rows['B'].order == 0
    assert rows['Polity'].status == CatalogStatus.inactive


def test_bulk_subject_sync_reactivates_known_names(client, admin_headers):
    client.put('/api/data', json={'subjects': ['Economy']}, headers=admin_headers)
    client.put('/api/data', json={'subjects': ['History', 'Polity']}, headers=admin_headers)
    subjects = client.get('/api/subjects', headers=admin_headers).json()
    assert [s['name'] for s in subjects] == ['History', 'Polity']


def test_bulk_task_sync_updates_by_id_and_creates_otherwise(client, admin_headers):
    created = client.post('/api/tasks', json=_task(), headers=admin_headers).json()
    payload = {'tasks': [
        _task(id=created['id'], morning='Updated reading'),
        _task(id='client-temp-1', date='2026-01-06', subject='History'),
        _task(date='2026-01-07', subject='Economy'),
    ]}
    assert client.put('/api/data', json=payload, headers=admin_headers).status_code == 200
    tasks = client.get('/api/data', headers=admin_headers).json()['tasks']
    assert len(tasks) == 3
    assert tasks[0]['id'] == created['id']
    assert tasks[0]['morning'] == 'Updated reading'
    assert [t['date'] for t in tasks] == ['2026-01-05', '2026-01-06', '2026-01-07']


def test_bulk_test_and_routine_sync(client, admin_headers):
    tests = client.get('/api/tests', headers=admin_headers).json()
    first = tests[0]
    payload = {
        'tests': [
            {**{k: first[k] for k in ('number', 'date', 'type', 'mcqs', 'focus')}, 'target': 45, 'id': first['id']},
            {'number': 16, 'date': '2026-03-21', 'type': 'Final Mock', 'mcqs': 200, 'focus': 'Revision', 'target': 175},
        ],
        'routines': {'sunday': [{'time': '08:00 - 10:00', 'activity': 'Mock', 'details': '', 'duration': '2 hrs'}]},
    }
    assert client.put('/api/data', json=payload, headers=admin_headers).status_code == 200
    data = client.get('/api/data', headers=admin_headers).json()
    assert len(data['tests']) == 16
    assert data['tests'][0]['target'] == 45
    assert data['routines']['sunday'][0]['activity'] == 'Mock'
    assert len(data['routines']['weekday']) == 8


def test_soft_deleted_items_disappear_but_remain_stored(client, admin_headers, db):
    subject = client.post('/api/subjects', json={'name': 'Ethics'}, headers=admin_headers).json()
    task = client.post('/api/tasks', json=_task(), headers=admin_headers).json()
    test_id = client.get('/api/tests', headers=admin_headers).json()[0]['id']

    assert client.delete(f"/api/subjects/{subject['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/tasks/{task['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/admin/tests/{test_id}", headers=admin_headers).status_code == 200

    assert 'Ethics' not in [s['name'] for s in client.get('/api/subjects', headers=admin_headers).json()]
    assert client.get('/api/tasks', headers=admin_headers).json() == []
    assert test_id not in [t['id'] for t in client.get('/api/tests', headers=admin_headers).json()]

    assert db.get(models.Subject, int(subject['id'])).status == CatalogStatus.inactive
    assert db.get(models.Task, int(task['id'])).status == CatalogStatus.inactive
    assert db.get(models.MockTest, int(test_id)).status == CatalogStatus.inactive


def test_subject_create_update_and_duplicate(client, admin_headers):
    r = client.post('/api/subjects', json={'name': 'Ethics', 'color': '#000000'}, headers=admin_headers)
    assert r.status_code == 201
    subject = r.json()
    assert subject['order'] == 8
    assert subject['icon'] == '📚'
    dup = client.post('/api/subjects', json={'name': 'Ethics'}, headers=admin_headers)
    assert dup.status_code == 400
    assert dup.json() == {'message': 'Subject already exists'}

    upd = client.put(f"/api/subjects/{subject['id']}", json={'description': 'GS IV'}, headers=admin_headers)
    assert upd.json()['description'] == 'GS IV'
    assert upd.json()['color'] == '#000000'


def test_any_user_manages_tasks(client, user_headers):
    r = client.post('/api/tasks', json=_task(), headers=user_headers)
    assert r.status_code == 201
    task = r.json()
    assert task['evening'] == '' and task['test'] == '-'
    assert task['createdBy'] is not None

    upd = client.put(f"/api/tasks/{task['id']}", json={'evening': 'MCQs'}, headers=user_headers)
    assert upd.status_code == 200
    assert upd.json()['evening'] == 'MCQs'
    assert upd.json()['morning'] == task['morning']


def test_task_filters_by_month_and_subject(client, user_headers):
    client.post('/api/tasks', json=_task(date='2026-01-05'), headers=user_headers)
    client.post('/api/tasks', json=_task(date='2026-02-05', subject='History'), headers=user_headers)
    client.post('/api/tasks', json=_task(date='2026-02-09'), headers=user_headers)
    feb = client.get('/api/tasks', params={'month': '2'}, headers=user_headers).json()
    assert [t['date'] for t in feb] == ['2026-02-05', '2026-02-09']
    feb_polity = client.get('/api/tasks', params={'month': '02', 'subject': 'Polity'}, headers=user_headers).json()
    assert [t['date'] for t in feb_polity] == ['2026-02-09']


def test_update_missing_ids_return_null(client, admin_headers):
    assert client.put('/api/tasks/9999', json={'evening': 'x'}, headers=admin_headers).json() is None
    assert client.put('/api/tests/9999', json={'target': 1}, headers=admin_headers).json() is None
    assert client.put('/api/subjects/9999', json={'color': '#fff'}, headers=admin_headers).json() is None
    assert client.delete('/api/tasks/9999', headers=admin_headers).status_code == 200


def test_create_test_validates_type(client, admin_headers):
    bad = {'number': 20, 'date': '2026-04-01', 'type': 'Quiz', 'mcqs': 10, 'focus': 'x', 'target': 5}
    r = client.post('/api/tests', json=bad, headers=admin_headers)
    assert r.status_code == 400
    assert 'type' in r.json()['message']
    ok = client.post('/api/tests', json={**bad, 'type': 'Full'}, headers=admin_headers)
    assert ok.status_code == 201
    assert ok.json()['type'] == 'Full'


def test_routine_upsert_and_invalid_type(client, admin_headers):
    schedule = {'schedule': [{'time': '06:00 - 07:00', 'activity': 'Yoga', 'details': 'stretch', 'duration': '1 hr'}]}
    r = client.put('/api/routines/saturday', json=schedule, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()['type'] == 'saturday'
    routines = client.get('/api/routines', headers=admin_headers).json()
    assert routines['saturday'] == schedule['schedule']
    assert set(routines) == {'weekday', 'saturday', 'sunday'}

    bad = client.put('/api/routines/holiday', json=schedule, headers=admin_headers)
    assert bad.status_code == 400
    assert bad.json() == {'message': 'Invalid routine type'}


def test_admin_toggle(client, admin_headers, register_user):
    headers = register_user(email='promote@example.com')
    me = client.get('/api/auth/me', headers=headers).json()
    r = client.put(f"/api/admin/users/{me['id']}/admin", headers=admin_headers)
    assert r.json() == {'message': 'Admin status updated', 'isAdmin': True}
    assert client.get('/api/auth/me', headers=headers).json()['isAdmin'] is True
    assert client.put('/api/admin/users/9999/admin', headers=admin_headers).status_code == 404


def test_non_admin_gets_403_on_admin_routes(client, user_headers, admin_headers):
    task_id = client.post('/api/tasks', json=_task(), headers=user_headers).json()['id']
    calls = [
        ('put', '/api/data', {'subjects': ['X']}),
        ('get', '/api/admin/users', None),
        ('put', '/api/admin/users/1/admin', None),
        ('delete', f'/api/admin/tasks/{task_id}', None),
        ('delete', '/api/admin/tests/1', None),
        ('post', '/api/subjects', {'name': 'X'}),
        ('put', '/api/subjects/1', {'color': '#fff'}),
        ('delete', '/api/subjects/1', None),
        ('post', '/api/tests', {'number': 1, 'date': 'd', 'mcqs': 1, 'focus': 'f', 'target': 1}),
        ('put', '/api/tests/1', {'target': 1}),
        ('put', '/api/routines/weekday', {'schedule': []}),
    ]
    for method, url, body in calls:
        kwargs = {'headers': user_headers}
        if body is not None:
            kwargs['json'] = body
        r = client.request(method.upper(), url, **kwargs)
        assert r.status_code == 403, (method, url)
        assert r.json() == {'message': 'Admin access required'}

    r = client.delete(f'/api/admin/tasks/{task_id}', headers=admin_headers)
    assert r.status_code == 200


def test_out_of_range_and_non_ascii_ids_are_treated_as_missing(client, admin_headers):
    huge = '99999999999999999999'
    assert client.delete(f'/api/tasks/{huge}', headers=admin_headers).status_code == 200
    assert client.put(f'/api/tasks/{huge}', json={'evening': 'x'}, headers=admin_headers).json() is None
    assert client.put(f'/api/tests/{huge}', json={'target': 1}, headers=admin_headers).json() is None

    payload = {'tasks': [_task(id='²'), _task(id=huge, date='2026-01-06')]}
    assert client.put('/api/data', json=payload, headers=admin_headers).status_code == 200
    tasks = client.get('/api/data', headers=admin_headers).json()['tasks']
    assert [t['date'] for t in tasks] == ['2026-01-05', '2026-01-06']


def test_bulk_sync_applies_partial_updates(client, admin_headers):
    created = client.post('/api/tasks', json=_task(), headers=admin_headers).json()
    first_test = client.get('/api/tests', headers=admin_headers).json()[0]
    payload = {
        'tasks': [{'id': created['id'], 'hours': 5}],
        'tests': [{'id': first_test['id'], 'target': 60}],
    }
    assert client.put('/api/data', json=payload, headers=admin_headers).status_code == 200

    data = client.get('/api/data', headers=admin_headers).json()
    task = data['tasks'][0]
    assert task['hours'] == 5
    assert task['morning'] == 'Read Laxmikanth ch1'
    assert task['subject'] == 'Polity'
    test = data['tests'][0]
    assert test['target'] == 60
    assert test['focus'] == first_test['focus']
    assert test['mcqs'] == first_test['mcqs']


def test_bulk_sync_create_without_required_fields_is_400(client, admin_headers):
    r = client.put('/api/data', json={'tasks': [{'id': 'client-temp', 'hours': 2}]}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {'message': 'Task is missing required fields: date, morning, subject'}
    r = client.put('/api/data', json={'tests': [{'number': 30}]}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {'message': 'Test is missing required fields: date, mcqs, focus, target'}
    assert client.get('/api/data', headers=admin_headers).json()['tasks'] == []
