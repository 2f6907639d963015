import json

from models import ADMIN_TAB_NAME


def create_hierarchy(client):
    tab = client.post('/api/navigation-tabs', json={'name': 'Grade 1', 'order': 1}).get_json()
    dropdown = client.post('/api/dropdown-items', json={'tabId': tab['id'], 'name': 'Math'}).get_json()
    config = client.post('/api/table-configs', json={
        'tabId': tab['id'], 'dropdownId': dropdown['id'], 'tableName': 'unit-a'
    }).get_json()
    return tab, dropdown, config


def admin_id(client):
    tabs = client.get('/api/navigation-tabs').get_json()
    return next(tab['id'] for tab in tabs if tab['name'] == ADMIN_TAB_NAME)


def test_create_tab(client):
    """Test tab creation returns the new tab"""
    response = client.post('/api/navigation-tabs', json={'name': 'Grade 1', 'order': 1})
    assert response.status_code == 201
    data = response.get_json()
    assert data['name'] == 'Grade 1'
    assert data['displayName'] == 'Grade 1'
    assert data['isActive'] is True


def test_active_tabs_listing(client):
    client.post('/api/navigation-tabs', json={'name': 'Grade 2', 'order': 2})
    client.post('/api/navigation-tabs', json={'name': 'Grade 1', 'order': 1})

    response = client.get('/api/navigation-tabs/active')
    assert response.status_code == 200
    assert [tab['name'] for tab in response.get_json()] == ['Grade 1', 'Grade 2', ADMIN_TAB_NAME]
    assert 'no-cache' in response.headers['Cache-Control']


def test_validation_errors_map_to_400(client):
    response = client.post('/api/navigation-tabs', json={'name': 'Grade 1', 'order': 150})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'validation'
    assert 'reserved' in response.get_json()['message']

    response = client.post('/api/navigation-tabs', json={'order': 1})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Missing required field: name'

    response = client.post('/api/navigation-tabs', data='not json', content_type='text/plain')
    assert response.status_code == 400


def test_admin_tab_is_protected(client):
    tab_id = admin_id(client)

    response = client.patch(f'/api/navigation-tabs/{tab_id}', json={'displayName': 'Settings'})
    assert response.status_code == 403
    assert response.get_json()['error'] == 'protected_entity'

    response = client.delete(f'/api/navigation-tabs/{tab_id}')
    assert response.status_code == 403


def test_not_found_errors_map_to_404(client):
    assert client.get('/api/navigation-tabs/9999').status_code == 404
    assert client.patch('/api/dropdown-items/9999', json={'name': 'x'}).status_code == 404
    assert client.delete('/api/table-configs/9999').status_code == 404
    assert client.delete('/api/curriculum/9999').status_code == 404

    response = client.get('/api/no-such-endpoint')
    assert response.status_code == 404
    assert 'message' in response.get_json()


def test_table_config_creation_seeds_row(client):
    tab, dropdown, config = create_hierarchy(client)
    assert config['tableName'] == 'unit-a'

    response = client.get('/api/curriculum/Grade%201/Math?tableName=unit-a')
    rows = response.get_json()
    assert len(rows) == 1
    assert rows[0]['objectives'] == ''
    assert response.headers['Pragma'] == 'no-cache'


def test_delete_tab_cascade(client):
    tab, dropdown, config = create_hierarchy(client)

    response = client.delete(f"/api/navigation-tabs/{tab['id']}")
    assert response.status_code == 200
    assert response.get_json() == {'rowsDeleted': 1, 'tableConfigsDeleted': 1, 'dropdownItemsDeleted': 1}
    assert client.get(f"/api/dropdown-items/tab/{tab['id']}").get_json() == []
    assert client.get('/api/table-configs').get_json() == []
    assert client.get('/api/curriculum/Grade%201/Math').get_json() == []


def test_delete_dropdown_item_reports_counts(client):
    tab, dropdown, config = create_hierarchy(client)
    client.post('/api/table-configs', json={
        'tabId': tab['id'], 'dropdownId': dropdown['id'], 'tableName': 'unit-b'
    })

    response = client.delete(f"/api/dropdown-items/{dropdown['id']}")
    assert response.status_code == 200
    assert response.get_json() == {'rowsDeleted': 2, 'tableConfigsDeleted': 2, 'dropdownItemsDeleted': 1}
    assert client.get(f"/api/navigation-tabs/{tab['id']}").status_code == 200
    assert client.delete(f"/api/dropdown-items/{dropdown['id']}").status_code == 404


def test_update_and_delete_table_config(client):
    tab, dropdown, config = create_hierarchy(client)

    response = client.patch(f"/api/table-configs/{config['id']}", json={'tableName': 'unit-b'})
    assert response.status_code == 200
    assert response.get_json()['tableName'] == 'unit-b'
    assert len(client.get('/api/curriculum/Grade%201/Math?tableName=unit-b').get_json()) == 1

    listed = client.get(f"/api/table-configs/dropdown/{dropdown['id']}").get_json()
    assert [c['id'] for c in listed] == [config['id']]

    assert client.delete(f"/api/table-configs/{config['id']}").status_code == 204
    assert client.get('/api/curriculum/Grade%201/Math').get_json() == []


def test_curriculum_row_crud(client):
    response = client.post('/api/curriculum', json={
        'grade': 'KG', 'subject': 'Reading', 'objectives': 'Letters', 'standards': ['RF.K.1']
    })
    assert response.status_code == 201
    row = response.get_json()
    assert row['standards'] == ['RF.K.1']

    response = client.patch(f"/api/curriculum/{row['id']}", json={'biblical': 'Genesis 1'})
    assert response.get_json()['biblical'] == 'Genesis 1'
    assert response.get_json()['objectives'] == 'Letters'

    response = client.patch(f"/api/curriculum/{row['id']}", json={'standards': 'RF.K.1'})
    assert response.status_code == 400

    assert client.get('/api/grades').get_json() == ['KG']
    assert client.get('/api/subjects/KG').get_json() == ['Reading']
    assert [r['id'] for r in client.get('/api/search?q=letters').get_json()] == [row['id']]
    assert client.get('/api/search').status_code == 400

    assert client.delete(f"/api/curriculum/{row['id']}").status_code == 204
    assert client.get('/api/curriculum/all').get_json() == []


def test_standards_endpoints(client):
    response = client.post('/api/standards', json={
        'code': 'SL.K.1', 'description': 'Conversations', 'category': 'Speaking and Listening'
    })
    assert response.status_code == 201
    assert client.post('/api/standards', json={'code': 'SL.K.1', 'category': 'Other'}).status_code == 400

    assert client.get('/api/standards/categories').get_json() == ['Speaking and Listening']
    listed = client.get('/api/standards/category/Speaking%20and%20Listening').get_json()
    assert [s['code'] for s in listed] == ['SL.K.1']
    assert client.get('/api/stats').get_json()['totalStandards'] == 1


def test_school_year_endpoints(client):
    assert client.get('/api/school-year').status_code == 200

    response = client.patch('/api/school-year', json={'year': '2027-2028'})
    assert response.get_json()['year'] == '2027-2028'
    assert client.patch('/api/school-year', json={}).status_code == 400


def test_export_and_import_round_trip(client):
    create_hierarchy(client)

    response = client.get('/api/export/full-database')
    assert response.status_code == 200
    assert response.headers['Content-Disposition'].startswith('attachment; filename=full-curriculum-database-')
    exported = json.loads(response.data)
    assert exported['metadata']['totalCurriculumEntries'] == 1

    client.post('/api/curriculum', json={'grade': 'Grade 5', 'subject': 'History'})

    response = client.post('/api/import/full-database', json=exported)
    assert response.status_code == 200
    body = response.get_json()
    assert body['message'] == 'Database imported successfully'
    assert body['summary']['curriculumRows'] == 1
    assert body['summary']['grades'] == 1
    assert client.get('/api/grades').get_json() == ['Grade 1']


def test_import_rejects_invalid_snapshot(client):
    create_hierarchy(client)
    response = client.post('/api/import/full-database', json={
        'curriculumRows': [], 'standards': [], 'metadata': {'totalCurriculumEntries': 2, 'totalStandards': 0}
    })
    assert response.status_code == 400
    assert 'totalCurriculumEntries' in response.get_json()['message']
    assert len(client.get('/api/curriculum/all').get_json()) == 1


def test_cleanup_orphaned_data(client):
    client.post('/api/curriculum', json={'grade': 'KG', 'subject': 'Math', 'tableName': 'gone'})
    client.post('/api/curriculum', json={'grade': 'KG', 'subject': 'Math'})

    response = client.post('/api/cleanup-orphaned-data')
    assert response.get_json() == {'message': 'Cleanup completed successfully', 'deletedCount': 1}
    assert client.post('/api/cleanup-orphaned-data').get_json()['deletedCount'] == 0
