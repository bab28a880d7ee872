"""API tests against the in-process FastAPI app."""

import json

import pytest
from starlette.testclient import TestClient

from forecast_wizard.main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def validation_payload():
    return {
        'data': [
            {'item': 'A', 'ts': '2024-01-01', 'y': 1},
            {'item': 'A', 'ts': '2024-01-02', 'y': 2},
            {'item': 'A', 'ts': '2024-01-05', 'y': 3},
        ],
        'config': {
            'id_column': 'item',
            'timestamp_column': 'ts',
            'time_granularity': 'D',
            'prediction_length': 1,
        },
    }


CSV_CONTENT = (
    "Order Date, Store ,Sales ($)\n"
    "2024-01-01,North,10\n"
    "2024-01-02,North,\n"
    "2024-01-03,South,30\n"
).encode()


class TestHealth:

    def test_health_endpoint(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestValidateAnalyze:

    def test_success_shape(self, client, validation_payload):
        response = client.post("/api/validate/analyze", json=validation_payload)
        assert response.status_code == 200
        data = response.json()
        assert data['success'] is True
        assert data['totalSeries'] == 1
        assert data['category3Count'] == 1
        assert data['requiredLength'] == 2
        assert data['seriesAnalysis'][0]['criticalBreaksCount'] == 2

    @pytest.mark.parametrize("field,value", [('time_granularity', 'X'), ('prediction_length', 0)])
    def test_invalid_config_is_rejected(self, client, validation_payload, field, value):
        validation_payload['config'][field] = value
        response = client.post("/api/validate/analyze", json=validation_payload)
        assert response.status_code == 400
        data = response.json()
        assert 'error' in data
        assert 'seriesAnalysis' not in data

    def test_missing_config(self, client, validation_payload):
        response = client.post("/api/validate/analyze", json={'data': validation_payload['data']})
        assert response.status_code == 400
        assert response.json() == {'error': 'Missing data or configuration'}

    def test_unknown_date_column(self, client, validation_payload):
        validation_payload['config']['timestamp_column'] = 'when'
        response = client.post("/api/validate/analyze", json=validation_payload)
        assert response.status_code == 400
        assert "not found" in response.json()['error']


class TestWizardUpload:

    def test_upload_csv(self, client):
        response = client.post("/api/wizard/upload", files={'file': ('sales.csv', CSV_CONTENT, 'text/csv')})
        assert response.status_code == 200
        data = response.json()
        assert data['columns'] == ['Order_Date', 'Store', 'Sales']
        assert data['totalRows'] == 3
        assert data['preview'][1]['Sales'] is None
        assert data['profile']['columnAnalysis']['Order_Date']['type'] == 'date'

    def test_rejects_non_csv(self, client):
        response = client.post("/api/wizard/upload", files={'file': ('sales.xlsx', b'abc', 'application/octet-stream')})
        assert response.status_code == 400
        assert response.json()['error'] == "Only CSV files are supported"

    def test_rejects_empty_csv(self, client):
        response = client.post("/api/wizard/upload", files={'file': ('empty.csv', b'', 'text/csv')})
        assert response.status_code == 400


class TestWizardSteps:

    def test_profile(self, client):
        rows = [{'date': f'2024-01-{d:02d}', 'sales': d * 1.5} for d in range(1, 11)]
        response = client.post("/api/wizard/profile", json={'data': rows, 'userClassified': {'sales': 'text'}})
        assert response.status_code == 200
        data = response.json()
        assert data['userClassified'] == {'sales': 'text'}
        assert data['columnAnalysis']['sales']['effectiveType'] == 'text'

    def test_profile_without_rows(self, client):
        response = client.post("/api/wizard/profile", json={'data': []})
        assert response.status_code == 400

    def test_selection(self, client):
        rows = [{'date': f'2024-01-{d:02d}', 'store': 'A', 'sales': d} for d in range(1, 11)]
        response = client.post("/api/wizard/selection", json={
            'data': rows,
            'selection': {'target': 'sales', 'date': 'date', 'frequency': 'W', 'horizon': 2, 'grouping': ['store']},
        })
        data = response.json()
        assert data['valid'] is True
        assert data['dateGranularity'] == 'D'
        assert data['needsAggregation'] is True
        assert data['aggregationImpact']['hasDuplicates'] is False

    def test_process(self, client, daily_rows):
        response = client.post("/api/wizard/process", json={
            'data': daily_rows,
            'config': {
                'id_column': 'store',
                'timestamp_column': 'date',
                'time_granularity': 'D',
                'prediction_length': 1,
                'target_column': 'sales',
            },
            'choices': {'criticalBreaks': 'remove', 'nonCriticalBreaks': 'mark_missing'},
            'columnTypes': {'sales': 'numeric', 'is_missing': 'binary'},
        })
        assert response.status_code == 200
        data = response.json()
        assert {r['store'] for r in data['data']} == {'B'}
        assert data['summary']['removedSeries'] == ['A']
        assert data['summary']['synthesizedCount'] == 1
        assert [r['is_missing'] for r in data['data']][:2] == [0, 1]
        assert data['summary']['aggregationApplied'] is False

    def test_process_invalid_choice(self, client, daily_rows):
        response = client.post("/api/wizard/process", json={
            'data': daily_rows,
            'config': {'timestamp_column': 'date', 'time_granularity': 'D', 'prediction_length': 1},
            'choices': {'criticalBreaks': 'explode'},
        })
        assert response.status_code == 400


class TestExport:

    def test_csv_export(self, client):
        rows = [{'date': '2024-01-01', 'sales': 1.0}, {'date': '2024-01-02', 'sales': 2.0}]
        response = client.post("/api/wizard/export?format=csv", json={'data': rows, 'filename': 'out'})
        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/csv')
        assert 'filename=out.csv' in response.headers['content-disposition']
        assert response.text.splitlines()[0] == 'date,sales'

    def test_json_export(self, client):
        rows = [{'date': '2024-01-01', 'sales': 1.0}]
        response = client.post("/api/wizard/export?format=json", json={'data': rows})
        assert json.loads(response.content) == rows

    def test_unknown_format(self, client):
        response = client.post("/api/wizard/export?format=xml", json={'data': []})
        assert response.status_code == 400
