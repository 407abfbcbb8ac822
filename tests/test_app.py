import json
import pathlib
import sys
from datetime import date

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import app as dashboard_app


@pytest.fixture(autouse=True)
def set_testing_flag():
    original = dashboard_app.app.config.get('TESTING')
    dashboard_app.app.config['TESTING'] = True
    try:
        yield
    finally:
        if original is None:
            dashboard_app.app.config.pop('TESTING', None)
        else:
            dashboard_app.app.config['TESTING'] = original


@pytest.fixture()
def settings_file(tmp_path, monkeypatch):
    path = tmp_path / 'settings.json'
    path.write_text(json.dumps({'timezone': 'Asia/Bangkok', 'label_locale': 'en'}), encoding='utf-8')
    monkeypatch.setattr(dashboard_app, 'SETTINGS_FILE', path)
    monkeypatch.setattr(dashboard_app, '_today', lambda tzinfo: date(2026, 10, 18))
    return path


@pytest.fixture()
def client(settings_file):
    return dashboard_app.app.test_client()


def test_list_metrics(client):
    response = client.get('/api/dashboard/metrics')
    assert response.status_code == 200
    ids = [metric['id'] for metric in response.get_json()['metrics']]
    assert ids == ['leads', 'demos', 'sales']


def test_series_endpoint_builds_daily_leads(client):
    response = client.post(
        '/api/dashboard/series',
        json={
            'metric': 'leads',
            'filters': {'timeRange': '1w', 'product': 'all'},
            'leads': [
                {'date': '18/10/2026', 'product': 'Dr.Ease'},
                {'date': '31/02/2024', 'product': 'Dr.Ease'},
            ],
        },
    )
    assert response.status_code == 200
    series = response.get_json()['series']
    assert series['granularity'] == 'day'
    assert len(series['buckets']) == 7
    assert series['totals']['counts'] == {'leads': 1, 'drease': 1}


def test_series_endpoint_uses_default_time_range_from_settings(client, settings_file):
    settings_file.write_text(json.dumps({'default_time_range': '6m'}), encoding='utf-8')
    response = client.post('/api/dashboard/series', json={'metric': 'leads'})
    assert response.status_code == 200
    series = response.get_json()['series']
    assert series['window']['spanDays'] == 180
    assert series['granularity'] == 'week'


def test_series_endpoint_rejects_unknown_metric(client):
    response = client.post('/api/dashboard/series', json={'metric': 'renewals'})
    assert response.status_code == 404


def test_series_endpoint_rejects_invalid_filter(client):
    response = client.post(
        '/api/dashboard/series', json={'metric': 'leads', 'filters': {'product': 'Dr.Smile'}}
    )
    assert response.status_code == 400
    assert 'Product' in response.get_json()['message']


def test_series_endpoint_rejects_half_custom_range(client):
    response = client.post(
        '/api/dashboard/series',
        json={'metric': 'leads', 'filters': {'timeRange': 'custom', 'customStart': '2026-01-01'}},
    )
    assert response.status_code == 400


def test_corrupt_settings_fall_back_to_defaults(client, settings_file):
    settings_file.write_text('{not json', encoding='utf-8')
    response = client.post('/api/dashboard/series', json={'metric': 'demos'})
    assert response.status_code == 200
    assert response.get_json()['series']['window']['spanDays'] == 7


def test_unknown_timezone_falls_back_to_utc(client, settings_file):
    settings_file.write_text(json.dumps({'timezone': 'Mars/Olympus'}), encoding='utf-8')
    settings = dashboard_app._dashboard_settings()
    assert settings['tzinfo'].zone == 'UTC'


def test_scorecards_endpoint(client):
    response = client.post(
        '/api/dashboard/scorecards',
        json={
            'leads': [{'date': '13/10/2026', 'customerName': 'Clinic A', 'product': 'Ease'}],
            'demos': [{'date': '07/10/2026', 'demoStatus': 'Demo แล้ว'}],
        },
    )
    assert response.status_code == 200
    scorecards = response.get_json()['scorecards']
    assert scorecards['leads']['current'] == 1
    assert scorecards['leads']['ease'] == 1
    assert scorecards['demos']['previous'] == 1


def test_series_endpoint_rejects_non_object_filters(client):
    response = client.post('/api/dashboard/series', json={'metric': 'leads', 'filters': ['1w']})
    assert response.status_code == 400
    assert 'Filters' in response.get_json()['message']
