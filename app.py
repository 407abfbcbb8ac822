import json
import os
import socket
import sys
from datetime import date, datetime
from typing import Any, Dict

import pytz
from dotenv import load_dotenv
from flask import Flask, jsonify, request

# Load environment variables from .env file
load_dotenv()

from data_paths import ensure_data_root
from services.buckets import LABEL_LOCALES
from services.categories import DashboardFilters
from services.dashboard import DashboardDataset, get_dashboard_engine
from services.scorecards import build_scorecards
from services.windows import TIME_RANGE_CHOICES

# --- App Initialization ---
app = Flask(__name__)
app.json.sort_keys = False

DATA_DIR = ensure_data_root()
SETTINGS_FILE = DATA_DIR / 'settings.json'

DEFAULT_SETTINGS = {
    "timezone": "UTC",
    "label_locale": "en",
    "default_time_range": "1w",
}


def read_json_file(file_path):
    if not os.path.exists(file_path) or os.path.getsize(file_path) == 0:
        return {}
    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError:
            app.logger.error(f"JSONDecodeError for {file_path}")
            return {}


def write_json_file(file_path, data):
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=4, ensure_ascii=False)


def _load_settings_dict() -> Dict[str, Any]:
    settings_blob = read_json_file(SETTINGS_FILE)
    return settings_blob if isinstance(settings_blob, dict) else {}


def _dashboard_settings() -> Dict[str, Any]:
    """Merge stored settings over the defaults, dropping unusable values."""
    settings = {**DEFAULT_SETTINGS, **_load_settings_dict()}

    timezone_name = str(settings.get('timezone') or 'UTC')
    try:
        settings['tzinfo'] = pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        app.logger.warning("Unknown timezone '%s' in settings; falling back to UTC", timezone_name)
        settings['tzinfo'] = pytz.utc

    if settings.get('label_locale') not in LABEL_LOCALES:
        app.logger.warning("Unsupported label locale '%s'; using 'en'", settings.get('label_locale'))
        settings['label_locale'] = 'en'
    if settings.get('default_time_range') not in TIME_RANGE_CHOICES:
        app.logger.warning(
            "Unsupported default time range '%s'; using '1w'", settings.get('default_time_range')
        )
        settings['default_time_range'] = '1w'
    return settings


def _today(tzinfo) -> date:
    return datetime.now(tzinfo).date()


if not SETTINGS_FILE.exists():
    write_json_file(SETTINGS_FILE, DEFAULT_SETTINGS)


@app.route('/api/dashboard/metrics', methods=['GET'])
def api_list_dashboard_metrics():
    try:
        engine = get_dashboard_engine()
        return jsonify({'metrics': engine.list_metric_definitions()})
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Failed to list dashboard metrics: %s", exc)
        return jsonify({'message': 'Failed to load dashboard metrics.'}), 500


@app.route('/api/dashboard/series', methods=['POST'])
def api_dashboard_series():
    payload = request.get_json(force=True, silent=True) or {}
    metric_id = payload.get('metric') or 'leads'
    settings = _dashboard_settings()
    tzinfo = settings['tzinfo']
    engine = get_dashboard_engine()
    try:
        filters = DashboardFilters.from_payload(
            payload.get('filters'), default_time_range=settings['default_time_range']
        )
        dataset = DashboardDataset.from_payload(payload)
        series = engine.run_series(
            metric_id,
            dataset,
            filters,
            now=_today(tzinfo),
            tz=tzinfo,
            locale=settings['label_locale'],
        )
        return jsonify({'series': series})
    except KeyError as exc:
        return jsonify({'message': str(exc)}), 404
    except ValueError as exc:
        return jsonify({'message': str(exc)}), 400
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Failed to build dashboard series %s: %s", metric_id, exc)
        return jsonify({'message': 'Failed to build dashboard series.'}), 500


@app.route('/api/dashboard/scorecards', methods=['POST'])
def api_dashboard_scorecards():
    payload = request.get_json(force=True, silent=True) or {}
    tzinfo = _dashboard_settings()['tzinfo']
    try:
        dataset = DashboardDataset.from_payload(payload)
        scorecards = build_scorecards(
            dataset.leads,
            dataset.demos,
            dataset.activities,
            now=_today(tzinfo),
            tz=tzinfo,
        )
        return jsonify({'scorecards': scorecards})
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Failed to build dashboard scorecards: %s", exc)
        return jsonify({'message': 'Failed to build dashboard scorecards.'}), 500


def is_port_in_use(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(('127.0.0.1', port)) == 0


def main():
    port = int(os.environ.get('DASHBOARD_PORT', '5002'))
    if is_port_in_use(port):
        print(f"Port {port} is already in use.")
        sys.exit(1)
    print(f"Port {port} is free. Starting new server.")
    app.run(host='0.0.0.0', port=port, debug=False)


if __name__ == '__main__':
    main()
