"""
CargoSys Tracking - Flask Backend

Alternative to FastAPI for environments where FastAPI isn't available.
Same API structure, different framework.
"""

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, Response, jsonify, request

from cargosys.api.payloads import (
    VIEW_MAX_POINTS,
    health_payload,
    parse_every_nth,
    resolve_window,
    service_info,
    simulation_options,
    track_payload,
    view_payload,
)
from cargosys.models.telemetry import ReadingSeries
from cargosys.services.csv_export import CsvExportError, export_filename, to_csv
from cargosys.services.reducer import DEFAULT_THRESHOLD_G, build_view, filter_by_range
from cargosys.services.repository import configured_data_folder, get_repository, init_repository


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


app = Flask(__name__)


def _optional_float(name: str) -> Optional[float]:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return float(value)


def _load_series(tracking_code: str) -> ReadingSeries:
    """Series for the request; ValueError on malformed options."""
    code = tracking_code.strip()
    if not code:
        raise ValueError("Tracking code is required")

    options = simulation_options(
        days=_optional_float("days"),
        sample_minutes=_optional_float("sample_minutes"),
        impact_threshold_g=_optional_float("impact_threshold_g"),
    )
    return get_repository().get_series(code, options)


def _window(series: ReadingSeries):
    return resolve_window(
        series,
        request.args.get("preset"),
        request.args.get("start") or None,
        request.args.get("end") or None,
    )


# ============================================================================
# Health Endpoints
# ============================================================================

@app.route("/")
def root():
    """Root endpoint - basic health check."""
    return jsonify(service_info())


@app.route("/health")
def health_check():
    """Health check endpoint."""
    return jsonify(health_payload(get_repository()))


# ============================================================================
# Folder Management Endpoints
# ============================================================================

@app.route("/folder", methods=["GET"])
def get_folder_info():
    """Get information about the current recorded-data folder."""
    repo = get_repository()
    return jsonify({
        "path": str(repo.data_folder) if repo.data_folder else None,
        "recorded_count": len(repo.recorded_codes),
        "tracking_codes": repo.recorded_codes,
    })


@app.route("/folder", methods=["POST"])
def set_folder():
    """Set the folder holding recorded <tracking_code>.csv files."""
    data = request.get_json(silent=True)
    if not data or "path" not in data:
        return jsonify({"detail": "path is required"}), 400

    repo = get_repository()
    path = Path(data["path"])

    if not path.exists():
        return jsonify({"detail": f"Folder does not exist: {data['path']}"}), 400
    if not path.is_dir():
        return jsonify({"detail": f"Path is not a directory: {data['path']}"}), 400

    count = repo.set_data_folder(path)

    return jsonify({
        "path": str(path),
        "recorded_count": count,
        "tracking_codes": repo.recorded_codes,
    })


# ============================================================================
# Track Endpoints
# ============================================================================

@app.route("/track/<tracking_code>", methods=["GET"])
def get_track(tracking_code: str):
    """Get the full reading series for a tracking code."""
    try:
        series = _load_series(tracking_code)
    except ValueError as e:
        return jsonify({"detail": str(e)}), 400

    return jsonify(track_payload(series))


@app.route("/track/<tracking_code>/view", methods=["GET"])
def get_view(tracking_code: str):
    """Get the reduced chart/map view for a time window."""
    try:
        series = _load_series(tracking_code)
        max_points = int(request.args.get("max_points", VIEW_MAX_POINTS))
        threshold_g = float(request.args.get("threshold_g", DEFAULT_THRESHOLD_G))
        every_nth = parse_every_nth(request.args.get("route_every_nth"))
        start, end = _window(series)
        view = build_view(
            series,
            start=start,
            end=end,
            max_points=max_points,
            threshold_g=threshold_g,
            route_every_nth=every_nth,
        )
    except ValueError as e:
        return jsonify({"detail": str(e)}), 400

    return jsonify(view_payload(series, view, max_points, every_nth))


@app.route("/track/<tracking_code>/csv", methods=["GET"])
def get_csv(tracking_code: str):
    """Download the readings of a time window as CSV."""
    try:
        series = _load_series(tracking_code)
        start, end = _window(series)
        text = to_csv(filter_by_range(series.sorted(), start, end))
    except CsvExportError as e:
        return jsonify({"detail": str(e)}), 422
    except ValueError as e:
        return jsonify({"detail": str(e)}), 400

    return Response(
        text,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(series.tracking_code)}"'},
    )


# ============================================================================
# Startup
# ============================================================================

def create_app(data_folder: Optional[Path] = None) -> Flask:
    """Create and configure the Flask app."""
    if data_folder is None:
        data_folder = configured_data_folder()

    if data_folder.exists():
        init_repository(data_folder)
        logger.info(f"Initialized repository with folder: {data_folder}")
    else:
        init_repository(None)
        logger.info(f"Recorded-data folder not found: {data_folder}")
        logger.info("Serving simulated series only; use POST /folder to add recorded data")

    return app


if __name__ == "__main__":
    import sys

    data_folder = Path(sys.argv[1]) if len(sys.argv) > 1 else configured_data_folder()

    create_app(data_folder)
    app.run(host="0.0.0.0", port=8000, debug=True)
