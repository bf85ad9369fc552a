"""
Flask API for the sounding diagnostics.
Accepts normalized vertical profiles as JSON and returns the derived
severe-weather parameters (plus parcel paths for plotting clients).
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict

from flask import Flask, jsonify, request
from flask_cors import CORS

from sounding_params import Profile, ProfileError, analyze_profile, annotate_levels

MAX_BATCH_PROFILES = 50

app = Flask(__name__)
CORS(app, resources={r"/api/*": {"origins": "*"}}, supports_credentials=False)


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@app.route("/api/health", methods=["GET"])
def health():
    """Lightweight health-check endpoint."""
    return jsonify({"status": "ok"})


# ─── Helpers ───────────────────────────────────────────────────────
def _serialize_parcels(parcels):
    """Parcel results as JSON-friendly dicts (ascent/descent paths included)."""
    if parcels is None:
        return None
    return {
        "surfaceBased": asdict(parcels.surface_based),
        "mixedLayer": asdict(parcels.mixed_layer),
        "mostUnstable": asdict(parcels.most_unstable),
        "downdraft": asdict(parcels.downdraft),
    }


def _analyze_body(body):
    """Build a profile from a request body and run every diagnostic on it."""
    profile = Profile.from_dict(body)
    analysis = analyze_profile(profile)
    valid = profile.valid_levels()

    result = {
        "derived": analysis.derived.as_dict(),
        "meta": {
            "station": profile.station_id,
            "obsTime": profile.obs_time,
            "levels": len(profile.levels),
            "validLevels": len(valid),
            "sfcPressure": round(valid[0].pressure_mb) if valid else None,
            "topPressure": round(valid[-1].pressure_mb) if valid else None,
        },
    }
    if body.get("includeParcels"):
        result["parcels"] = _serialize_parcels(analysis.parcels)
    if body.get("includeLevels"):
        result["levels"] = [asdict(row) for row in annotate_levels(profile)]
    return result


# ─── Endpoints ─────────────────────────────────────────────────────

@app.route("/api/derived", methods=["POST", "OPTIONS"])
def derived():
    """
    Compute derived parameters for one profile.

    Expected JSON body:
      {
        "station_id": "OUN",
        "obs_time": "2024-05-20T00:00:00Z",
        "elevation_m": 357,
        "levels": [ {pressure_mb, height_m, temp_c, dewpoint_c,
                     rh?, wind_dir_deg, wind_speed_kt}, ... ],
        "units": {"temperature": "degF"},     // optional
        "includeParcels": false,               // optional
        "includeLevels": false                 // optional
      }

    Returns JSON:
      {
        "derived": { ... },
        "meta": { ... },
        "parcels": { ... },    // when includeParcels
        "levels": [ ... ]      // when includeLevels
      }
    """
    if request.method == "OPTIONS":
        return "", 204

    body = request.get_json(force=True, silent=True)
    if body is None:
        return jsonify({"error": "Request body must be JSON."}), 400

    try:
        return jsonify(_analyze_body(body))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        app.logger.exception("Derived parameter computation failed")
        return jsonify({"error": str(e)}), 500


@app.route("/api/derived/batch", methods=["POST", "OPTIONS"])
def derived_batch():
    """
    Compute derived parameters for several profiles in parallel.

    Expected JSON body:
      { "profiles": [ <profile>, <profile>, ... ] }

    Results come back in request order; a profile that cannot be read gets
    an {"error": ...} entry instead of failing the whole batch.
    """
    if request.method == "OPTIONS":
        return "", 204

    body = request.get_json(force=True, silent=True) or {}
    items = body.get("profiles")

    if not items or not isinstance(items, list):
        return jsonify({"error": "Provide a 'profiles' array."}), 400
    if len(items) > MAX_BATCH_PROFILES:
        return jsonify({"error": f"Maximum {MAX_BATCH_PROFILES} profiles per batch."}), 400

    batch_workers = int(os.environ.get("BATCH_WORKERS", "4"))

    results = []
    with ThreadPoolExecutor(max_workers=batch_workers) as executor:
        futures = {executor.submit(_analyze_body, item): i for i, item in enumerate(items)}
        for future in as_completed(futures):
            idx = futures[future]
            try:
                results.append((idx, future.result()))
            except ValueError as e:
                results.append((idx, {"error": str(e)}))
            except Exception as e:
                app.logger.exception("Batch profile %d failed", idx)
                results.append((idx, {"error": str(e)}))

    # Sort by original order
    results.sort(key=lambda x: x[0])
    return jsonify({"results": [r[1] for r in results]})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.environ.get("PORT", "5000"))
    app.logger.info("Starting sounding diagnostics API on http://localhost:%d", port)
    app.run(debug=True, port=port)
