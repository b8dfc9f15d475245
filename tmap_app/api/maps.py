# --- tmap_app/api/maps.py ---
import logging

from flask import Blueprint, Response, request, jsonify, current_app

from tmap_lib.constants import ENVIRONMENT_TYPES
from tmap_lib.errors import NotFoundError
from tmap_lib.rendering import render_ascii, render_map_png
from tmap_lib.schema import MapGenerationParams, map_to_dict

bp = Blueprint("maps", __name__)
log = logging.getLogger("tmap.api")


def _get_map_or_404(map_id):
    generated = current_app.storage.get_map(map_id)
    if generated is None:
        raise NotFoundError("map", map_id)
    return generated


@bp.route("/generate", methods=["POST"])
def generate_map():
    """Composes and stores a new map from JSON generation parameters."""
    params = MapGenerationParams.from_dict(request.get_json(silent=True))
    generated = current_app.composer.generate_map(params)
    current_app.storage.put_map(generated)
    return jsonify(
        {
            "success": True,
            "data": map_to_dict(generated),
            "message": f"Generated {generated.width}x{generated.height} map",
        }
    )


@bp.route("/<map_id>", methods=["GET"])
def get_map(map_id):
    """Gets a single map by ID."""
    return jsonify({"success": True, "data": map_to_dict(_get_map_or_404(map_id))})


@bp.route("/<map_id>/render.png", methods=["GET"])
def render_png(map_id):
    """Renders the map with its atlas's tile images."""
    generated = _get_map_or_404(map_id)
    atlas = current_app.storage.get_atlas(generated.atlas_id) if generated.atlas_id else None
    return Response(render_map_png(generated, atlas), mimetype="image/png")


@bp.route("/<map_id>/ascii", methods=["GET"])
def render_text(map_id):
    """Returns a text preview of the map."""
    generated = _get_map_or_404(map_id)
    rulers = request.args.get("rulers", "").lower() in ("1", "true", "yes")
    return Response(render_ascii(generated, with_rulers=rulers), mimetype="text/plain")


@bp.route("/test", methods=["GET"])
def maps_info():
    """Reports the accepted map sizes and environments."""
    limits = current_app.limits
    return jsonify(
        {
            "success": True,
            "data": {
                "mapSizeRange": {"min": limits.min_map_size, "max": limits.max_map_size},
                "supportedEnvironments": list(ENVIRONMENT_TYPES),
            },
            "message": "Map API is working",
        }
    )
