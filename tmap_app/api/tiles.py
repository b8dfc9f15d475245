# --- tmap_app/api/tiles.py ---
import logging

from flask import Blueprint, request, jsonify, current_app

from tmap_lib.analysis.grid import GridConfig
from tmap_lib.constants import ERROR_MESSAGES
from tmap_lib.errors import NotFoundError, ValidationError
from tmap_lib.schema import atlas_to_dict, tile_to_dict

bp = Blueprint("tiles", __name__)
log = logging.getLogger("tmap.api")


def _parse_tile_size(raw) -> int:
    if raw is None or raw == "":
        return current_app.config["DEFAULT_TILE_SIZE"]
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Tile size must be an integer.", field="tileSize") from None


@bp.route("/extract", methods=["POST"])
def extract_tiles():
    """Slices an uploaded atlas image into classified tiles."""
    image = request.files.get("image")
    if image is None or not image.filename:
        raise ValidationError("No image file provided.", field="image")
    if image.mimetype not in current_app.config["SUPPORTED_IMAGE_TYPES"]:
        raise ValidationError(ERROR_MESSAGES["INVALID_FILE_TYPE"], field="image")

    grid_config = GridConfig.from_value(request.form.get("gridConfig"))
    tile_size = _parse_tile_size(request.form.get("tileSize"))

    atlas = current_app.extractor.extract(
        image.read(), grid_config, tile_size, name=request.form.get("name") or None
    )
    current_app.storage.put_atlas(atlas)
    log.info("Atlas %s extracted from '%s' with %d tiles.", atlas.id, image.filename, len(atlas.tiles))
    return jsonify(
        {
            "success": True,
            "data": atlas_to_dict(atlas),
            "message": f"Successfully extracted {len(atlas.tiles)} tiles",
        }
    )


@bp.route("/atlas/<atlas_id>", methods=["GET"])
def get_atlas(atlas_id):
    """Gets a single atlas by ID."""
    atlas = current_app.storage.get_atlas(atlas_id)
    if atlas is None:
        raise NotFoundError("atlas", atlas_id)
    return jsonify({"success": True, "data": atlas_to_dict(atlas)})


@bp.route("/<atlas_id>/<tile_id>/classification", methods=["PATCH"])
def update_classification(atlas_id, tile_id):
    """Manually overrides the classification of one tile."""
    data = request.get_json(silent=True)
    if not data or "classification" not in data:
        raise ValidationError("Missing 'classification' in request body.", field="classification")

    tile = current_app.storage.update_tile_classification(
        atlas_id, tile_id, data["classification"], data.get("confidence")
    )
    return jsonify(
        {
            "success": True,
            "data": tile_to_dict(tile, include_image=False),
            "message": "Tile classification updated.",
        }
    )


@bp.route("/test", methods=["GET"])
def tiles_info():
    """Reports the accepted formats and size limits."""
    limits = current_app.limits
    return jsonify(
        {
            "success": True,
            "data": {
                "supportedFormats": current_app.config["SUPPORTED_IMAGE_TYPES"],
                "maxFileSize": current_app.config["MAX_FILE_SIZE"],
                "tileSizeRange": {"min": limits.min_tile_size, "max": limits.max_tile_size},
            },
            "message": "Tile API is working",
        }
    )
