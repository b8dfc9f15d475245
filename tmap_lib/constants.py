"""
tmap_lib/constants.py: Size limits, grid presets and the names of the tile
classes and environment archetypes shared by the library, the CLI and the
web application.
"""

APP_CONFIG = {
    "MAX_FILE_SIZE": 10 * 1024 * 1024,  # 10MB
    "SUPPORTED_IMAGE_TYPES": ["image/jpeg", "image/png", "image/webp", "image/gif"],
    "DEFAULT_TILE_SIZE": 32,
    "MAX_TILE_SIZE": 128,
    "MIN_TILE_SIZE": 8,
    "DEFAULT_MAP_SIZE": 32,
    "MAX_MAP_SIZE": 128,
    "MIN_MAP_SIZE": 8,
    "MAX_GRID_CELLS": 32,
    "MAX_RENDER_PIXELS": 4096 * 4096,
}

# --- GRID DETECTION ---
# Tried in this order by auto-detection; the first clean fit wins.
COMMON_GRIDS = [(16, 16), (8, 8), (4, 4), (2, 2), (32, 32), (12, 12), (6, 6)]
FALLBACK_GRID = (4, 4)
GRID_PRESETS = {"2x2": (2, 2), "4x4": (4, 4), "8x8": (8, 8), "16x16": (16, 16), "32x32": (32, 32)}
GRID_TYPES = ("auto", "preset", "custom")

# --- ENVIRONMENTS ---
ENV_AUTO = "auto"
ENV_NATURE = "nature"
ENV_DUNGEON = "dungeon"
ENV_CITY = "city"
ENV_ABSTRACT = "abstract"
ENV_BASIC = "basic"
ENVIRONMENT_TYPES = (ENV_AUTO, ENV_NATURE, ENV_DUNGEON, ENV_CITY, ENV_ABSTRACT, ENV_BASIC)

DISCIPLINE_SEEDED = "seeded"
DISCIPLINE_STRUCTURAL = "structural"
DISCIPLINES = (DISCIPLINE_SEEDED, DISCIPLINE_STRUCTURAL)

DEFAULT_SEED = 42

# --- FEATURE EXTRACTION ---
EDGE_THRESHOLD = 30
MEANINGFUL_MIN_ALPHA = 50
MEANINGFUL_MIN_CONTRAST = 5

ERROR_MESSAGES = {
    "INVALID_FILE_TYPE": "Invalid file type. Supported formats: JPEG, PNG, WebP, GIF",
    "FILE_TOO_LARGE": "File too large. Maximum size is 10MB",
    "INVALID_GRID_CONFIG": "Invalid grid configuration",
    "INVALID_TILE_SIZE": "Invalid tile size. Must be between {min} and {max} pixels",
    "INVALID_MAP_SIZE": "Invalid map size. Must be between {min} and {max}",
    "ATLAS_NOT_FOUND": "Atlas not found",
    "MAP_NOT_FOUND": "Map not found",
    "TILE_NOT_FOUND": "Tile not found",
    "EXTRACTION_FAILED": "Failed to extract tiles from image",
    "GENERATION_FAILED": "Failed to generate map",
    "RENDER_FAILED": "Failed to render map",
    "RENDER_TOO_LARGE": "Rendered image would be {width}x{height} pixels; the limit is {max} pixels",
}
