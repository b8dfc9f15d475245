# --- tmap.py ---
import argparse
import logging
import sys

from core.log_utils import setup_logging
from tmap_lib import schema
from tmap_lib.analysis.extractor import extract_tiles
from tmap_lib.compose.composer import MapComposer
from tmap_lib.constants import APP_CONFIG, DISCIPLINES, ENVIRONMENT_TYPES
from tmap_lib.errors import NotFoundError, ProcessingError, ValidationError
from tmap_lib.rendering import ASCIIRenderer, render_map_png
from tmap_lib.store import MemoryStore


def run_rendering(generated_map: schema.GeneratedMap, atlas: schema.TileAtlas, output_name: str):
    """Composites the map into a PNG using the atlas's tiles."""
    log = logging.getLogger("tmap.main")
    log.info("Rendering PNG for '%s'...", output_name)
    png_bytes = render_map_png(generated_map, atlas)

    output_path = f"{output_name}.png"
    try:
        with open(output_path, "wb") as f:
            f.write(png_bytes)
        log.info("Successfully saved PNG to '%s'", output_path)
    except IOError as e:
        log.error("Could not write PNG file: %s", e)


def get_cli_args(argv=None):
    """Configures and parses command-line arguments."""
    p = argparse.ArgumentParser(
        description="Slices a tileset image into classified tiles and composes a map from them."
    )
    p.add_argument(
        "-i", "--input", required=True, help="Path to the tileset image, or a map JSON file."
    )
    p.add_argument("-o", "--output", required=True, help="Base name for output files.")

    g_tiles = p.add_argument_group("Tile Extraction")
    g_tiles.add_argument(
        "-g",
        "--grid",
        default="auto",
        help="Grid: 'auto', a preset such as '8x8', or JSON like "
        '\'{"type": "custom", "cols": 4, "rows": 4}\' (default: auto).',
    )
    g_tiles.add_argument(
        "-t",
        "--tile-size",
        type=int,
        default=APP_CONFIG["DEFAULT_TILE_SIZE"],
        help=f"Edge length of extracted tiles in pixels (default: {APP_CONFIG['DEFAULT_TILE_SIZE']}).",
    )
    g_tiles.add_argument(
        "-j", "--workers", type=int, default=1, help="Threads used for tile analysis (default: 1)."
    )

    g_map = p.add_argument_group("Map Generation")
    g_map.add_argument("-W", "--width", type=int, default=APP_CONFIG["DEFAULT_MAP_SIZE"])
    g_map.add_argument("-H", "--height", type=int, default=APP_CONFIG["DEFAULT_MAP_SIZE"])
    g_map.add_argument(
        "-e", "--environment", choices=ENVIRONMENT_TYPES, default="auto", help="Environment type."
    )
    g_map.add_argument(
        "--discipline",
        choices=DISCIPLINES,
        default="seeded",
        help="Composition discipline (default: seeded).",
    )
    g_map.add_argument("-s", "--seed", type=int, help="Seed for reproducible maps.")
    g_map.add_argument("--no-floors", action="store_true", help="Leave floor cells empty.")
    g_map.add_argument("--no-walls", action="store_true", help="Disable the wall layer.")
    g_map.add_argument(
        "--no-decorations", action="store_true", help="Disable the decoration layer."
    )
    g_map.add_argument(
        "--skip-generation", action="store_true", help="Only extract and save the atlas."
    )
    g_map.add_argument("--png", action="store_true", help="Also render the map to <output>.png.")

    # Logging arguments
    g_log = p.add_argument_group("Logging & Output")
    g_log.add_argument("-v", "--verbose", action="store_true", help="Enable INFO logging.")
    g_log.add_argument("--color-logs", action="store_true", help="Enable colored logging.")
    g_log.add_argument("--log-file", metavar="FILE", help="Redirect log output to a file.")
    g_log.add_argument(
        "--ascii-debug",
        action="store_true",
        help="Print an ASCII preview of the generated map.",
    )
    g_log.add_argument(
        "-d",
        "--debug",
        nargs="?",
        const="all",
        dest="debug_topics",
        metavar="TOPICS",
        help="Enable DEBUG logging (all,main,extract,classify,grid,compose,render,store,config).",
    )
    return p.parse_args(argv)


def _print_ascii(generated_map: schema.GeneratedMap):
    log = logging.getLogger("tmap.main")
    renderer = ASCIIRenderer(with_rulers=True)
    renderer.render(generated_map)
    log.info("--- ASCII Map Preview ---")
    log.info("\n%s", renderer.get_output(), extra={"raw": True})
    log.info("--- End ASCII Map Preview ---")


def main(argv=None) -> int:
    """Main entry point for the tmap CLI."""
    args = get_cli_args(argv)
    log_level = logging.INFO if args.verbose else logging.WARNING
    if args.debug_topics:
        log_level = logging.DEBUG

    setup_logging("tmap", log_level, args.color_logs, args.debug_topics, args.log_file)
    log = logging.getLogger("tmap.main")

    log.info("--- TMAP CLI Initialized ---")
    log.debug("Arguments received: %s", vars(args))

    if args.input.endswith(".json"):
        log.info("Input is a map JSON file. Loading it for preview.")
        try:
            generated_map = schema.load_map_json(args.input)
        except FileNotFoundError:
            log.critical("Map JSON file not found: %s", args.input)
            return 1
        except (ValueError, KeyError) as e:
            log.critical("Failed to load or parse JSON file: %s", e, exc_info=True)
            return 1
        if args.png:
            log.warning("--png needs the source atlas; only the ASCII preview is available.")
        _print_ascii(generated_map)
        return 0

    try:
        with open(args.input, "rb") as f:
            image_bytes = f.read()
    except IOError as e:
        log.critical("Could not read input image: %s", e)
        return 1

    store = MemoryStore()
    try:
        atlas = extract_tiles(
            image_bytes, args.grid, args.tile_size, name=args.output, workers=args.workers
        )
        store.put_atlas(atlas)
        atlas_path = f"{args.output}.atlas.json"
        log.info("Saving atlas to '%s'...", atlas_path)
        schema.save_json(schema.atlas_to_dict(atlas), atlas_path)
        log.info("--- Extraction Results ---")
        for layer, ids in atlas.tiles_by_type().items():
            log.info("%-10s %d tiles", layer, len(ids))

        if args.skip_generation:
            return 0

        params = schema.MapGenerationParams(
            width=args.width,
            height=args.height,
            tile_size=args.tile_size,
            environment_type=args.environment,
            atlas_id=atlas.id,
            seed=args.seed,
            enabled_layers=schema.EnabledLayers(
                floors=not args.no_floors,
                walls=not args.no_walls,
                decorations=not args.no_decorations,
            ),
            discipline=args.discipline,
            name=args.output,
        )
        generated_map = MapComposer(store).generate_map(params)
        store.put_map(generated_map)
        map_path = f"{args.output}.json"
        log.info("Saving map to '%s'...", map_path)
        schema.save_json(schema.map_to_dict(generated_map), map_path)
    except ValidationError as e:
        log.critical("Invalid argument%s: %s", f" ({e.field})" if e.field else "", e)
        return 2
    except (NotFoundError, ProcessingError) as e:
        log.critical("Processing failed: %s", e, exc_info=True)
        return 1

    if args.ascii_debug:
        _print_ascii(generated_map)
    if args.png:
        run_rendering(generated_map, atlas, args.output)

    log.info("--- Processing complete. ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
