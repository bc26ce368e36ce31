# photo_mapper_cli.py
# Command-Line Interface for the Photo Mapper analysis pipeline

import argparse
import json
import logging
import os
import sys

from dotenv import load_dotenv

from exif_gps import extract_gps_coordinate
from geolocation_engine import analyze_photo
from photo_registry import choose_location

LOG_FORMAT = '%(asctime)s - PHOTO_MAPPER - %(levelname)s - %(message)s'


def build_parser():
    parser = argparse.ArgumentParser(
        description="Photo Mapper: locate a photo from its GPS metadata or its content.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("image_path", type=str, help="Full path to the image file to be analyzed.")
    parser.add_argument(
        "--context", "-c",
        type=str,
        default=None,
        help="Optional description of where the photo was taken (e.g. 'downtown Seattle')."
    )
    parser.add_argument("--json", action="store_true", help="Print the raw analysis payload as JSON.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show pipeline log output.")
    return parser


def run_cli(argv=None):
    """Handles command-line arguments and runs the analysis pipeline. Returns the exit code."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format=LOG_FORMAT)

    if not os.path.exists(args.image_path):
        print(f"Error: The image file was not found at the specified path: {args.image_path}")
        return 1

    with open(args.image_path, 'rb') as f:
        image_bytes = f.read()

    try:
        gps_coordinate = extract_gps_coordinate(image_bytes)
        results = analyze_photo(image_bytes, gps_coordinate is not None, user_context=args.context)
    except Exception as e:
        print(f"\nAn unexpected error occurred while processing the image: {e}")
        return 1

    if args.json:
        print(json.dumps(results, indent=2))
        return 0

    coordinate, source = choose_location(gps_coordinate, gps_coordinate is not None, results)

    # --- Format and Display the Results ---
    print("\n" + "=" * 35)
    print("      PHOTO MAPPER RESULT")
    print("=" * 35)
    print(f"Caption:              {results.get('aiCaption')}")
    print(f"Location Source:      {source}")
    print(f"Coordinates:          Lat={coordinate.latitude:.6f}, Lon={coordinate.longitude:.6f}")
    if source == "default":
        print("Could not determine a specific location; showing the default location.")
    print("=" * 35 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(run_cli())
