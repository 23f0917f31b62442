#!/usr/bin/env python3
"""
Launch script for the CargoSys Tracking backend.

Usage:
    python run_server.py [data_folder] [--port PORT] [--host HOST]

Examples:
    python run_server.py                    # Use default ./data/recorded folder
    python run_server.py /path/to/csvs      # Serve recorded series from a custom folder
    python run_server.py --days 30          # Simulate 30 days of history per code
    python run_server.py --demo-data        # Write demo CSVs into the folder first
"""

import argparse
import os
import sys
from pathlib import Path

# Add cargosys to path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="CargoSys Tracking Backend Server")
    parser.add_argument(
        "data_folder",
        nargs="?",
        default="./data/recorded",
        help="Folder containing recorded <tracking_code>.csv files (default: ./data/recorded)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )
    parser.add_argument(
        "--days",
        type=float,
        default=None,
        help="Days of simulated history per tracking code (default: 60)"
    )
    parser.add_argument(
        "--max-points",
        type=int,
        default=None,
        help="Default chart bucket budget for /view (default: 250)"
    )
    parser.add_argument(
        "--demo-data",
        action="store_true",
        help="Generate demo recorded series into the data folder before starting"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    data_folder = Path(args.data_folder)

    if args.demo_data:
        from cargosys.utils.sample_data import generate_demo_data_set
        files = generate_demo_data_set(data_folder)
        print(f"Generated {len(files)} demo series in {data_folder}")

    print("CargoSys Tracking Backend")
    print("=" * 40)
    print(f"Data folder: {data_folder.absolute()}")
    print(f"Server: http://{args.host}:{args.port}")
    print("=" * 40)

    if not data_folder.exists():
        print(f"\nNote: Data folder does not exist: {data_folder}")
        print("All tracking codes will be simulated. Set a folder later via POST /folder")

    # Configuration for the FastAPI lifespan and request defaults
    if data_folder.exists():
        os.environ["CARGOSYS_DATA_FOLDER"] = str(data_folder)
    if args.days is not None:
        os.environ["CARGOSYS_DAYS"] = str(args.days)
    if args.max_points is not None:
        os.environ["CARGOSYS_MAX_POINTS"] = str(args.max_points)

    print("\nAPI Endpoints:")
    print("  GET  /                    - Health check")
    print("  GET  /health              - Detailed health")
    print("  GET  /folder              - Current folder info")
    print("  POST /folder              - Set recorded-data folder")
    print("  GET  /track/{code}        - Full reading series")
    print("  GET  /track/{code}/view   - Reduced chart/map view")
    print("  GET  /track/{code}/csv    - CSV export")
    print("\nStarting server...")

    import uvicorn

    uvicorn.run(
        "cargosys.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
