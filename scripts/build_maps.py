#!/usr/bin/env python3
"""CLI entry point for building both station maps."""

import argparse
import logging
import sys

from bikeshare_map.config import load_config_from_env
from bikeshare_map.errors import MapPipelineError
from bikeshare_map.pipeline import build_maps

logger = logging.getLogger("bikeshare_map.cli")


def parse_args(argv):
    parser = argparse.ArgumentParser(
        description="Render docking stations over deprivation and health indicator maps"
    )
    parser.add_argument(
        "--data-dir",
        help="Directory holding the lookup, deprivation and boundary files",
    )
    parser.add_argument(
        "--output-dir",
        default="./output",
        help="Directory the rendered maps are written to",
    )
    parser.add_argument("--region", help="Region name the lookup is filtered to")
    parser.add_argument("--time-period", help="Indicator time period, e.g. 2018/19")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config_from_env()
    if args.data_dir:
        config.paths.data_dir = args.data_dir
    if args.region:
        config.region_name = args.region
    if args.time_period:
        config.indicator.time_period = args.time_period

    try:
        written = build_maps(config, args.output_dir)
    except MapPipelineError as exc:
        logger.error("Map build failed [%s]: %s", exc.error_code, exc)
        return 1

    for name, path in written.items():
        logger.info("%s map: %s", name, path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
