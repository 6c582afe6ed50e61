import argparse
import logging
import sys

from framestats.config.run_config import RunConfig
from framestats.constants import EXIT_OK, EXIT_RUN_FAILED, EXIT_SETUP_FAILED
from framestats.errors import FrameStatsError, SetupError
from framestats.main import run_pipeline
from framestats.utils.logger import LOGGER_NAME, configure_logging

logger = logging.getLogger(LOGGER_NAME)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="framestats",
        description="Append per-frame channel means of a video to a CSV log.",
    )
    parser.add_argument("video_path", nargs="?", help="overrides FRAMESTATS_VIDEO_PATH")
    parser.add_argument("output_path", nargs="?", help="overrides FRAMESTATS_OUTPUT_PATH")
    parser.add_argument("--decoder", choices=["av", "ffmpeg"])
    parser.add_argument("--error-policy", choices=["skip", "abort"])
    parser.add_argument("--delivery-threads", type=int)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = RunConfig.from_env().merged(
            {
                "video_path": args.video_path,
                "output_path": args.output_path,
                "decoder": args.decoder,
                "error_policy": args.error_policy,
                "delivery_threads": args.delivery_threads,
            }
        )
    except SetupError as e:
        configure_logging(file_logging=False)
        logger.error(f"{e}")
        return EXIT_SETUP_FAILED

    configure_logging(config.log_dir)

    try:
        result = run_pipeline(config)
    except SetupError as e:
        logger.error(f"Setup failed: {e}")
        return EXIT_SETUP_FAILED
    except FrameStatsError as e:
        logger.error(f"Run failed: {e}")
        return EXIT_RUN_FAILED

    if not result.ok:
        details = result.error.details if result.error else result.state.value
        logger.error(f"Run failed: {details}")
        return EXIT_RUN_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
