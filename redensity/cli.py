"""
redensity CLI: run a density estimation job from a manifest.
"""

import argparse
import logging
import sys

from redensity.evaluation.job import DensityEstimationJob
from redensity.exceptions import UnsupportedConfiguration

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """CLI entry point. Returns the process exit code."""
    parser = argparse.ArgumentParser(
        description="RED density estimation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage:
  python -m redensity runs/electricity/manifest.yaml
  python -m redensity runs/electricity -q
"""
    )
    parser.add_argument('manifest', help='Path to manifest.yaml (or its directory)')
    parser.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    try:
        job = DensityEstimationJob.from_manifest(args.manifest)
        result = job.run()
    except UnsupportedConfiguration as e:
        logger.error(str(e))
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Could not run job: {e}")
        return 1

    paths = job.write_output()
    logger.info(f"{result['measure']} = {result['value']:.4f} in {result['elapsed_time']:.2f}s")
    for kind, path in paths.items():
        logger.info(f"{kind}: {path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
