"""Command-line entry point: render an image through a CRT shadow mask.

CLI:
    shadow-mask INPUT OUTPUT WIDTH [-t DELTA|INLINE] [-p]
    python scripts/shadow_mask.py title.png title_crt.png 2560 -t INLINE
    python scripts/shadow_mask.py shmup.png shmup_crt.png 1920 --portrait \\
                                  --config configs/shadow_mask_v1.yaml

Exit codes:
    0  success
    1  input/output file could not be loaded/saved, bad config or mask type,
       output width too small
    2  usage error (argparse)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from src import __version__
from src.utils import fs, logging_config

from .errors import ShadowMaskError
from .pipeline import load_config, run_pipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shadow-mask",
        description="Simulate the look of a colour CRT shadow mask on a bitmap",
    )
    parser.add_argument("input", metavar="INPUT", type=Path, help="Source image file")
    parser.add_argument("output", metavar="OUTPUT", type=Path,
                        help="Output image file (format from extension)")
    parser.add_argument("width", metavar="WIDTH", type=int, help="Output width in pixels")
    parser.add_argument(
        "-t", "--type",
        dest="mask_type",
        metavar="{DELTA,INLINE}",
        default=None,
        help="Shadow mask type (default: from config, DELTA)",
    )
    parser.add_argument(
        "-p", "--portrait",
        action="store_true",
        help="CRT is mounted in portrait orientation",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Renderer config YAML (shadow_mask.v1 schema)",
    )
    parser.add_argument(
        "--dump-masks",
        metavar="DIR",
        default=None,
        help="Also write the three channel masks as mask<N>.png to DIR",
    )
    parser.add_argument(
        "--serial",
        action="store_true",
        help="Render the three channels one after another",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level",
    )
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    logging_config.setup_logging(
        log_level=args.log_level,
        log_file=args.log_file,
        context={"app": "shadow_mask"},
    )
    logging_config.install_excepthook()

    try:
        cfg = load_config(args.config)
        updates = {}
        if args.dump_masks:
            updates['debug'] = cfg.debug.model_copy(update={'dump_masks_dir': args.dump_masks})
        if args.serial:
            updates['render'] = cfg.render.model_copy(update={'parallel_channels': False})
        if updates:
            cfg = cfg.model_copy(update=updates)

        logging_config.push_context(input=args.input.name)
        result = run_pipeline(
            input_path=args.input,
            output_path=args.output,
            output_width=args.width,
            mask_type=args.mask_type,
            portrait=args.portrait,
            cfg=cfg,
        )
    except fs.ImageIOError as e:
        logger.error(f"I/O failure: {e}")
        print(f"Cannot load/save file {e.path}: {e.message}", file=sys.stderr)
        return 1
    except ShadowMaskError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        logging_config.shutdown()

    print(f"Wrote {result['output_path']} ({result['width']}x{result['height']}, "
          f"{result['mask_type']})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
