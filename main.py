"""
Gallery Command-Line Entry Point
================================

Renders a run of consecutive seeds to PNG files, the way the interactive
gallery walks through them with its next/previous buttons.

Key Components:
    - Argument Parsing: seed range, image size, depth budget, output paths.
    - Logging: CSV render log (async, thread-safe) plus console events.
    - Gallery: seed navigation and PNG export.

Example:
    python main.py --seed 0 --count 10 --width 256 --height 256
"""

import argparse
import logging
import os
from datetime import datetime
from typing import List, Optional

from tqdm import tqdm

import timing_utils
from framework import BudgetExhaustedError
from genart import ArtGenerator, DEFAULT_MAX_DEPTH
from gallery import Gallery
from logger import CSVLogger, CompositeLogger, ConsoleLogger
from timing_utils import TimingStats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render seeded expression-tree artworks.")
    parser.add_argument('--seed', type=int, default=0,
                        help='First index to render (any integer, negatives included).')
    parser.add_argument('--count', type=int, default=1,
                        help='Number of consecutive indices to render.')
    parser.add_argument('--reverse', action='store_true',
                        help='Step backwards from --seed ("previous") instead of forwards.')
    parser.add_argument('--width', type=int, default=256,
                        help='Image width in pixels.')
    parser.add_argument('--height', type=int, default=256,
                        help='Image height in pixels.')
    parser.add_argument('--max_depth', type=int, default=DEFAULT_MAX_DEPTH,
                        help='Depth budget of the root expression.')
    parser.add_argument('--output_dir', type=str, default=None,
                        help='Directory for rendered PNGs. Defaults to <log_dir>/images.')
    parser.add_argument('--log_dir', type=str, default=None,
                        help='Override log output directory.')
    parser.add_argument('--device', type=str, default='cpu',
                        help='Torch device used for evaluation.')
    parser.add_argument('--show_expression', action='store_true',
                        help='Print the synthesized expression of every image.')
    parser.add_argument('--time_it', action='store_true',
                        help='Print a per-function timing report at the end.')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable debug logging.')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parses arguments, renders the requested frames and closes the loggers.

    Returns:
        int: Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.count <= 0:
        parser.error('--count must be positive')

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')
    timing_utils.ENABLE_TIMING = args.time_it
    if args.time_it:
        TimingStats().reset()

    if args.log_dir:
        log_dir = args.log_dir
    else:
        run_name = f"run_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        log_dir = os.path.join("logs", run_name)
    os.makedirs(log_dir, exist_ok=True)
    output_dir = args.output_dir or os.path.join(log_dir, "images")

    try:
        generator = ArtGenerator(max_depth=args.max_depth, device=args.device)
        gallery = Gallery(args.width, args.height, generator=generator, start=args.seed,
                          output_dir=output_dir)
    except (ValueError, BudgetExhaustedError) as e:
        parser.error(str(e))

    csv_logger = CSVLogger(log_file_path=os.path.join(log_dir, "renders.csv"),
                           allowed_event_types=['render'])
    event_logger = CompositeLogger(loggers=[csv_logger, ConsoleLogger()])
    gallery.event_logger = event_logger

    step = -1 if args.reverse else 1
    print(f"Rendering {args.count} image(s) of {args.width}x{args.height} starting at index {args.seed}.")
    print(f"Images will be saved in: {output_dir}")

    status = 0
    try:
        frame = gallery.current()
        for i in tqdm(range(args.count), desc="Rendering"):
            if i > 0:
                frame = gallery.previous() if step < 0 else gallery.next()
            if args.show_expression:
                tqdm.write(f"{frame.label}: {frame.expression.to_string()}")
        print("Rendering finished successfully.")
    except Exception as e:
        print(f"An error occurred while rendering index {gallery.index}: {e}")
        status = 1
    finally:
        event_logger.close()
        if args.time_it:
            print(TimingStats().report())

    return status


if __name__ == "__main__":
    raise SystemExit(main())
