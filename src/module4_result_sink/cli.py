#!/usr/bin/env python3
"""
Command-line front end.

Subcommands:
    match    Search one scene for one template
    batch    Run the numbered scene/template pairs of a data directory
    convert  Re-encode a bitmap at another bit depth

Examples:
  bmp-match match input1.bmp input2.bmp --ref 537 420 --annotate output_input1.bmp
  bmp-match batch --data-dir data --start 1 --end 100 --report output.txt
  bmp-match convert input1.bmp input1_8bit.bmp --bits 8
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from tqdm import tqdm

from ..module1_bitmap_codec import BitmapError, load_bitmap, save_bitmap
from ..module1_bitmap_codec.encoder import SUPPORTED_OUTPUT_BIT_COUNTS
from ..module3_template_matching import (
    MatchingError,
    MatchResult,
    ReferenceBox,
    TemplateMatcher,
)
from .annotate import annotate_scene
from .exceptions import ResultSinkError
from .references import load_reference_points, pair_file_names
from .report import DEFAULT_REPORT_NAME, format_report, write_report


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(verbose: bool = True):
    """Configure logging for the command-line tool."""
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


# =============================================================================
# PIPELINE
# =============================================================================

def run_pair(
    matcher: TemplateMatcher,
    scene_path: str,
    template_path: str,
    reference: Optional[ReferenceBox] = None,
    report_path: Optional[str] = None,
    annotate_path: Optional[str] = None,
) -> MatchResult:
    """
    Load one scene/template pair, search it and write the outputs.

    Args:
        matcher: Configured matcher
        scene_path: Scene bitmap
        template_path: Template bitmap
        reference: Optional expected location for accuracy/IoU
        report_path: Text report to append to (skipped if None)
        annotate_path: Where to save the annotated scene (skipped if None)

    Returns:
        Search result

    Raises:
        BitmapError: If either bitmap fails to decode; nothing is written
        FileNotFoundError: If either bitmap is missing
        ResultSinkError: If the report cannot be written
        IOError: If the annotated scene cannot be written
    """
    _, scene = load_bitmap(scene_path)
    _, template = load_bitmap(template_path)

    result = matcher.search(scene, template, reference)

    scene_name = os.path.basename(scene_path)
    if report_path is not None:
        write_report(report_path, scene_name, result)
    if annotate_path is not None:
        save_bitmap(annotate_path, annotate_scene(scene, result.candidates))
        logging.info(f"Saved annotated scene to {annotate_path}")

    return result


def run_batch(
    matcher: TemplateMatcher,
    data_dir: str,
    indices: List[int],
    references: dict,
    report_path: str,
    annotate_dir: Optional[str] = None,
) -> int:
    """
    Run every numbered pair, continuing past pairs that fail to load or write.

    Returns:
        Number of pairs that failed
    """
    failures = 0
    for index in tqdm(indices, desc="Matching pairs"):
        scene_name, template_name = pair_file_names(index)
        annotate_path = None
        if annotate_dir is not None:
            annotate_path = os.path.join(annotate_dir, f"output_{scene_name}")

        try:
            run_pair(
                matcher,
                os.path.join(data_dir, scene_name),
                os.path.join(data_dir, template_name),
                reference=references.get(index),
                report_path=report_path,
                annotate_path=annotate_path,
            )
        except (BitmapError, ResultSinkError, OSError) as e:
            logging.error(f"Pair {index} aborted: {e}")
            failures += 1

    return failures


# =============================================================================
# COMMAND-LINE INTERFACE
# =============================================================================

def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='bmp-match',
        description='Multi-scale template matching on BMP images',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    match = subparsers.add_parser('match', help='Search one scene for one template')
    match.add_argument('scene', type=str, help='Scene bitmap')
    match.add_argument('template', type=str, help='Template bitmap')
    match.add_argument(
        '--ref',
        type=int,
        nargs=2,
        metavar=('X', 'Y'),
        default=None,
        help='Expected top-left corner of the template in the scene'
    )
    match.add_argument(
        '--report',
        type=str,
        default=None,
        help='Append a text report to this file'
    )
    match.add_argument(
        '--annotate',
        type=str,
        default=None,
        help='Save the scene with candidate boxes to this path'
    )
    match.add_argument(
        '--config',
        type=str,
        default=None,
        help='Matching configuration YAML (default: bundled default_config.yaml)'
    )

    batch = subparsers.add_parser('batch', help='Run numbered scene/template pairs')
    batch.add_argument('--data-dir', type=str, default='.', help='Directory holding the pairs')
    batch.add_argument('--start', type=int, default=0, help='First pair index (default: 0)')
    batch.add_argument('--end', type=int, default=0, help='Last pair index, inclusive (default: 0)')
    batch.add_argument(
        '--report',
        type=str,
        default=DEFAULT_REPORT_NAME,
        help=f'Text report to append to (default: {DEFAULT_REPORT_NAME})'
    )
    batch.add_argument(
        '--annotate-dir',
        type=str,
        default=None,
        help='Save annotated scenes as output_<scene>.bmp in this directory'
    )
    batch.add_argument(
        '--references',
        type=str,
        default=None,
        help='Reference point YAML (default: bundled reference_points.yaml)'
    )
    batch.add_argument('--config', type=str, default=None, help='Matching configuration YAML')

    convert = subparsers.add_parser('convert', help='Re-encode a bitmap')
    convert.add_argument('input', type=str, help='Source bitmap')
    convert.add_argument('output', type=str, help='Destination bitmap')
    convert.add_argument(
        '--bits',
        type=int,
        default=32,
        choices=SUPPORTED_OUTPUT_BIT_COUNTS,
        help='Output bit depth (default: 32)'
    )

    return parser.parse_args(argv)


def _command_match(args) -> int:
    matcher = TemplateMatcher(args.config)
    reference = ReferenceBox(*args.ref) if args.ref else None

    result = run_pair(
        matcher,
        args.scene,
        args.template,
        reference=reference,
        report_path=args.report,
        annotate_path=args.annotate,
    )
    print(format_report(os.path.basename(args.scene), result), end='')
    return 0


def _command_batch(args) -> int:
    if args.end < args.start:
        logging.error(f"--end ({args.end}) is before --start ({args.start})")
        return 2

    matcher = TemplateMatcher(args.config)
    references = load_reference_points(args.references)
    indices = list(range(args.start, args.end + 1))

    failures = run_batch(
        matcher, args.data_dir, indices, references, args.report, args.annotate_dir
    )
    logging.info(f"Batch done: {len(indices) - failures}/{len(indices)} pairs matched")
    return 1 if failures else 0


def _command_convert(args) -> int:
    descriptor, raster = load_bitmap(args.input)
    save_bitmap(args.output, raster, bit_count=args.bits, descriptor=descriptor)
    logging.info(
        f"Converted {args.input} ({descriptor.bit_count}-bit) to {args.output} ({args.bits}-bit)"
    )
    return 0


COMMANDS = {
    'match': _command_match,
    'batch': _command_batch,
    'convert': _command_convert,
}


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line tool."""
    args = parse_arguments(argv)
    setup_logging(verbose=args.verbose)

    try:
        return COMMANDS[args.command](args)
    except (BitmapError, MatchingError, ResultSinkError, OSError) as e:
        logging.error(f"{args.command} failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
