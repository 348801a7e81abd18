#!/usr/bin/env python3

"""
Command-line interface for repeat consensus curation.

Drives a curation project without a GUI: start a project, review its
evidence, record decisions one sequence at a time and export the final
FASTA files. Every decision is appended to the project log, so any command
can be interrupted and the project picked up again with ``-l LOG``.
"""

import argparse
import logging
import sys

from repeat_curation import __version__
from repeat_curation.core.config import load_config
from repeat_curation.core.data_structures import CurationIntent
from repeat_curation.core.exceptions import CurationError
from repeat_curation.core.session import CurationSession


STATUS_PENDING = "pending"
STATUS_REVIEWED = "reviewed"
STATUS_MODIFIED = "modified"


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Manual curation of repeat consensus sequences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start a new project
  python curation_cli.py new -i consensi.fa -s self.out -a align.out -b rep.blastx -n nr.blastx -f folds/ -o final.fa -x excluded.fa -l project.log

  # Review and annotate
  python curation_cli.py status -l project.log
  python curation_cli.py show -l project.log rnd-1_family-5
  python curation_cli.py annotate -l project.log rnd-1_family-5 --class LINE/L1 --info "5' truncated" --reverse

  # Write the final files
  python curation_cli.py export -l project.log
        """
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='WARNING',
        help='Logging level (default: WARNING)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose mode (same as --log-level DEBUG)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    new = subparsers.add_parser('new', help='Start a new curation project')
    new.add_argument('-i', '--input', dest='seq_file', help='Input consensus sequences (FASTA)')
    new.add_argument('-o', '--out', dest='out_file', help='Output file for final sequences (FASTA)')
    new.add_argument('-x', '--exclude', dest='exclude_file', help='Output file for excluded sequences (FASTA)')
    new.add_argument('-s', '--self', dest='self_file', help='Self-comparison of input (cross_match output)')
    new.add_argument('-a', '--align', dest='align_file', help='Alignments of input to a reference (cross_match output)')
    new.add_argument('-b', '--repblast', dest='repblast_file', help='BLASTX output against repeat peptides')
    new.add_argument('-n', '--nrblast', dest='nrblast_file', help='BLASTX output against NR peptides')
    new.add_argument('-f', '--fold', dest='fold_dir', help='Directory of RNAfold PNG images')
    new.add_argument('-l', '--log', dest='log_file', help='Project log file (tracks progress)')
    new.add_argument('--config', help='Configuration file (JSON or YAML)')

    status = subparsers.add_parser('status', help='List sequences by class with their review status')
    _add_log_argument(status)
    status.add_argument('--all-classes', action='store_true', help='Also list classes with no sequences')

    show = subparsers.add_parser('show', help='Show a sequence and all its evidence')
    _add_log_argument(show)
    show.add_argument('seq_id', help='Sequence identifier')

    annotate = subparsers.add_parser('annotate', help='Record a curation decision for one sequence')
    _add_log_argument(annotate)
    annotate.add_argument('seq_id', help='Sequence identifier')
    annotate.add_argument('--class', dest='new_class', help='Repeat class (append ? to mark as ambiguous)')
    annotate.add_argument('--info', dest='new_free_text', help='Free-text annotation')
    _add_toggle(annotate, 'reverse', 'reverse-complement the sequence on export')
    _add_toggle(annotate, 'exclude', 'write the sequence to the excluded file')
    _add_toggle(annotate, 'ambiguous', 'mark the classification as uncertain')

    export = subparsers.add_parser('export', help='Write final and excluded FASTA files')
    _add_log_argument(export)
    export.add_argument('-o', '--out', dest='out_file', help='Override output file for final sequences')
    export.add_argument('-x', '--exclude', dest='exclude_file', help='Override output file for excluded sequences')

    return parser


def _add_log_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-l', '--log', dest='log_file', required=True, help='Project log file')


def _add_toggle(parser: argparse.ArgumentParser, name: str, help_text: str) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument(f'--{name}', dest=name, action='store_const', const=True, default=None,
                       help=help_text)
    group.add_argument(f'--no-{name}', dest=name, action='store_const', const=False,
                       help=f'undo --{name}')


def record_status(record) -> str:
    if not record.reviewed:
        return STATUS_PENDING
    if record.is_modified:
        return STATUS_MODIFIED
    return STATUS_REVIEWED


def command_new(args) -> int:
    config = load_config(config_path=args.config, use_env=True)
    for field_name in ('seq_file', 'out_file', 'exclude_file', 'self_file', 'align_file',
                       'repblast_file', 'nrblast_file', 'fold_dir', 'log_file'):
        value = getattr(args, field_name)
        if value is not None:
            setattr(config, field_name, value)
    config.verbose = config.verbose or args.verbose

    session = CurationSession.start(config)
    progress = session.progress()
    print(f"Project started: {progress['total']} sequences, log in {config.log_file}")
    return 0


def command_status(args) -> int:
    session = CurationSession.resume(args.log_file)
    for class_label, seq_ids in session.list_groups().items():
        if not seq_ids and not args.all_classes:
            continue
        print(f"{class_label} ({len(seq_ids)})")
        for seq_id in seq_ids:
            print(f"  {seq_id}\t{record_status(session.get_record(seq_id))}")

    progress = session.progress()
    print(f"\nReviewed {progress['reviewed']}/{progress['total']} "
          f"(modified {progress['modified']}, excluded {progress['excluded']}, "
          f"reversed {progress['reversed']})")
    return 0


def command_show(args) -> int:
    session = CurationSession.resume(args.log_file)
    record = session.get_record(args.seq_id)

    flags = [name for name, value in (('reviewed', record.reviewed),
                                      ('reverse', record.reverse_flag),
                                      ('exclude', record.exclude_flag),
                                      ('ambiguous', record.ambiguous_flag)) if value]
    print(f"Repeat: {record.id}")
    print(f"Class: {record.class_label}  Group: {session.taxonomy.classify(record.class_label)}")
    print(f"Flags: {', '.join(flags) or 'none'}")
    print(f"\n>{record.current_label}\n{record.sequence or 'No sequence'}")

    print("== Self-alignments ==")
    if record.self_alignments:
        for hit in record.self_alignments:
            print(hit.to_row())
    else:
        print("No matches")

    sections = (
        ("Alignment with known repeats (nuc)", record.reference_alignment),
        ("Alignment with known repeats (pep)", record.repeat_peptide_hits),
        ("Alignment with NR (pep)", record.nr_peptide_hits),
    )
    for title, text in sections:
        print(f"== {title} ==")
        print(text.rstrip('\n') if text else "No matches")

    print("== Sequence folding ==")
    print(record.fold_image_path or "No fold image")
    return 0


def command_annotate(args) -> int:
    session = CurationSession.resume(args.log_file)
    intent = CurationIntent(
        seq_id=args.seq_id,
        new_class=args.new_class,
        new_free_text=args.new_free_text,
        reverse=args.reverse,
        exclude=args.exclude,
        ambiguous=args.ambiguous,
    )
    result = session.apply_intent(intent)
    record = session.get_record(args.seq_id)
    if not result.class_recognized:
        print(f"Warning: '{record.class_label}' is not a known repeat class")
    print(f"Saved {record.id}: {record.current_label} "
          f"[exclude={int(record.exclude_flag)} reverse={int(record.reverse_flag)}]")
    return 0


def command_export(args) -> int:
    session = CurationSession.resume(args.log_file)
    summary = session.export_all(args.out_file, args.exclude_file)
    print(f"Wrote {summary.kept} sequences to {summary.keep_path} "
          f"and {summary.excluded} to {summary.exclude_path}")
    return 0


COMMANDS = {
    'new': command_new,
    'status': command_status,
    'show': command_show,
    'annotate': command_annotate,
    'export': command_export,
}


def main(argv=None):
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging('DEBUG' if args.verbose else args.log_level)
    logger = logging.getLogger(__name__)

    try:
        return COMMANDS[args.command](args)
    except CurationError as e:
        logger.error(str(e))
        return 1
    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
