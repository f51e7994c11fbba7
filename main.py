# Main script to orchestrate the archiving run
import sys
import logging
import argparse

import constants
from config_loader import load_config
from logger_setup import setup_logging
from metadata_store import MetadataStore, MetadataPersistenceError
from models import Artifact, OutcomeKind
from orchestrator import run_archive, summarize_outcomes, PrevalidationError
from report_generator import write_output_files
from publisher import publish_archive


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Archive a configured list of websites and community wikis.")
    parser.add_argument('--config', default=constants.DEFAULT_CONFIG_FILE, help="Path to the JSON configuration file.")
    parser.add_argument('--prevalidate', action='store_true', help="Probe every artifact before capturing; abort on hard failures.")
    parser.add_argument('--no-publish', action='store_true', help="Skip committing and pushing the archive.")
    return parser.parse_args(argv)


# --- Main Execution ---
def main(argv=None):
    """Main function to orchestrate the archiving run. Returns the process exit status."""
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file not found at {args.config}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1
    if args.prevalidate:
        config['prevalidate'] = True
    if args.no_publish:
        config['publish'] = False

    setup_logging(config['log_file'])
    logging.info("--- Starting Archive Run ---")

    artifacts = [Artifact.from_config(entry) for entry in config['artifacts']]
    store = MetadataStore.load(config['metadata_file'], config['archive_dir'])

    # 1. Capture
    try:
        outcomes = run_archive(artifacts, store, config)
    except PrevalidationError as e:
        for outcome in e.outcomes:
            logging.error(f"Unreachable artifact: {outcome.identity} ({outcome.reason})")
        logging.error(f"{e}. Aborting before any capture; metadata left unchanged.")
        return 1

    # 2. Persist
    try:
        store.save()
    except MetadataPersistenceError as e:
        logging.error(str(e))
        return 1

    # 3. Report
    written = write_output_files(store, outcomes, config)

    # 4. Publish (Optional)
    if config['publish']:
        publish_archive(config, [config['archive_dir'], *written])

    counts = summarize_outcomes(outcomes)
    logging.info("--- Run Summary ---")
    logging.info(f"Artifacts processed: {len(outcomes)}")
    logging.info(f"Captured: {counts[OutcomeKind.SUCCESS]}")
    logging.info(f"Using previous archive: {counts[OutcomeKind.FALLBACK_USED]}")
    logging.info(f"Skipped: {counts[OutcomeKind.SKIPPED]}")
    for outcome in outcomes:
        if outcome.kind is not OutcomeKind.SUCCESS:
            logging.warning(f"{outcome.identity}: {outcome.kind.value} ({outcome.state.value}) {outcome.reason}")
    logging.info("--- Archive Run Finished ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
