# Module driving the per-artifact archive workflow: probe -> fetch -> reconcile with metadata

import logging
from collections import Counter
from datetime import datetime, timezone

import constants
from api_clients.probe_client import probe_resource
from fetcher import fetch_capture
from models import (
    ArtifactState, CaptureOutcome, CaptureRecord, OutcomeKind, ProbeStatus,
)
from strategy_selector import select_strategy


class PrevalidationError(Exception):
    """Raised when batch pre-validation finds hard failures and the policy is to abort."""

    def __init__(self, failures):
        self.failures = failures # list of (identity, ProbeResult)
        details = "; ".join(f"{identity} ({result.reason})" for identity, result in failures)
        super().__init__(f"Pre-validation failed for {len(failures)} artifact(s): {details}")

    @property
    def outcomes(self):
        return [CaptureOutcome.failed(identity, result.reason) for identity, result in self.failures]


def current_date():
    return datetime.now(timezone.utc).strftime(constants.DATE_FORMAT)


# --- Batch Pre-validation ---
def prevalidate_artifacts(artifacts, config, prober=probe_resource):
    """
    Probes every artifact before any capture starts.
    Returns {identity: ProbeResult}. Raises PrevalidationError when a hard failure is found
    and the 'prevalidate_hard_failure' policy is 'abort'.
    """
    logging.info(f"Pre-validating {len(artifacts)} artifacts...")
    results = {}
    failures = []
    for artifact in artifacts:
        target_url, _strategy = select_strategy(artifact.identity)
        result = prober(target_url, config=config)
        results[artifact.identity] = result
        if result.status is ProbeStatus.NOT_FOUND:
            logging.warning(f"Pre-validation: {artifact.identity} returned 404 and will be skipped.")
        elif result.status is ProbeStatus.HARD_FAILURE:
            logging.error(f"Pre-validation: {artifact.identity} failed ({result.reason}).")
            failures.append((artifact.identity, result))

    if failures and config.get('prevalidate_hard_failure', constants.PREVALIDATE_ABORT) == constants.PREVALIDATE_ABORT:
        raise PrevalidationError(failures)
    if failures:
        logging.warning(f"Pre-validation found {len(failures)} hard failures; continuing with metadata fallback for them.")
    return results


# --- Per-artifact Workflow ---
def _fall_back(artifact, store, reason):
    existing = store.get(artifact.identity)
    if existing is not None:
        logging.warning(f"Using last successful archive from {existing.last_captured_at} for {artifact.identity} ({reason})")
        return CaptureOutcome.fallback_used(artifact.identity, existing, reason)
    logging.warning(f"No previous archive available for {artifact.identity}, skipping ({reason}).")
    return CaptureOutcome.skipped(artifact.identity, constants.NO_PRIOR_ARCHIVE_REASON)


def process_artifact(artifact, store, config, today, prober=probe_resource, fetcher=fetch_capture, probe_result=None):
    """
    Runs one artifact through PENDING -> PROBED -> FETCHING -> CAPTURED | FETCH_FAILED, or
    NOT_FOUND_SKIP. The store is only written on CAPTURED.
    """
    target_url, strategy = select_strategy(artifact.identity)

    if probe_result is None:
        probe_result = prober(target_url, config=config)
    logging.debug(f"{artifact.identity}: probed -> {probe_result.status.value}")

    if probe_result.status is ProbeStatus.NOT_FOUND:
        logging.warning(f"{artifact.identity} returned 404 and was skipped.")
        return CaptureOutcome.skipped(artifact.identity, f"not found ({probe_result.reason})", state=ArtifactState.NOT_FOUND_SKIP)
    if probe_result.status is ProbeStatus.HARD_FAILURE:
        return _fall_back(artifact, store, f"probe failed: {probe_result.reason}")

    logging.info(f"Archiving {artifact.identity} ({strategy.value}) from {target_url}")
    try:
        result = fetcher(target_url, strategy, config, identity=artifact.identity)
    except Exception as e: # A single artifact never stops the run
        logging.error(f"Unexpected error while capturing {artifact.identity}: {e}", exc_info=True)
        return _fall_back(artifact, store, f"fetch failed: {e}")
    if not result.ok:
        return _fall_back(artifact, store, f"fetch failed: {result.reason}")

    record = CaptureRecord(last_captured_at=today, local_path=result.local_path, description=artifact.description)
    try:
        store.put(artifact.identity, record)
    except ValueError as e:
        return _fall_back(artifact, store, f"fetch returned an invalid path: {e}")
    logging.info(f"Archived {artifact.identity} in {record.local_path}")
    return CaptureOutcome.success(artifact.identity, record)


def run_archive(artifacts, store, config, prober=probe_resource, fetcher=fetch_capture, today=None):
    """
    Processes artifacts sequentially in input order and returns their CaptureOutcomes.
    With config['prevalidate'] every artifact is probed first; see prevalidate_artifacts.
    """
    today = today or current_date()
    probe_results = {}
    if config.get('prevalidate', False):
        probe_results = prevalidate_artifacts(artifacts, config, prober=prober)

    logging.info(f"Processing {len(artifacts)} artifacts...")
    outcomes = []
    for index, artifact in enumerate(artifacts, start=1):
        logging.info(f"Processing artifact {index}/{len(artifacts)}: {artifact.identity}")
        outcome = process_artifact(
            artifact, store, config, today,
            prober=prober, fetcher=fetcher, probe_result=probe_results.get(artifact.identity),
        )
        outcomes.append(outcome)
    return outcomes


def summarize_outcomes(outcomes):
    counts = Counter(outcome.kind for outcome in outcomes)
    return {kind: counts.get(kind, 0) for kind in OutcomeKind}
