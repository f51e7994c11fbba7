# Module for classifying artifact identities and choosing a capture strategy

import re
import logging

import constants
from models import Strategy, DirectUrl, CommunityReference

_COMMUNITY_RE = re.compile(constants.COMMUNITY_REFERENCE_PATTERN)


def classify_identity(identity):
    """
    Classifies an artifact identity without touching the network.

    Returns a CommunityReference for short-form community tokens like "r/example",
    and a DirectUrl for everything else (including malformed identities, which are
    left for the prober to reject).
    """
    candidate = (identity or "").strip()
    match = _COMMUNITY_RE.match(candidate)
    if match:
        name = match.group(1)
        return CommunityReference(name=name, index_url=constants.COMMUNITY_INDEX_URL_TEMPLATE.format(name=name))
    return DirectUrl(url=candidate)


def select_strategy(identity):
    """Returns (target_url, Strategy) for an artifact identity."""
    classified = classify_identity(identity)
    if isinstance(classified, CommunityReference):
        logging.info(f"Converted community reference {identity} to index URL: {classified.index_url}")
        return classified.index_url, Strategy.SINGLE_DOCUMENT
    return classified.url, Strategy.MIRROR
